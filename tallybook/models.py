"""Data models for receipts, budgets and shopping lists."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

CATEGORIES: tuple[str, ...] = (
    "groceries",
    "utilities",
    "entertainment",
    "dining",
    "transport",
    "healthcare",
    "shopping",
    "other",
)

PERIODS: tuple[str, ...] = ("weekly", "monthly", "yearly")


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_category(category: str) -> None:
    if category not in CATEGORIES:
        raise ValueError(
            f"Unknown category: {category!r} (choose from {', '.join(CATEGORIES)})"
        )


@dataclass
class ReceiptItem:
    """A single line item owned by one receipt."""

    id: str
    name: str
    price: Decimal
    quantity: int = 1
    category: str = "other"

    def __post_init__(self) -> None:
        _check_category(self.category)


@dataclass
class Receipt:
    """A purchase record, created by hand or by the ingestion pipeline."""

    id: str
    date: datetime
    total: Decimal
    items: list[ReceiptItem] = field(default_factory=list)
    category: str = "other"
    image_url: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        _check_category(self.category)
        if self.total < 0:
            raise ValueError(f"Receipt total must be non-negative, got {self.total}")


@dataclass
class Budget:
    """Spending limit for one category over a recurring period."""

    id: str
    category: str
    limit: Decimal
    spent: Decimal = Decimal("0")
    period: str = "monthly"

    def __post_init__(self) -> None:
        _check_category(self.category)
        if self.period not in PERIODS:
            raise ValueError(
                f"Unknown budget period: {self.period!r} "
                f"(choose from {', '.join(PERIODS)})"
            )


@dataclass
class ShoppingItem:
    id: str
    name: str
    quantity: int = 1
    completed: bool = False


@dataclass
class ShoppingList:
    id: str
    name: str
    items: list[ShoppingItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
