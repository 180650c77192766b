"""Conversion between backend rows and domain models.

Rows carry ISO-8601 timestamps and decimal strings; the domain side uses
timezone-aware ``datetime`` and ``Decimal``. Anything missing or malformed
raises :class:`RowMappingError` here instead of leaking into the app state.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ..errors import RowMappingError
from ..models import Budget, Receipt, ReceiptItem, ShoppingItem, ShoppingList

Row = dict[str, Any]


def _require(row: Row, key: str) -> Any:
    if key not in row or row[key] is None:
        raise RowMappingError(f"Row {row.get('id', '?')!r} is missing {key!r}")
    return row[key]


def format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise RowMappingError(f"Invalid timestamp: {value!r}") from e
    else:
        raise RowMappingError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise RowMappingError(f"Invalid amount: {value!r}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise RowMappingError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise RowMappingError(f"Invalid amount: {value!r}")
    return amount


def _parse_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise RowMappingError(f"Invalid integer: {value!r}")
    try:
        return int(value)
    except ValueError as e:
        raise RowMappingError(f"Invalid integer: {value!r}") from e


def _parse_bool(value: Any) -> bool:
    # SQLite stores booleans as 0/1
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise RowMappingError(f"Invalid boolean: {value!r}")


def _build(factory, **kwargs):
    try:
        return factory(**kwargs)
    except ValueError as e:
        raise RowMappingError(str(e)) from e


# ── Receipts ─────────────────────────────────────────────────────────────


def receipt_item_to_dict(item: ReceiptItem) -> Row:
    return {
        "id": item.id,
        "name": item.name,
        "price": str(item.price),
        "quantity": item.quantity,
        "category": item.category,
    }


def receipt_item_from_dict(data: Any) -> ReceiptItem:
    if not isinstance(data, dict):
        raise RowMappingError(f"Invalid receipt item: {data!r}")
    return _build(
        ReceiptItem,
        id=str(_require(data, "id")),
        name=str(_require(data, "name")),
        price=parse_decimal(_require(data, "price")),
        quantity=_parse_int(data.get("quantity", 1)),
        category=data.get("category") or "other",
    )


def receipt_to_row(receipt: Receipt, user_id: str) -> Row:
    return {
        "id": receipt.id,
        "user_id": user_id,
        "date": format_datetime(receipt.date),
        "total": str(receipt.total),
        "items": json.dumps([receipt_item_to_dict(i) for i in receipt.items]),
        "category": receipt.category,
        "image_url": receipt.image_url,
        "notes": receipt.notes,
        "created_at": format_datetime(receipt.created_at),
        "updated_at": format_datetime(receipt.updated_at),
    }


def receipt_from_row(row: Row) -> Receipt:
    raw_items = row.get("items") or []
    # SQLite keeps items as JSON text, the hosted backend as a JSON array
    if isinstance(raw_items, str):
        try:
            raw_items = json.loads(raw_items)
        except ValueError as e:
            raise RowMappingError(f"Invalid items JSON in receipt {row.get('id')!r}") from e
    if not isinstance(raw_items, list):
        raise RowMappingError(f"Invalid items in receipt {row.get('id')!r}")

    return _build(
        Receipt,
        id=str(_require(row, "id")),
        date=parse_datetime(_require(row, "date")),
        total=parse_decimal(_require(row, "total")),
        items=[receipt_item_from_dict(i) for i in raw_items],
        category=row.get("category") or "other",
        image_url=row.get("image_url"),
        notes=row.get("notes"),
        created_at=parse_datetime(_require(row, "created_at")),
        updated_at=parse_datetime(_require(row, "updated_at")),
    )


# ── Budgets ──────────────────────────────────────────────────────────────


def budget_to_row(budget: Budget, user_id: str) -> Row:
    return {
        "id": budget.id,
        "user_id": user_id,
        "category": budget.category,
        "limit": str(budget.limit),
        "spent": str(budget.spent),
        "period": budget.period,
    }


def budget_from_row(row: Row) -> Budget:
    return _build(
        Budget,
        id=str(_require(row, "id")),
        category=_require(row, "category"),
        limit=parse_decimal(_require(row, "limit")),
        spent=parse_decimal(row.get("spent", "0")),
        period=row.get("period") or "monthly",
    )


# ── Shopping lists ───────────────────────────────────────────────────────


def shopping_list_to_row(shopping_list: ShoppingList, user_id: str) -> Row:
    return {
        "id": shopping_list.id,
        "user_id": user_id,
        "name": shopping_list.name,
        "created_at": format_datetime(shopping_list.created_at),
        "updated_at": format_datetime(shopping_list.updated_at),
    }


def shopping_item_to_row(
    item: ShoppingItem, list_id: str, user_id: str, position: int
) -> Row:
    return {
        "id": item.id,
        "list_id": list_id,
        "user_id": user_id,
        "name": item.name,
        "quantity": item.quantity,
        "completed": item.completed,
        "position": position,
    }


def shopping_item_from_row(row: Row) -> ShoppingItem:
    return ShoppingItem(
        id=str(_require(row, "id")),
        name=str(_require(row, "name")),
        quantity=_parse_int(row.get("quantity", 1)),
        completed=_parse_bool(row.get("completed", False)),
    )


def shopping_lists_from_rows(list_rows: list[Row], item_rows: list[Row]) -> list[ShoppingList]:
    """Join list rows with their item rows (already in position order)."""
    items_by_list: dict[str, list[ShoppingItem]] = {}
    for row in item_rows:
        list_id = str(_require(row, "list_id"))
        items_by_list.setdefault(list_id, []).append(shopping_item_from_row(row))

    lists: list[ShoppingList] = []
    for row in list_rows:
        list_id = str(_require(row, "id"))
        lists.append(
            ShoppingList(
                id=list_id,
                name=str(_require(row, "name")),
                items=items_by_list.get(list_id, []),
                created_at=parse_datetime(_require(row, "created_at")),
                updated_at=parse_datetime(_require(row, "updated_at")),
            )
        )
    return lists
