"""Spreadsheet export of receipts, budgets and shopping lists."""

from __future__ import annotations

from datetime import timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Budget, Receipt, ShoppingList

_RECEIPT_COLUMNS = ["id", "date", "total", "category", "items", "notes", "image_url",
                    "created_at", "updated_at"]
_BUDGET_COLUMNS = ["id", "category", "limit", "spent", "period"]
_LIST_COLUMNS = ["id", "name", "items", "completed", "created_at", "updated_at"]


def _naive(value):
    # Excel cannot store timezone-aware datetimes
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def export_workbook(
    receipts: list[Receipt],
    budgets: list[Budget],
    shopping_lists: list[ShoppingList],
    path: str | Path = "finance-data.xlsx",
) -> Path:
    """Write three sheets (Receipts, Budgets, Shopping Lists) to an .xlsx file.

    Returns:
        The path of the written file.
    """
    try:
        import pandas as pd
    except ImportError:
        raise ImportError(
            "pandas and openpyxl are required for export: pip install pandas openpyxl"
        ) from None

    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    receipt_rows = [
        {
            "id": r.id,
            "date": _naive(r.date),
            "total": float(r.total),
            "category": r.category,
            "items": ", ".join(f"{i.name} x{i.quantity}" for i in r.items),
            "notes": r.notes or "",
            "image_url": r.image_url or "",
            "created_at": _naive(r.created_at),
            "updated_at": _naive(r.updated_at),
        }
        for r in receipts
    ]
    budget_rows = [
        {
            "id": b.id,
            "category": b.category,
            "limit": float(b.limit),
            "spent": float(b.spent),
            "period": b.period,
        }
        for b in budgets
    ]
    list_rows = [
        {
            "id": l.id,
            "name": l.name,
            "items": ", ".join(f"{i.name} x{i.quantity}" for i in l.items),
            "completed": sum(1 for i in l.items if i.completed),
            "created_at": _naive(l.created_at),
            "updated_at": _naive(l.updated_at),
        }
        for l in shopping_lists
    ]

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(receipt_rows, columns=_RECEIPT_COLUMNS).to_excel(
            writer, sheet_name="Receipts", index=False
        )
        pd.DataFrame(budget_rows, columns=_BUDGET_COLUMNS).to_excel(
            writer, sheet_name="Budgets", index=False
        )
        pd.DataFrame(list_rows, columns=_LIST_COLUMNS).to_excel(
            writer, sheet_name="Shopping Lists", index=False
        )

    return path
