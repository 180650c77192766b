"""Tests for spreadsheet export."""

from datetime import datetime, timezone
from decimal import Decimal

import pandas as pd
import pytest

from tallybook.auth import Session
from tallybook.export import export_workbook
from tallybook.models import Budget, Receipt, ReceiptItem, ShoppingItem, ShoppingList
from tallybook.store import AppState

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def _data():
    receipts = [
        Receipt(
            id="r1", date=NOW, total=Decimal("12.34"),
            items=[ReceiptItem(id="i1", name="Milk", price=Decimal("1.20"), quantity=2)],
            created_at=NOW, updated_at=NOW,
        )
    ]
    budgets = [Budget(id="b1", category="groceries", limit=Decimal("300"))]
    lists = [
        ShoppingList(
            id="l1", name="Weekly",
            items=[ShoppingItem(id="a", name="Eggs", completed=True), ShoppingItem(id="b", name="Tea")],
            created_at=NOW, updated_at=NOW,
        )
    ]
    return receipts, budgets, lists


def test_export_writes_three_sheets(tmp_path):
    path = export_workbook(*_data(), tmp_path / "finance-data.xlsx")

    sheets = pd.read_excel(path, sheet_name=None)
    assert list(sheets) == ["Receipts", "Budgets", "Shopping Lists"]

    receipts = sheets["Receipts"]
    assert receipts.loc[0, "total"] == pytest.approx(12.34)
    assert receipts.loc[0, "items"] == "Milk x2"
    assert sheets["Budgets"].loc[0, "period"] == "monthly"
    assert sheets["Shopping Lists"].loc[0, "completed"] == 1


def test_export_empty_collections(tmp_path):
    path = export_workbook([], [], [], tmp_path / "out" / "empty.xlsx")

    sheets = pd.read_excel(path, sheet_name=None)
    assert len(sheets["Receipts"]) == 0
    assert "total" in sheets["Receipts"].columns


@pytest.mark.asyncio
async def test_state_export(tmp_path):
    receipts, budgets, lists = _data()
    state = AppState(gateway=None, session=Session(user_id="user-1"))
    state.receipts, state.budgets, state.shopping_lists = receipts, budgets, lists

    path = await state.export_data(tmp_path / "finance-data.xlsx")

    assert path.exists()
