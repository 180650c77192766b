"""Tests for the in-memory app state over a real SQLite gateway."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tallybook.auth import Session
from tallybook.db import SQLiteGateway
from tallybook.errors import GatewayError, NotAuthenticated
from tallybook.models import Budget, Receipt, ShoppingItem, ShoppingList
from tallybook.store import AppState

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def gateway(tmp_path):
    gw = SQLiteGateway(db_path=tmp_path / "test.db")
    yield gw
    gw.close()


@pytest.fixture
def state(gateway):
    return AppState(gateway, Session(user_id="user-1"))


def _receipt(receipt_id, total="10.00"):
    return Receipt(id=receipt_id, date=NOW, total=Decimal(total), created_at=NOW, updated_at=NOW)


class TestReceipts:
    @pytest.mark.asyncio
    async def test_add_receipt_round_trip(self, state, gateway):
        await state.add_receipt(_receipt("r1", "12.34"))

        reloaded = AppState(gateway, Session(user_id="user-1"))
        await reloaded.initialize()

        assert reloaded.receipts == state.receipts
        assert reloaded.receipts[0].total == Decimal("12.34")

    @pytest.mark.asyncio
    async def test_receipts_keep_insertion_order(self, state):
        for receipt_id in ("b", "a", "c"):
            await state.add_receipt(_receipt(receipt_id))
        assert [r.id for r in state.receipts] == ["b", "a", "c"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, state):
        await state.add_receipt(_receipt("r1"))
        updated = _receipt("r1", "15.00")
        updated.notes = "corrected"

        await state.update_receipt(updated)
        assert state.receipts[0].notes == "corrected"

        await state.delete_receipt("r1")
        assert state.receipts == []

    @pytest.mark.asyncio
    async def test_failed_write_leaves_state_unchanged(self, state):
        await state.add_receipt(_receipt("r1"))
        with pytest.raises(GatewayError):
            await state.add_receipt(_receipt("r1"))
        assert [r.id for r in state.receipts] == ["r1"]

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, gateway, state):
        await state.add_receipt(_receipt("r1"))

        other = AppState(gateway, Session(user_id="user-2"))
        await other.initialize()
        assert other.receipts == []


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_initialize_requires_user(self, gateway):
        with pytest.raises(NotAuthenticated):
            await AppState(gateway).initialize()

    @pytest.mark.asyncio
    async def test_mutation_requires_user(self):
        gateway = MagicMock()
        with pytest.raises(NotAuthenticated):
            await AppState(gateway).add_receipt(_receipt("r1"))
        gateway.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_sign_out_clears_collections(self, state):
        await state.add_receipt(_receipt("r1"))
        state.sign_out()
        assert state.user_id is None
        assert state.receipts == []


class TestBudgets:
    @pytest.mark.asyncio
    async def test_upsert_appends_then_replaces(self, state, gateway):
        budget = Budget(id="b1", category="dining", limit=Decimal("100"))
        await state.update_budget(budget)
        await state.update_budget(Budget(id="b1", category="dining", limit=Decimal("150")))

        assert len(state.budgets) == 1
        assert state.budgets[0].limit == Decimal("150")
        assert gateway.select("budgets", "user-1")[0]["limit"] == "150"


class TestShoppingLists:
    @pytest.mark.asyncio
    async def test_add_and_reload(self, state, gateway):
        shopping_list = ShoppingList(
            id="l1", name="Weekly",
            items=[ShoppingItem(id="a", name="Milk"), ShoppingItem(id="b", name="Eggs", quantity=12)],
            created_at=NOW, updated_at=NOW,
        )
        await state.add_shopping_list(shopping_list)

        reloaded = AppState(gateway, Session(user_id="user-1"))
        await reloaded.initialize()
        assert [i.name for i in reloaded.shopping_lists[0].items] == ["Milk", "Eggs"]

    @pytest.mark.asyncio
    async def test_update_drops_removed_items(self, state, gateway):
        await state.add_shopping_list(ShoppingList(
            id="l1", name="Weekly",
            items=[ShoppingItem(id="a", name="Milk"), ShoppingItem(id="b", name="Eggs")],
            created_at=NOW, updated_at=NOW,
        ))

        updated = await state.update_shopping_list(ShoppingList(
            id="l1", name="Weekend",
            items=[ShoppingItem(id="b", name="Eggs", completed=True)],
            created_at=NOW, updated_at=NOW,
        ))

        assert updated.updated_at > NOW
        assert state.shopping_lists[0].name == "Weekend"
        rows = gateway.select("shopping_items", "user-1")
        assert [r["id"] for r in rows] == ["b"]
        assert rows[0]["completed"] == 1

    @pytest.mark.asyncio
    async def test_delete_removes_items(self, state, gateway):
        await state.add_shopping_list(ShoppingList(
            id="l1", name="Weekly", items=[ShoppingItem(id="a", name="Milk")],
        ))
        await state.delete_shopping_list("l1")

        assert state.shopping_lists == []
        assert gateway.select("shopping_items", "user-1") == []
