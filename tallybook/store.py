"""In-memory application state mirroring the persistence gateway."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

from .auth import Session
from .db import PersistenceGateway
from .db.mapping import (
    budget_from_row,
    budget_to_row,
    receipt_from_row,
    receipt_to_row,
    shopping_item_to_row,
    shopping_list_to_row,
    shopping_lists_from_rows,
)
from .errors import NotAuthenticated
from .models import Budget, Receipt, ShoppingList, utcnow

logger = logging.getLogger(__name__)


class AppState:
    """Receipts, budgets and shopping lists for one signed-in user.

    Every mutation writes through the gateway first and touches the
    in-memory collections only after the write succeeded, so a failed
    write leaves previously loaded data as it was.
    """

    def __init__(self, gateway: PersistenceGateway, session: Session | None = None) -> None:
        self._gateway = gateway
        self._session = session
        self.receipts: list[Receipt] = []
        self.budgets: list[Budget] = []
        self.shopping_lists: list[ShoppingList] = []

    @property
    def user_id(self) -> str | None:
        return self._session.user_id if self._session else None

    def _require_user(self) -> str:
        if not self.user_id:
            raise NotAuthenticated("No authenticated user")
        return self.user_id

    async def initialize(self, session: Session | None = None) -> None:
        """Load all of the user's collections from the gateway."""
        if session is not None:
            self._session = session
        user_id = self._require_user()

        receipt_rows, budget_rows, list_rows, item_rows = await asyncio.gather(
            asyncio.to_thread(self._gateway.select, "receipts", user_id),
            asyncio.to_thread(self._gateway.select, "budgets", user_id),
            asyncio.to_thread(self._gateway.select, "shopping_lists", user_id),
            asyncio.to_thread(self._gateway.select, "shopping_items", user_id),
        )

        receipts = [receipt_from_row(r) for r in receipt_rows]
        budgets = [budget_from_row(r) for r in budget_rows]
        shopping_lists = shopping_lists_from_rows(list_rows, item_rows)

        self.receipts = receipts
        self.budgets = budgets
        self.shopping_lists = shopping_lists
        logger.info(
            "Loaded %d receipts, %d budgets, %d shopping lists for %s",
            len(receipts), len(budgets), len(shopping_lists), user_id,
        )

    def sign_out(self) -> None:
        self._session = None
        self.receipts = []
        self.budgets = []
        self.shopping_lists = []

    # ── Receipts ─────────────────────────────────────────────────────────

    async def add_receipt(self, receipt: Receipt) -> Receipt:
        """Insert a receipt and append the stored version to state."""
        user_id = self._require_user()
        row = await asyncio.to_thread(
            self._gateway.insert, "receipts", receipt_to_row(receipt, user_id)
        )
        stored = receipt_from_row(row)
        self.receipts = [*self.receipts, stored]
        logger.info("Receipt %s saved (total %s)", stored.id, stored.total)
        return stored

    async def update_receipt(self, receipt: Receipt) -> None:
        user_id = self._require_user()
        values = receipt_to_row(receipt, user_id)
        del values["id"]
        await asyncio.to_thread(self._gateway.update, "receipts", receipt.id, values)
        self.receipts = [receipt if r.id == receipt.id else r for r in self.receipts]

    async def delete_receipt(self, receipt_id: str) -> None:
        self._require_user()
        await asyncio.to_thread(self._gateway.delete, "receipts", receipt_id)
        self.receipts = [r for r in self.receipts if r.id != receipt_id]

    # ── Budgets ──────────────────────────────────────────────────────────

    async def update_budget(self, budget: Budget) -> None:
        """Upsert a budget; replaces the cached one or appends a new one."""
        user_id = self._require_user()
        await asyncio.to_thread(
            self._gateway.upsert, "budgets", [budget_to_row(budget, user_id)]
        )
        if any(b.id == budget.id for b in self.budgets):
            self.budgets = [budget if b.id == budget.id else b for b in self.budgets]
        else:
            self.budgets = [*self.budgets, budget]

    # ── Shopping lists ───────────────────────────────────────────────────

    async def add_shopping_list(self, shopping_list: ShoppingList) -> None:
        user_id = self._require_user()
        await asyncio.to_thread(
            self._gateway.insert,
            "shopping_lists",
            shopping_list_to_row(shopping_list, user_id),
        )
        if shopping_list.items:
            await asyncio.to_thread(
                self._gateway.upsert,
                "shopping_items",
                self._item_rows(shopping_list, user_id),
            )
        self.shopping_lists = [*self.shopping_lists, shopping_list]

    async def update_shopping_list(self, shopping_list: ShoppingList) -> ShoppingList:
        """Rename/touch the list, upsert its items and drop removed ones."""
        user_id = self._require_user()
        shopping_list = replace(shopping_list, updated_at=utcnow())
        await asyncio.to_thread(
            self._gateway.update,
            "shopping_lists",
            shopping_list.id,
            {
                "name": shopping_list.name,
                "updated_at": shopping_list_to_row(shopping_list, user_id)["updated_at"],
            },
        )
        await asyncio.to_thread(
            self._gateway.upsert,
            "shopping_items",
            self._item_rows(shopping_list, user_id),
        )

        previous = next((l for l in self.shopping_lists if l.id == shopping_list.id), None)
        if previous is not None:
            kept = {i.id for i in shopping_list.items}
            for item in previous.items:
                if item.id not in kept:
                    await asyncio.to_thread(self._gateway.delete, "shopping_items", item.id)

        self.shopping_lists = [
            shopping_list if l.id == shopping_list.id else l for l in self.shopping_lists
        ]
        return shopping_list

    async def delete_shopping_list(self, list_id: str) -> None:
        self._require_user()
        await asyncio.to_thread(self._gateway.delete, "shopping_lists", list_id)
        self.shopping_lists = [l for l in self.shopping_lists if l.id != list_id]

    @staticmethod
    def _item_rows(shopping_list: ShoppingList, user_id: str) -> list[dict]:
        return [
            shopping_item_to_row(item, shopping_list.id, user_id, position)
            for position, item in enumerate(shopping_list.items)
        ]

    # ── Export ───────────────────────────────────────────────────────────

    async def export_data(self, path: str | Path) -> Path:
        """Write all three collections to a multi-sheet spreadsheet."""
        from .export import export_workbook

        return await asyncio.to_thread(
            export_workbook, self.receipts, self.budgets, self.shopping_lists, path
        )
