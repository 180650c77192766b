"""Spending aggregations over receipts and budgets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from decimal import Decimal

from .models import Budget, Receipt


@dataclass
class BudgetUsage:
    """Spent-vs-limit for one budget."""

    budget: Budget

    @property
    def ratio(self) -> float:
        """Fraction of the limit spent, capped at 1.0 (0.0 for a zero limit)."""
        if self.budget.limit <= 0:
            return 0.0
        return min(float(self.budget.spent / self.budget.limit), 1.0)

    @property
    def remaining(self) -> Decimal:
        return self.budget.limit - self.budget.spent

    @property
    def over_limit(self) -> bool:
        return self.budget.spent > self.budget.limit


def spending_by_category(receipts: list[Receipt]) -> dict[str, Decimal]:
    """Sum receipt totals per category, in order of first appearance."""
    totals: dict[str, Decimal] = {}
    for receipt in receipts:
        totals[receipt.category] = totals.get(receipt.category, Decimal("0")) + receipt.total
    return totals


def monthly_spending(receipts: list[Receipt]) -> dict[str, Decimal]:
    """Sum receipt totals per calendar month (``YYYY-MM``, UTC), oldest first."""
    totals: dict[str, Decimal] = {}
    for receipt in receipts:
        date = receipt.date
        if date.tzinfo is not None:
            date = date.astimezone(timezone.utc)
        key = f"{date:%Y-%m}"
        totals[key] = totals.get(key, Decimal("0")) + receipt.total
    return dict(sorted(totals.items()))


def budget_usage(budgets: list[Budget]) -> list[BudgetUsage]:
    return [BudgetUsage(budget) for budget in budgets]
