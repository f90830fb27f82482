"""Budget domain service."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from pocketledger.domain.entities import Budget
from pocketledger.domain.errors import NotFoundError, ValidationError, budget_not_found
from pocketledger.domain.serialization import coerce_budget_period, coerce_money
from pocketledger.utils.amount_parser import quantize_money

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
DEFAULT_GOAL_CATEGORY = "Other"


def _clean_category(category: Optional[str]) -> str:
    if category is None or not category.strip():
        raise ValidationError("Budget category is required")
    return category.strip()


def _budget_amount(amount) -> Decimal:
    value = coerce_money(amount, "budget amount")
    if value < 0:
        raise ValidationError(f"Budget amount cannot be negative, got {value}")
    return value


def scale_budgets(budgets: list[Budget], total: Decimal) -> list[Budget]:
    """Scale budget amounts proportionally so they add up to ``total``.

    Rounding leftovers go to the largest budgets so the sum is exact; no
    amount is taken below zero.

    Args:
        budgets: Budgets of one period with a non-zero combined amount
        total: New combined amount

    Returns:
        Budgets with new amounts, in the same order
    """
    current = sum((budget.amount for budget in budgets), ZERO)
    scaled = [
        replace(budget, amount=quantize_money(budget.amount * total / current))
        for budget in budgets
    ]
    leftover = total - sum((budget.amount for budget in scaled), ZERO)
    largest_first = sorted(range(len(scaled)), key=lambda i: scaled[i].amount, reverse=True)
    if leftover > 0:
        index = largest_first[0]
        scaled[index] = replace(scaled[index], amount=scaled[index].amount + leftover)
        return scaled

    for index in largest_first:
        if not leftover:
            break
        taken = min(scaled[index].amount, -leftover)
        scaled[index] = replace(scaled[index], amount=scaled[index].amount - taken)
        leftover += taken
    return scaled


class BudgetService:
    """Service for managing budgets.

    The ``spent`` accumulator is owned by reconciliation; edits here never
    change it.
    """

    def __init__(self, ledger: "Ledger"):
        """Initialize budget service.

        Args:
            ledger: Ledger context
        """
        self.ledger = ledger

    @property
    def db(self):
        return self.ledger.db

    def add_budget(self, category: str, amount, period) -> Optional[Budget]:
        """Create a budget with nothing spent yet.

        Args:
            category: Expense category the budget tracks
            amount: Budgeted amount per period
            period: 'Weekly', 'Monthly' or 'Yearly' (any case)

        Returns:
            The created budget, or None if the store is not available

        Raises:
            ValidationError: If a field is missing or invalid
        """
        category = _clean_category(category)
        value = _budget_amount(amount)
        period = coerce_budget_period(period)

        def _create():
            budget_id = self.db.create_budget(category=category, amount=value, period=period)
            return self.db.get_budget(budget_id)

        budget = self.ledger.run(lambda: self.db.run_atomic(_create), "budget create")
        if budget is not None:
            self.ledger.apply_budget_changes([budget])
            logger.info("Created %s budget for '%s' of %s", budget.period.value, category, value)
        return budget

    def update_budget(
        self,
        budget_id: int,
        category: Optional[str] = None,
        amount=None,
        period=None,
    ) -> Optional[Budget]:
        """Update budget fields; None leaves a field unchanged.

        Raises:
            NotFoundError: If the budget does not exist
        """
        if category is not None:
            category = _clean_category(category)
        value = _budget_amount(amount) if amount is not None else None
        if period is not None:
            period = coerce_budget_period(period)

        def _update():
            self.db.update_budget(budget_id, category=category, amount=value, period=period)
            return self.db.get_budget(budget_id)

        budget = self.ledger.run(lambda: self.db.run_atomic(_update), "budget update")
        if budget is not None:
            self.ledger.apply_budget_changes([budget])
        return budget

    def delete_budget(self, budget_id: int) -> bool:
        """Delete a budget.

        Raises:
            NotFoundError: If the budget does not exist
        """

        def _delete():
            self.db.delete_budget(budget_id)
            return True

        deleted = self.ledger.run(lambda: self.db.run_atomic(_delete), "budget delete", default=False)
        if deleted:
            self.ledger.remove_budget(budget_id)
            logger.info("Deleted budget %s", budget_id)
        return deleted

    def get_budget(self, budget_id: int) -> Budget:
        """Get budget by ID.

        Raises:
            NotFoundError: If the budget does not exist
        """
        budget = self.ledger.run(lambda: self.db.get_budget(budget_id), "budget lookup")
        if budget is None and self.ledger.store_ready:
            raise NotFoundError(budget_not_found(budget_id))
        return budget

    def list_budgets(self, period=None) -> list[Budget]:
        if period is not None:
            period = coerce_budget_period(period)
        return self.ledger.run(
            lambda: self.db.list_budgets(period=period), "budget listing", default=[]
        )

    def update_budget_goal(self, total, period) -> list[Budget]:
        """Set the combined budget of a period.

        Every budget of the period is scaled proportionally to the new total.
        When the period has no budgeted amount yet, a single "Other" budget
        holding the whole total is created instead.

        Args:
            total: New combined amount for the period
            period: Budget period

        Returns:
            The budgets of the period after the change
        """
        total = _budget_amount(total)
        period = coerce_budget_period(period)

        def _apply():
            budgets = self.db.list_budgets(period=period)
            current = sum((budget.amount for budget in budgets), ZERO)
            if current == 0:
                budget_id = self.db.create_budget(
                    category=DEFAULT_GOAL_CATEGORY, amount=total, period=period
                )
                return budgets + [self.db.get_budget(budget_id)]

            scaled = scale_budgets(budgets, total)
            for budget in scaled:
                self.db.update_budget(budget.id, amount=budget.amount)
            return scaled

        budgets = self.ledger.run(
            lambda: self.db.run_atomic(_apply), "budget goal update", default=[]
        )
        if budgets:
            self.ledger.apply_budget_changes(budgets)
            logger.info("Set %s budget goal to %s", period.value, total)
        return budgets
