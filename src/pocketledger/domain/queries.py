"""Period-bounded aggregates over the in-memory projections.

The module-level functions are pure: they take the projection sequences and
a reference time. ``SummaryService`` binds them to a ``Ledger``.
"""

from collections import defaultdict
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence, TYPE_CHECKING

from pocketledger.domain.entities import (
    Asset,
    Budget,
    BudgetPeriod,
    PeriodSummary,
    Transaction,
    TransactionType,
)
from pocketledger.domain.errors import NotFoundError, budget_not_found

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

ZERO = Decimal("0.00")


def period_start(period: BudgetPeriod, now: datetime) -> datetime:
    """Return the start of the period containing ``now``.

    Weekly periods start on the most recent Sunday at midnight, monthly on
    the first of the month and yearly on January 1st.
    """
    period = BudgetPeriod(period)
    if period == BudgetPeriod.WEEKLY:
        days_since_sunday = (now.weekday() + 1) % 7
        return datetime.combine(now.date() - timedelta(days=days_since_sunday), time.min)
    if period == BudgetPeriod.MONTHLY:
        return datetime(now.year, now.month, 1)
    return datetime(now.year, 1, 1)


def transactions_in_period(
    transactions: Iterable[Transaction], period: BudgetPeriod, now: datetime
) -> list[Transaction]:
    """Filter transactions dated on or after the start of the period."""
    start = period_start(period, now)
    return [txn for txn in transactions if txn.date >= start]


def total_assets(assets: Iterable[Asset]) -> Decimal:
    return sum((asset.amount for asset in assets), ZERO)


def total_budget(budgets: Iterable[Budget], period: BudgetPeriod) -> Decimal:
    period = BudgetPeriod(period)
    return sum((b.amount for b in budgets if b.period == period), ZERO)


def budget_remaining(budget: Budget, transactions: Iterable[Transaction], now: datetime) -> Decimal:
    """Budget amount minus expenses in its category since the period start.

    Computed from the transaction log on every call; the ``spent``
    accumulator is not consulted.
    """
    start = period_start(budget.period, now)
    spent = sum(
        (
            txn.amount
            for txn in transactions
            if txn.is_expense and txn.category == budget.category and txn.date >= start
        ),
        ZERO,
    )
    return budget.amount - spent


def total_remaining(
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
    period: BudgetPeriod,
    now: datetime,
) -> Decimal:
    period = BudgetPeriod(period)
    return sum(
        (budget_remaining(b, transactions, now) for b in budgets if b.period == period),
        ZERO,
    )


def summarize(transactions: Iterable[Transaction]) -> PeriodSummary:
    """Sum income and expenses over a set of transactions."""
    income = ZERO
    expenses = ZERO
    count = 0
    for txn in transactions:
        if txn.type == TransactionType.INCOME:
            income += txn.amount
        else:
            expenses += txn.amount
        count += 1
    return PeriodSummary(income=income, expenses=expenses, count=count)


def category_distribution(transactions: Iterable[Transaction]) -> list[tuple[str, Decimal]]:
    """Expense totals per category, largest first (ties by name)."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in transactions:
        if txn.is_expense:
            totals[txn.category or "Uncategorized"] += txn.amount
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


def sort_assets_by_amount(assets: Iterable[Asset]) -> list[Asset]:
    """Sort assets by amount, highest first."""
    return sorted(assets, key=lambda asset: asset.amount, reverse=True)


class SummaryService:
    """Aggregates over a ledger's current projections (no store access)."""

    def __init__(self, ledger: "Ledger"):
        """Initialize summary service.

        Args:
            ledger: Ledger whose projections are summarized
        """
        self.ledger = ledger

    def period_start(self, period: BudgetPeriod) -> datetime:
        return period_start(period, self.ledger.now())

    def transactions_in_period(self, period: BudgetPeriod) -> list[Transaction]:
        return transactions_in_period(self.ledger.transactions, period, self.ledger.now())

    def total_assets(self) -> Decimal:
        return total_assets(self.ledger.assets)

    def total_budget(self, period: BudgetPeriod) -> Decimal:
        return total_budget(self.ledger.budgets, period)

    def budget_remaining(self, budget_id: int) -> Decimal:
        """Remaining amount of one budget in its current period.

        Raises:
            NotFoundError: If the budget is not in the projection
        """
        budget = self._find_budget(budget_id)
        if budget is None:
            raise NotFoundError(budget_not_found(budget_id))
        return budget_remaining(budget, self.ledger.transactions, self.ledger.now())

    def total_remaining(self, period: BudgetPeriod) -> Decimal:
        return total_remaining(
            self.ledger.budgets, self.ledger.transactions, period, self.ledger.now()
        )

    def period_summary(self, period: BudgetPeriod) -> PeriodSummary:
        return summarize(self.transactions_in_period(period))

    def category_distribution(self, period: BudgetPeriod) -> list[tuple[str, Decimal]]:
        return category_distribution(self.transactions_in_period(period))

    def _find_budget(self, budget_id: int) -> Optional[Budget]:
        for budget in self.ledger.budgets:
            if budget.id == budget_id:
                return budget
        return None
