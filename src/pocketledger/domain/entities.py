"""Domain model entities for pocketledger.

These are pure data classes representing business concepts, independent of
database schema. Money is always carried as ``Decimal`` with two places.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionType(str, Enum):
    """Direction of a transaction's effect on its asset."""

    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, Enum):
    """Recurring window a budget applies to."""

    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class HistoryAction(str, Enum):
    """Audited transaction actions."""

    DELETE = "delete"
    RESTORE = "restore"


class TransactionSource(str, Enum):
    """Storage a search result came from."""

    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Asset:
    """Asset (wallet, bank account, card) domain entity."""

    id: int
    name: str
    amount: Decimal
    currency_code: str
    image_ref: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """Active transaction domain entity.

    ``location`` holds the name of the asset the transaction moves money in
    or out of.
    """

    id: Optional[int]
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    location: str
    date: datetime

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the asset balance: positive for income, negative for expense."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount


@dataclass(frozen=True)
class Budget:
    """Budget domain entity."""

    id: int
    category: str
    amount: Decimal
    period: BudgetPeriod
    spent: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class ArchivedTransaction:
    """Copy of a transaction moved out of the active set."""

    id: int
    original_id: Optional[int]
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    location: str
    date: datetime
    archived_date: datetime

    def to_transaction(self) -> Transaction:
        """Active transaction with the same fields and no ID assigned yet."""
        return Transaction(
            id=None,
            type=self.type,
            amount=self.amount,
            category=self.category,
            description=self.description,
            location=self.location,
            date=self.date,
        )


@dataclass(frozen=True)
class ArchiveSettings:
    """Persisted archive policy."""

    auto_archive: bool = True
    archive_after_months: int = 12
    keep_recent_months: int = 3


@dataclass(frozen=True)
class ArchiveStatistics:
    """Aggregates over the whole archived set."""

    total_archived: int
    oldest_date: Optional[datetime]
    newest_date: Optional[datetime]
    total_income: Decimal
    total_expenses: Decimal


@dataclass(frozen=True)
class HistoryRecord:
    """Append-only audit entry for a delete or restore."""

    id: int
    transaction_id: Optional[int]
    action: HistoryAction
    timestamp: datetime
    snapshot: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchResult:
    """Transaction matched by a search, tagged with its storage source."""

    source: TransactionSource
    id: int
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    location: str
    date: datetime
    original_id: Optional[int] = None
    archived_date: Optional[datetime] = None


@dataclass(frozen=True)
class PeriodSummary:
    """Income and expense totals over a period."""

    income: Decimal
    expenses: Decimal
    count: int

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True)
class Preferences:
    """Presentation preferences carried through export/import."""

    currency: str = "PHP"
    dark_mode: bool = False
