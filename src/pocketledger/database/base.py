"""Abstract database interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar

# Import entities directly to avoid circular import through domain/__init__.py
from pocketledger.domain.entities import (
    Asset,
    ArchivedTransaction,
    ArchiveSettings,
    ArchiveStatistics,
    Budget,
    BudgetPeriod,
    HistoryAction,
    HistoryRecord,
    SearchResult,
    Transaction,
    TransactionType,
)

T = TypeVar("T")


class Database(ABC):
    """Abstract database interface for pocketledger."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def reconnect(self) -> None:
        """Drop the current connection and open a fresh one."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the store handle is ready for use."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def run_atomic(self, work: Callable[[], T]) -> T:
        """Run ``work`` as one atomic unit and return its result.

        Every write issued through this database while ``work`` runs commits
        together or not at all. A lost connection is retried once after a
        reconnect.

        Raises:
            ConnectionLostError: If the connection could not be re-established
            StoreError: If the unit failed and was rolled back
        """
        pass

    # Asset operations
    @abstractmethod
    def create_asset(
        self, name: str, amount: Decimal, currency_code: str, image_ref: Optional[str] = None
    ) -> int:
        """Create an asset. Returns asset ID."""
        pass

    @abstractmethod
    def get_asset(self, asset_id: int) -> Optional[Asset]:
        """Get asset by ID."""
        pass

    @abstractmethod
    def get_asset_by_name(self, name: str) -> Optional[Asset]:
        """Get asset by its unique name."""
        pass

    @abstractmethod
    def list_assets(self) -> list[Asset]:
        """List all assets."""
        pass

    @abstractmethod
    def update_asset(
        self,
        asset_id: int,
        name: Optional[str] = None,
        amount: Optional[Decimal] = None,
        currency_code: Optional[str] = None,
        image_ref: Optional[str] = None,
    ) -> None:
        """Update asset fields that are not None."""
        pass

    @abstractmethod
    def delete_asset(self, asset_id: int) -> None:
        """Delete an asset."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        type: TransactionType,
        amount: Decimal,
        category: str,
        description: str,
        location: str,
        date: datetime,
    ) -> int:
        """Create a transaction row. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def update_transaction(self, transaction: Transaction) -> None:
        """Overwrite every column of an existing transaction row."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction row."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        before: Optional[datetime] = None,
    ) -> list[Transaction]:
        """List transactions, newest first.

        Args:
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound
            before: Exclusive upper bound
        """
        pass

    @abstractmethod
    def search_transactions(self, term: str) -> list[SearchResult]:
        """Case-insensitive substring search over category, description and location."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget(
        self, category: str, amount: Decimal, period: BudgetPeriod, spent: Decimal = Decimal("0")
    ) -> int:
        """Create a budget. Returns budget ID."""
        pass

    @abstractmethod
    def get_budget(self, budget_id: int) -> Optional[Budget]:
        """Get budget by ID."""
        pass

    @abstractmethod
    def list_budgets(
        self, category: Optional[str] = None, period: Optional[BudgetPeriod] = None
    ) -> list[Budget]:
        """List budgets, optionally filtered by category and period."""
        pass

    @abstractmethod
    def update_budget(
        self,
        budget_id: int,
        category: Optional[str] = None,
        amount: Optional[Decimal] = None,
        period: Optional[BudgetPeriod] = None,
        spent: Optional[Decimal] = None,
    ) -> None:
        """Update budget fields that are not None."""
        pass

    @abstractmethod
    def delete_budget(self, budget_id: int) -> None:
        """Delete a budget."""
        pass

    # Archive operations
    @abstractmethod
    def create_archived_transaction(
        self, transaction: Transaction, archived_date: datetime
    ) -> int:
        """Copy a transaction into archived storage. Returns archived ID."""
        pass

    @abstractmethod
    def get_archived_transaction(self, archived_id: int) -> Optional[ArchivedTransaction]:
        """Get archived transaction by ID."""
        pass

    @abstractmethod
    def list_archived_transactions(
        self, limit: Optional[int] = None, offset: int = 0
    ) -> list[ArchivedTransaction]:
        """List archived transactions, newest first."""
        pass

    @abstractmethod
    def count_archived_transactions(self) -> int:
        """Count archived transactions."""
        pass

    @abstractmethod
    def delete_archived_transaction(self, archived_id: int) -> None:
        """Delete an archived transaction."""
        pass

    @abstractmethod
    def search_archived_transactions(self, term: str) -> list[SearchResult]:
        """Case-insensitive substring search over archived transactions."""
        pass

    @abstractmethod
    def get_archive_statistics(self) -> ArchiveStatistics:
        """Aggregate count, date range and income/expense sums of the archive."""
        pass

    @abstractmethod
    def get_archive_settings(self) -> Optional[ArchiveSettings]:
        """Get the persisted archive settings row, if any."""
        pass

    @abstractmethod
    def save_archive_settings(self, settings: ArchiveSettings) -> None:
        """Insert or replace the archive settings row."""
        pass

    # History operations
    @abstractmethod
    def add_history_record(
        self,
        transaction_id: Optional[int],
        action: HistoryAction,
        timestamp: datetime,
        data: str,
    ) -> int:
        """Append an audit record. Returns record ID."""
        pass

    @abstractmethod
    def get_history_record(self, record_id: int) -> Optional[HistoryRecord]:
        """Get audit record by ID."""
        pass

    @abstractmethod
    def list_history(self, limit: Optional[int] = None) -> list[HistoryRecord]:
        """List audit records, newest first."""
        pass

    @abstractmethod
    def prune_history(
        self, keep_latest: Optional[int] = None, older_than: Optional[datetime] = None
    ) -> int:
        """Delete audit records beyond ``keep_latest`` or older than ``older_than``.

        Returns the number of deleted records.
        """
        pass

    # Bulk operations
    @abstractmethod
    def clear_all(self) -> None:
        """Delete every asset, transaction and budget."""
        pass
