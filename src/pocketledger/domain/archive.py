"""Archive manager: moves transactions between active and archived storage.

Archiving never reverses a transaction's effect on assets or budgets, and
restoring never replays it. Only visibility in active-set queries changes.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from pocketledger.config import DEFAULT_ARCHIVE_PAGE_SIZE
from pocketledger.domain.entities import (
    ArchivedTransaction,
    ArchiveStatistics,
    SearchResult,
    Transaction,
)
from pocketledger.domain.errors import ValidationError
from pocketledger.domain.serialization import coerce_datetime
from pocketledger.utils.date_parser import end_of_day, start_of_day

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)


def _range_bound(value, is_end: bool) -> datetime:
    """Plain dates cover the whole day; datetimes are taken as given."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return end_of_day(value) if is_end else start_of_day(value)

    parsed = coerce_datetime(value)
    if isinstance(value, str) and parsed.time() == datetime.min.time():
        return end_of_day(parsed) if is_end else parsed
    return parsed


def _positive_months(value, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be a whole number of months")
    if value <= 0:
        raise ValidationError(f"{field_name} must be positive, got {value}")
    return value


class ArchiveService:
    """Service for archiving, restoring and searching transactions."""

    def __init__(self, ledger: "Ledger"):
        """Initialize archive service.

        Args:
            ledger: Ledger context
        """
        self.ledger = ledger

    @property
    def db(self):
        return self.ledger.db

    def auto_archive(self, threshold_months: Optional[int] = None) -> int:
        """Archive every active transaction older than the threshold.

        Args:
            threshold_months: Age in months. Defaults to the persisted
                ``archive_after_months`` setting

        Returns:
            Number of archived transactions
        """
        if threshold_months is None:
            threshold_months = self.ledger.archive_settings.archive_after_months
        threshold_months = _positive_months(threshold_months, "Archive threshold")

        cutoff = self.ledger.now() - relativedelta(months=threshold_months)
        moved = self._archive(lambda: self.db.list_transactions(before=cutoff), "auto-archive")
        if moved:
            logger.info("Auto-archived %d transactions dated before %s", moved, cutoff)
        return moved

    def archive_range(self, start_date, end_date) -> int:
        """Archive active transactions dated within an inclusive range.

        Args:
            start_date: Range start; a plain date means its first moment
            end_date: Range end; a plain date means its last moment

        Returns:
            Number of archived transactions

        Raises:
            ValidationError: If a bound cannot be parsed or start is after end
        """
        start = _range_bound(start_date, is_end=False)
        end = _range_bound(end_date, is_end=True)
        if start > end:
            raise ValidationError(f"Range start {start} is after range end {end}")

        moved = self._archive(
            lambda: self.db.list_transactions(start_date=start, end_date=end), "range archive"
        )
        logger.info("Archived %d transactions between %s and %s", moved, start, end)
        return moved

    def _archive(self, select, description: str) -> int:
        def _move():
            archived_at = self.ledger.now()
            transactions = select()
            for txn in transactions:
                self.db.create_archived_transaction(txn, archived_at)
                self.db.delete_transaction(txn.id)
            return [txn.id for txn in transactions]

        moved_ids = self.ledger.run(
            lambda: self.db.run_atomic(_move), description, default=[]
        )
        if moved_ids:
            self.ledger.remove_transactions(moved_ids)
            if self.ledger.archived_transactions:
                self.ledger.reload_archived()
        return len(moved_ids)

    def restore_archived(self, archived_id: int) -> Optional[Transaction]:
        """Move an archived transaction back into the active set under a new ID.

        Balance and budget effects are not replayed; they were never reversed
        when the transaction was archived.

        Returns:
            The re-inserted transaction, or None if the archived row does not
            exist or the store is not available
        """

        def _restore():
            archived = self.db.get_archived_transaction(archived_id)
            if archived is None:
                return None
            restored = archived.to_transaction()
            new_id = self.db.create_transaction(
                type=restored.type,
                amount=restored.amount,
                category=restored.category,
                description=restored.description,
                location=restored.location,
                date=restored.date,
            )
            self.db.delete_archived_transaction(archived_id)
            return replace(restored, id=new_id)

        restored = self.ledger.run(lambda: self.db.run_atomic(_restore), "archive restore")
        if restored is None:
            logger.warning("Archived transaction %s not restored", archived_id)
            return None

        self._drop_archived(archived_id)
        self.ledger.upsert_transaction(restored)
        logger.info("Restored archived transaction %s as %s", archived_id, restored.id)
        return restored

    def permanent_delete(self, archived_id: int) -> bool:
        """Delete an archived transaction for good.

        Returns:
            True if deleted, False if it does not exist or the store is not available
        """

        def _delete():
            if self.db.get_archived_transaction(archived_id) is None:
                return False
            self.db.delete_archived_transaction(archived_id)
            return True

        deleted = self.ledger.run(
            lambda: self.db.run_atomic(_delete), "archive delete", default=False
        )
        if deleted:
            self._drop_archived(archived_id)
            logger.info("Permanently deleted archived transaction %s", archived_id)
        return deleted

    def statistics(self) -> Optional[ArchiveStatistics]:
        return self.ledger.run(self.db.get_archive_statistics, "archive statistics")

    def count_archived(self) -> int:
        return self.ledger.run(self.db.count_archived_transactions, "archive count", default=0)

    def list_archived(
        self, page: int = 0, limit: int = DEFAULT_ARCHIVE_PAGE_SIZE
    ) -> list[ArchivedTransaction]:
        """Load one page of archived transactions, newest first."""
        if page < 0 or limit <= 0:
            raise ValidationError("Page must be >= 0 and limit must be positive")
        return self.ledger.reload_archived(page=page, limit=limit)

    def search_all(self, term: str, include_archived: bool = False) -> list[SearchResult]:
        """Case-insensitive substring search over category, description and location.

        Results from both sources are merged and ordered by date, newest first.
        """

        def _search():
            results = self.db.search_transactions(term)
            if include_archived:
                results = results + self.db.search_archived_transactions(term)
            return sorted(results, key=lambda result: result.date, reverse=True)

        return self.ledger.run(_search, "transaction search", default=[])

    def update_archive_settings(
        self,
        auto_archive: Optional[bool] = None,
        archive_after_months: Optional[int] = None,
        keep_recent_months: Optional[int] = None,
    ):
        """Persist new archive settings; None leaves a field unchanged.

        Raises:
            ValidationError: If a month count is not a positive integer
        """
        changes = {}
        if auto_archive is not None:
            changes["auto_archive"] = bool(auto_archive)
        if archive_after_months is not None:
            changes["archive_after_months"] = _positive_months(
                archive_after_months, "Archive after months"
            )
        if keep_recent_months is not None:
            changes["keep_recent_months"] = _positive_months(
                keep_recent_months, "Keep recent months"
            )

        settings = replace(self.ledger.archive_settings, **changes)

        def _save():
            self.db.save_archive_settings(settings)
            return settings

        saved = self.ledger.run(lambda: self.db.run_atomic(_save), "archive settings update")
        if saved is not None:
            self.ledger.archive_settings = saved
        return saved

    def _drop_archived(self, archived_id: int) -> None:
        self.ledger.archived_transactions = tuple(
            row for row in self.ledger.archived_transactions if row.id != archived_id
        )
