"""Ledger context: store handle plus the in-memory projections callers read."""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, TypeVar

from pocketledger.config import DEFAULT_ARCHIVE_PAGE_SIZE, LedgerSettings
from pocketledger.database.base import Database
from pocketledger.domain.entities import (
    ArchivedTransaction,
    ArchiveSettings,
    Asset,
    Budget,
    Transaction,
)
from pocketledger.domain.history import UndoBuffer
from pocketledger.domain.queries import sort_assets_by_amount
from pocketledger.utils.date_parser import months_before

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Ledger:
    """Owns the store handle, settings, clock, undo buffer and projections.

    Services receive a Ledger and never keep state of their own. Projections
    are only replaced after the store write that produced them has committed.
    """

    def __init__(
        self,
        db: Optional[Database],
        settings: Optional[LedgerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the ledger context.

        Args:
            db: Database instance, or None while the store is not available yet
            settings: Engine settings. Defaults to LedgerSettings()
            clock: Callable returning the current local time. Defaults to datetime.now
        """
        self.db = db
        self.settings = settings or LedgerSettings()
        self._clock = clock or datetime.now
        self.undo_buffer = UndoBuffer(self.settings.undo_capacity)

        self.assets: tuple[Asset, ...] = ()
        self.transactions: tuple[Transaction, ...] = ()
        self.budgets: tuple[Budget, ...] = ()
        self.archived_transactions: tuple[ArchivedTransaction, ...] = ()
        self.archive_settings = ArchiveSettings()

    def now(self) -> datetime:
        return self._clock()

    @property
    def store_ready(self) -> bool:
        return self.db is not None and self.db.is_connected

    def run(self, operation: Callable[[], T], description: str, default=None):
        """Run a store-touching operation, or log and return ``default`` if the store is not ready."""
        if not self.store_ready:
            logger.warning("Store not initialized yet; skipping %s", description)
            return default
        return operation()

    # Reload entry points
    def reload_assets(self) -> None:
        def _load():
            self.assets = tuple(sort_assets_by_amount(self.db.list_assets()))

        self.run(_load, "asset reload")

    def reload_budgets(self) -> None:
        def _load():
            self.budgets = tuple(self.db.list_budgets())

        self.run(_load, "budget reload")

    def reload_archive_settings(self) -> None:
        def _load():
            settings = self.db.get_archive_settings()
            if settings is None:
                settings = ArchiveSettings()
                self.db.save_archive_settings(settings)
            self.archive_settings = settings

        self.run(_load, "archive settings reload")

    def reload_transactions(self) -> None:
        """Load the recent window of active transactions, then auto-archive if enabled."""

        def _load():
            cutoff = self.recent_window_start()
            self.transactions = tuple(self.db.list_transactions(start_date=cutoff))
            logger.debug("Loaded %d transactions since %s", len(self.transactions), cutoff)

            if self.archive_settings.auto_archive:
                from pocketledger.domain.archive import ArchiveService

                ArchiveService(self).auto_archive()

        self.run(_load, "transaction reload")

    def reload_archived(self, page: int = 0, limit: int = DEFAULT_ARCHIVE_PAGE_SIZE) -> list[ArchivedTransaction]:
        """Load one page of archived transactions; page 0 replaces, later pages append."""

        def _load():
            rows = self.db.list_archived_transactions(limit=limit, offset=page * limit)
            if page == 0:
                self.archived_transactions = tuple(rows)
            else:
                self.archived_transactions = self.archived_transactions + tuple(rows)
            return rows

        return self.run(_load, "archived transaction reload", default=[])

    def reload_all(self) -> None:
        self.reload_archive_settings()
        self.reload_assets()
        self.reload_budgets()
        self.reload_transactions()

    # Projection updates, applied after a successful commit
    def apply_asset_changes(self, changed: Iterable[Asset]) -> None:
        by_id = {asset.id: asset for asset in self.assets}
        for asset in changed:
            by_id[asset.id] = asset
        self.assets = tuple(sort_assets_by_amount(by_id.values()))

    def remove_asset(self, asset_id: int) -> None:
        self.assets = tuple(asset for asset in self.assets if asset.id != asset_id)

    def apply_budget_changes(self, changed: Iterable[Budget]) -> None:
        by_id = {budget.id: budget for budget in self.budgets}
        for budget in changed:
            by_id[budget.id] = budget
        self.budgets = tuple(sorted(by_id.values(), key=lambda budget: budget.id))

    def remove_budget(self, budget_id: int) -> None:
        self.budgets = tuple(budget for budget in self.budgets if budget.id != budget_id)

    def recent_window_start(self) -> datetime:
        return months_before(self.now(), self.archive_settings.keep_recent_months)

    def upsert_transaction(self, transaction: Transaction) -> None:
        """Insert or replace a transaction; one dated before the recent window is dropped instead."""
        others = [txn for txn in self.transactions if txn.id != transaction.id]
        if transaction.date >= self.recent_window_start():
            others.append(transaction)
        self.transactions = tuple(
            sorted(others, key=lambda txn: (txn.date, txn.id or 0), reverse=True)
        )

    def remove_transactions(self, transaction_ids: Iterable[int]) -> None:
        dropped = set(transaction_ids)
        self.transactions = tuple(txn for txn in self.transactions if txn.id not in dropped)
