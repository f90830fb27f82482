"""Undo buffer and append-only audit history."""

import json
import logging
from collections import deque
from datetime import timedelta
from typing import Iterator, Optional, TYPE_CHECKING

from pocketledger.config import UNDO_CAPACITY
from pocketledger.domain.entities import HistoryAction, HistoryRecord, Transaction
from pocketledger.domain.serialization import transaction_to_dict

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)

RESTORED_FROM_KEY = "restored_from"


class UndoBuffer:
    """Bounded, newest-first buffer of recently deleted transactions.

    Lives in memory only; its content is lost when the process exits.
    """

    def __init__(self, capacity: int = UNDO_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Undo capacity must be positive, got {capacity}")
        self._items: deque[Transaction] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen

    def push(self, transaction: Transaction) -> None:
        """Add a deleted transaction, evicting the oldest entry when full."""
        self._items.appendleft(transaction)

    def latest(self) -> Optional[Transaction]:
        return self._items[0] if self._items else None

    def remove(self, transaction_id: Optional[int]) -> Optional[Transaction]:
        """Remove and return the entry for a transaction ID, if buffered."""
        for item in self._items:
            if item.id == transaction_id:
                self._items.remove(item)
                return item
        return None

    def clear(self) -> None:
        self._items.clear()

    def __iter__(self) -> Iterator[Transaction]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, transaction_id: object) -> bool:
        return any(item.id == transaction_id for item in self._items)


def apply_retention(ledger: "Ledger") -> int:
    """Prune history according to the configured retention policy.

    Returns:
        Number of removed records (0 when no policy is configured)
    """
    settings = ledger.settings
    if not settings.history_retention_enabled:
        return 0

    older_than = None
    if settings.history_max_age_days is not None:
        older_than = ledger.now() - timedelta(days=settings.history_max_age_days)

    removed = ledger.db.prune_history(
        keep_latest=settings.history_max_entries, older_than=older_than
    )
    if removed:
        logger.info("Pruned %d history records", removed)
    return removed


def record_history(
    ledger: "Ledger",
    transaction: Transaction,
    action: HistoryAction,
    transaction_id: Optional[int] = None,
    restored_from: Optional[int] = None,
) -> int:
    """Append an audit record with a full snapshot of ``transaction``.

    Intended to run inside the caller's atomic unit so that the record and
    the change it describes commit together.

    Args:
        ledger: Ledger context
        transaction: Transaction to snapshot
        action: Audited action
        transaction_id: ID to file the record under. Defaults to ``transaction.id``
        restored_from: For restore records, ID of the delete record being undone

    Returns:
        History record ID
    """
    snapshot = transaction_to_dict(transaction)
    if restored_from is not None:
        snapshot[RESTORED_FROM_KEY] = restored_from

    record_id = ledger.db.add_history_record(
        transaction_id=transaction.id if transaction_id is None else transaction_id,
        action=action,
        timestamp=ledger.now(),
        data=json.dumps(snapshot),
    )
    apply_retention(ledger)
    return record_id


class HistoryService:
    """Read access to the audit history and on-demand retention."""

    def __init__(self, ledger: "Ledger"):
        """Initialize history service.

        Args:
            ledger: Ledger context
        """
        self.ledger = ledger

    def list_history(self, limit: Optional[int] = None) -> list[HistoryRecord]:
        """List audit records, newest first, with decoded snapshots."""
        return self.ledger.run(
            lambda: self.ledger.db.list_history(limit=limit), "history listing", default=[]
        )

    def get_record(self, record_id: int) -> Optional[HistoryRecord]:
        return self.ledger.run(
            lambda: self.ledger.db.get_history_record(record_id), "history lookup"
        )

    def recently_deleted(self) -> list[Transaction]:
        """Transactions currently available for undo, newest first."""
        return list(self.ledger.undo_buffer)

    def prune(self) -> int:
        """Apply the retention policy now.

        Returns:
            Number of removed records
        """
        return self.ledger.run(
            lambda: self.ledger.db.run_atomic(lambda: apply_retention(self.ledger)),
            "history pruning",
            default=0,
        )
