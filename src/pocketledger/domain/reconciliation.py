"""Transaction reconciliation service.

Every mutation of the transaction log is applied together with its effect on
asset balances and budget ``spent`` totals, as one atomic store unit:

- Income adds its amount to the asset named by ``location``; expense subtracts it.
- Expenses add their amount to every budget of the same category.
- Budget ``spent`` never drops below zero.

Projections on the ledger are refreshed only after the unit commits.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from pocketledger.database.base import Database
from pocketledger.domain.entities import (
    Asset,
    Budget,
    HistoryAction,
    Transaction,
)
from pocketledger.domain.errors import (
    ConflictError,
    MissingAssetError,
    NotFoundError,
    ValidationError,
    asset_not_found,
    history_record_not_found,
    transaction_not_found,
)
from pocketledger.domain.history import RESTORED_FROM_KEY, record_history
from pocketledger.domain.serialization import (
    coerce_datetime,
    coerce_transaction_type,
    transaction_from_dict,
)
from pocketledger.utils.amount_parser import parse_positive_amount
from pocketledger.utils.date_parser import start_of_day

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class _Effects:
    """Assets and budgets touched inside one atomic unit, keyed by ID."""

    assets: dict[int, Asset] = field(default_factory=dict)
    budgets: dict[int, Budget] = field(default_factory=dict)


def _validate_amount(amount) -> Decimal:
    if amount is None:
        raise ValidationError("Amount is required")
    try:
        return parse_positive_amount(amount)
    except ValueError as e:
        raise ValidationError(str(e))


def _validate_date(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return start_of_day(value)
    return coerce_datetime(value)


class ReconciliationService:
    """Creates, updates, deletes and restores transactions with their side effects."""

    def __init__(self, ledger: "Ledger"):
        """Initialize reconciliation service.

        Args:
            ledger: Ledger context whose store and projections are kept in sync
        """
        self.ledger = ledger

    @property
    def db(self) -> Database:
        return self.ledger.db

    @property
    def strict_assets(self) -> bool:
        return self.ledger.settings.strict_assets

    def build_transaction(
        self,
        type,
        amount,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date=None,
        description: Optional[str] = None,
    ) -> Transaction:
        """Validate and normalize user input into an unsaved transaction.

        Raises:
            ValidationError: If the type or amount is missing or invalid
        """
        if type is None or (isinstance(type, str) and not type.strip()):
            raise ValidationError("Transaction type is required")

        return Transaction(
            id=None,
            type=coerce_transaction_type(type),
            amount=_validate_amount(amount),
            category=(category or "").strip(),
            description=description or "",
            location=(location or "").strip(),
            date=self.ledger.now() if date is None else _validate_date(date),
        )

    def create_transaction(
        self,
        type,
        amount,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date=None,
        description: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Create a transaction and apply its asset and budget effects.

        Args:
            type: 'income' or 'expense' (any case) or TransactionType
            amount: Positive amount
            category: Category name; expenses update budgets of this category
            location: Name of the asset the money moves in or out of
            date: Transaction timestamp. Defaults to now
            description: Optional description. Defaults to empty

        Returns:
            The created transaction with its assigned ID, or None if the store
            is not available

        Raises:
            ValidationError: If the input is invalid (no store access happens)
            MissingAssetError: In strict mode, if ``location`` is not a known asset
            StoreError: If the atomic unit failed and was rolled back
        """
        draft = self.build_transaction(type, amount, category, location, date, description)

        def _create():
            effects = _Effects()
            created = self._insert_with_effects(draft, effects)
            return created, effects

        result = self.ledger.run(lambda: self.db.run_atomic(_create), "transaction create")
        if result is None:
            return None

        created, effects = result
        self._publish(effects)
        self.ledger.upsert_transaction(created)
        logger.info(
            "Created %s transaction %s of %s at '%s'",
            created.type.value,
            created.id,
            created.amount,
            created.location,
        )
        return created

    def update_transaction(
        self,
        transaction_id: int,
        *,
        type=None,
        amount=None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date=None,
        description: Optional[str] = None,
    ) -> Optional[Transaction]:
        """Update a transaction, applying only the difference of its effects.

        Fields left as None keep their stored value. When the location
        changes, the old asset gets the full original effect reversed and the
        new asset the full new effect; otherwise the asset receives only the
        net delta. Budgets follow the same pattern on category.

        Returns:
            The updated transaction, or None if the store is not available

        Raises:
            ValidationError: If a new value is invalid
            NotFoundError: If the transaction does not exist
            MissingAssetError: In strict mode, if the new location is not a known asset
            StoreError: If the atomic unit failed and was rolled back
        """
        changes = {}
        if type is not None:
            changes["type"] = coerce_transaction_type(type)
        if amount is not None:
            changes["amount"] = _validate_amount(amount)
        if category is not None:
            changes["category"] = category.strip()
        if location is not None:
            changes["location"] = location.strip()
        if date is not None:
            changes["date"] = _validate_date(date)
        if description is not None:
            changes["description"] = description

        def _update():
            original = self.db.get_transaction(transaction_id)
            if original is None:
                raise NotFoundError(transaction_not_found(transaction_id))

            updated = replace(original, **changes)
            effects = _Effects()
            self.db.update_transaction(updated)
            self._reconcile_assets(original, updated, effects)
            self._reconcile_budgets(original, updated, effects)
            return updated, effects

        result = self.ledger.run(lambda: self.db.run_atomic(_update), "transaction update")
        if result is None:
            return None

        updated, effects = result
        self._publish(effects)
        self.ledger.upsert_transaction(updated)
        logger.info("Updated transaction %s", updated.id)
        return updated

    def save_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        """Persist every field of an edited transaction entity."""
        if transaction.id is None:
            raise ValidationError("Cannot update a transaction without an ID")
        return self.update_transaction(
            transaction.id,
            type=transaction.type,
            amount=transaction.amount,
            category=transaction.category,
            location=transaction.location,
            date=transaction.date,
            description=transaction.description,
        )

    def delete_transaction(self, transaction_id: int) -> bool:
        """Delete a transaction, reversing its effects and auditing the deletion.

        On success the deleted transaction is pushed into the undo buffer.

        Returns:
            True if deleted, False if the transaction does not exist or the
            store is not available

        Raises:
            StoreError: If the atomic unit failed and was rolled back
        """

        def _delete():
            txn = self.db.get_transaction(transaction_id)
            if txn is None:
                return None

            effects = _Effects()
            self._apply_asset_effect(txn.location, -txn.signed_amount, effects, enforce=False)
            if txn.is_expense:
                self._adjust_budgets(txn.category, -txn.amount, effects)
            record_history(self.ledger, txn, HistoryAction.DELETE)
            self.db.delete_transaction(txn.id)
            return txn, effects

        result = self.ledger.run(lambda: self.db.run_atomic(_delete), "transaction delete")
        if result is None:
            logger.warning("Transaction %s not deleted: not found or store unavailable", transaction_id)
            return False

        deleted, effects = result
        self._publish(effects)
        self.ledger.remove_transactions([deleted.id])
        self.ledger.undo_buffer.push(deleted)
        logger.info("Deleted transaction %s", deleted.id)
        return True

    def restore_transaction(
        self, snapshot: Transaction, delete_record_id: Optional[int] = None
    ) -> Optional[Transaction]:
        """Re-create a deleted transaction from its snapshot.

        The restored transaction gets a new ID; its effects are applied again
        exactly as on creation, and a ``restore`` history record is written
        that points at the ``delete`` record it undoes.

        Args:
            snapshot: The deleted transaction
            delete_record_id: History record of the deletion. Defaults to the
                newest ``delete`` record filed under ``snapshot.id``

        Returns:
            The re-created transaction, or None if the store is not available
        """
        draft = self.build_transaction(
            snapshot.type,
            snapshot.amount,
            snapshot.category,
            snapshot.location,
            snapshot.date,
            snapshot.description,
        )

        def _restore():
            effects = _Effects()
            source_id = delete_record_id
            if source_id is None:
                source_id = self._latest_delete_record_id(snapshot.id)
            created = self._insert_with_effects(draft, effects)
            record_history(self.ledger, snapshot, HistoryAction.RESTORE, restored_from=source_id)
            return created, effects

        result = self.ledger.run(lambda: self.db.run_atomic(_restore), "transaction restore")
        if result is None:
            return None

        created, effects = result
        self._publish(effects)
        self.ledger.upsert_transaction(created)
        self.ledger.undo_buffer.remove(snapshot.id)
        logger.info("Restored transaction %s as %s", snapshot.id, created.id)
        return created

    def undo_last_delete(self) -> Optional[Transaction]:
        """Restore the most recently deleted transaction still in the undo buffer."""
        latest = self.ledger.undo_buffer.latest()
        if latest is None:
            return None
        return self.restore_transaction(latest)

    def restore_from_history(self, record_id: int) -> Optional[Transaction]:
        """Restore a transaction from the snapshot of a ``delete`` history record.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If the record is not a deletion
            ConflictError: If the deletion has already been restored
        """
        if not self.ledger.store_ready:
            return self.ledger.run(lambda: None, "history restore")

        record = self.db.get_history_record(record_id)
        if record is None:
            raise NotFoundError(history_record_not_found(record_id))
        if record.action != HistoryAction.DELETE:
            raise ValidationError(f"History record {record_id} is not a deletion")

        already_restored = any(
            other.action == HistoryAction.RESTORE
            and other.snapshot.get(RESTORED_FROM_KEY) == record.id
            for other in self.db.list_history()
        )
        if already_restored:
            raise ConflictError(f"History record {record_id} has already been restored")

        return self.restore_transaction(transaction_from_dict(record.snapshot), record.id)

    def _latest_delete_record_id(self, transaction_id: Optional[int]) -> Optional[int]:
        for record in self.db.list_history():
            if record.action == HistoryAction.DELETE and record.transaction_id == transaction_id:
                return record.id
        return None

    # Effect helpers; all run inside an atomic unit
    def _insert_with_effects(self, draft: Transaction, effects: _Effects) -> Transaction:
        transaction_id = self.db.create_transaction(
            type=draft.type,
            amount=draft.amount,
            category=draft.category,
            description=draft.description,
            location=draft.location,
            date=draft.date,
        )
        created = replace(draft, id=transaction_id)
        self._apply_asset_effect(created.location, created.signed_amount, effects, enforce=True)
        if created.is_expense:
            self._adjust_budgets(created.category, created.amount, effects)
        return created

    def _reconcile_assets(self, original: Transaction, updated: Transaction, effects: _Effects) -> None:
        if original.location != updated.location:
            self._apply_asset_effect(
                original.location, -original.signed_amount, effects, enforce=False
            )
            self._apply_asset_effect(updated.location, updated.signed_amount, effects, enforce=True)
            return

        delta = updated.signed_amount - original.signed_amount
        if delta:
            self._apply_asset_effect(updated.location, delta, effects, enforce=True)

    def _reconcile_budgets(self, original: Transaction, updated: Transaction, effects: _Effects) -> None:
        if original.is_expense and updated.is_expense and original.category == updated.category:
            delta = updated.amount - original.amount
            if delta:
                self._adjust_budgets(updated.category, delta, effects)
            return

        if original.is_expense:
            self._adjust_budgets(original.category, -original.amount, effects)
        if updated.is_expense:
            self._adjust_budgets(updated.category, updated.amount, effects)

    def _apply_asset_effect(
        self, location: str, delta: Decimal, effects: _Effects, *, enforce: bool
    ) -> None:
        """Add ``delta`` to the asset named ``location``.

        A missing asset is skipped with a warning. In strict mode, effects
        that apply new money (``enforce=True``) raise MissingAssetError instead;
        reversals of old effects are always lenient.
        """
        strict = enforce and self.strict_assets
        if not location and not strict:
            return

        asset = self.db.get_asset_by_name(location) if location else None
        if asset is None:
            if strict:
                raise MissingAssetError(asset_not_found(location))
            logger.warning("No asset named '%s'; balance effect of %s skipped", location, delta)
            return

        new_amount = asset.amount + delta
        self.db.update_asset(asset.id, amount=new_amount)
        effects.assets[asset.id] = replace(asset, amount=new_amount)

    def _adjust_budgets(self, category: str, delta: Decimal, effects: _Effects) -> None:
        """Add ``delta`` to ``spent`` of every budget in ``category``, floored at zero."""
        if not category:
            return

        for budget in self.db.list_budgets(category=category):
            spent = max(ZERO, budget.spent + delta)
            if spent == budget.spent:
                continue
            self.db.update_budget(budget.id, spent=spent)
            effects.budgets[budget.id] = replace(budget, spent=spent)

    def _publish(self, effects: _Effects) -> None:
        if effects.assets:
            self.ledger.apply_asset_changes(effects.assets.values())
        if effects.budgets:
            self.ledger.apply_budget_changes(effects.budgets.values())
