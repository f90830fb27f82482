"""Tests for the reconciliation service."""

from collections import defaultdict
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from pocketledger.config import LedgerSettings
from pocketledger.database.factories import create_sqlite_database
from pocketledger.domain.entities import HistoryAction, TransactionType
from pocketledger.domain.errors import (
    ConflictError,
    MissingAssetError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from pocketledger.domain.ledger import Ledger
from pocketledger.domain.reconciliation import ReconciliationService


def _balance(db, name):
    return db.get_asset_by_name(name).amount


def _spent(db, budget_id):
    return db.get_budget(budget_id).spent


class TestCreate:
    """Create applies asset and budget effects."""

    def test_expense_reduces_asset(self, reconciliation, temp_db, wallet):
        """Scenario A: expense of 30 on a 100.00 wallet leaves 70.00."""
        created = reconciliation.create_transaction(
            type="expense", amount=30, category="Food", location="Wallet"
        )

        assert created.id is not None
        assert _balance(temp_db, "Wallet") == Decimal("70.00")

    def test_income_increases_asset(self, reconciliation, temp_db, wallet):
        reconciliation.create_transaction(type="Income", amount="25.50", location="Wallet")

        assert _balance(temp_db, "Wallet") == Decimal("125.50")

    def test_expense_increments_matching_budgets(self, reconciliation, temp_db, budget_service):
        monthly = budget_service.add_budget("Food", 200, "Monthly")
        weekly = budget_service.add_budget("Food", 50, "Weekly")
        other = budget_service.add_budget("Transport", 100, "Monthly")

        reconciliation.create_transaction(type="expense", amount=40, category="Food")

        assert _spent(temp_db, monthly.id) == Decimal("40.00")
        assert _spent(temp_db, weekly.id) == Decimal("40.00")
        assert _spent(temp_db, other.id) == Decimal("0.00")

    def test_income_never_touches_budgets(self, reconciliation, temp_db, food_budget):
        reconciliation.create_transaction(type="income", amount=40, category="Food")

        assert _spent(temp_db, food_budget.id) == Decimal("0.00")

    def test_defaults_description_and_date(self, reconciliation):
        created = reconciliation.create_transaction(type="expense", amount=5, category="Food")

        assert created.description == ""
        assert created.date == reconciliation.ledger.now()
        assert created.type == TransactionType.EXPENSE

    def test_projections_updated_after_commit(self, reconciliation, ledger, wallet, food_budget):
        created = reconciliation.create_transaction(
            type="expense", amount=30, category="Food", location="Wallet"
        )

        assert ledger.transactions[0] == created
        assert ledger.assets[0].amount == Decimal("70.00")
        assert ledger.budgets[0].spent == Decimal("30.00")

    def test_missing_asset_is_skipped_in_lenient_mode(self, reconciliation, temp_db, wallet):
        created = reconciliation.create_transaction(type="expense", amount=30, location="Nowhere")

        assert temp_db.get_transaction(created.id) is not None
        assert _balance(temp_db, "Wallet") == Decimal("100.00")

    @pytest.mark.parametrize("amount", [0, "-5", "abc", "NaN", "Infinity", None, ""])
    def test_invalid_amount_rejected(self, reconciliation, temp_db, amount):
        with pytest.raises(ValidationError):
            reconciliation.create_transaction(type="expense", amount=amount, location="Wallet")

        assert temp_db.list_transactions() == []

    @pytest.mark.parametrize("type_", ["transfer", "", None])
    def test_invalid_type_rejected(self, reconciliation, type_):
        with pytest.raises(ValidationError):
            reconciliation.create_transaction(type=type_, amount=10)

    def test_validation_happens_before_store_access(self, clock, tmp_path):
        """Validation errors surface even when the store is not connected."""
        db = create_sqlite_database(database_path=str(tmp_path / "offline.db"))
        service = ReconciliationService(Ledger(db, clock=clock))

        with pytest.raises(ValidationError):
            service.create_transaction(type="expense", amount=-1)


class TestUpdate:
    """Update applies only the difference versus the stored original."""

    def test_amount_change_applies_delta(self, reconciliation, temp_db, wallet):
        """Scenario B: 30 -> 50 on the same wallet leaves 50.00."""
        created = reconciliation.create_transaction(
            type="expense", amount=30, category="Food", location="Wallet"
        )

        reconciliation.update_transaction(created.id, amount=50)

        assert _balance(temp_db, "Wallet") == Decimal("50.00")

    def test_category_change_moves_spent(self, reconciliation, temp_db, budget_service, food_budget):
        """Scenario C: moving an expense from Food to Transport."""
        transport = budget_service.add_budget("Transport", 100, "Monthly")
        created = reconciliation.create_transaction(type="expense", amount=40, category="Food")
        assert _spent(temp_db, food_budget.id) == Decimal("40.00")

        reconciliation.update_transaction(created.id, category="Transport")

        assert _spent(temp_db, food_budget.id) == Decimal("0.00")
        assert _spent(temp_db, transport.id) == Decimal("40.00")

    def test_location_change_moves_full_effect(self, reconciliation, temp_db, wallet, bank):
        created = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")

        reconciliation.update_transaction(created.id, location="Bank", amount=45)

        assert _balance(temp_db, "Wallet") == Decimal("100.00")
        assert _balance(temp_db, "Bank") == Decimal("455.00")

    def test_type_change_expense_to_income(self, reconciliation, temp_db, wallet, food_budget):
        created = reconciliation.create_transaction(
            type="expense", amount=40, category="Food", location="Wallet"
        )

        reconciliation.update_transaction(created.id, type="income")

        assert _balance(temp_db, "Wallet") == Decimal("140.00")
        assert _spent(temp_db, food_budget.id) == Decimal("0.00")

    def test_type_change_income_to_expense(self, reconciliation, temp_db, wallet, food_budget):
        created = reconciliation.create_transaction(
            type="income", amount=40, category="Food", location="Wallet"
        )

        reconciliation.update_transaction(created.id, type="expense")

        assert _balance(temp_db, "Wallet") == Decimal("60.00")
        assert _spent(temp_db, food_budget.id) == Decimal("40.00")

    def test_description_only_change_has_no_effect(self, reconciliation, temp_db, wallet, food_budget):
        created = reconciliation.create_transaction(
            type="expense", amount=40, category="Food", location="Wallet"
        )

        updated = reconciliation.update_transaction(created.id, description="Lunch")

        assert updated.description == "Lunch"
        assert _balance(temp_db, "Wallet") == Decimal("60.00")
        assert _spent(temp_db, food_budget.id) == Decimal("40.00")

    def test_save_transaction_persists_entity(self, reconciliation, temp_db, wallet):
        from dataclasses import replace

        created = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")

        reconciliation.save_transaction(replace(created, amount=Decimal("10.00")))

        assert temp_db.get_transaction(created.id).amount == Decimal("10.00")
        assert _balance(temp_db, "Wallet") == Decimal("90.00")

    def test_unknown_transaction_raises(self, reconciliation):
        with pytest.raises(NotFoundError):
            reconciliation.update_transaction(999, amount=10)

    def test_invalid_new_amount_rejected(self, reconciliation, temp_db, wallet):
        created = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")

        with pytest.raises(ValidationError):
            reconciliation.update_transaction(created.id, amount="-3")

        assert _balance(temp_db, "Wallet") == Decimal("70.00")


class TestDelete:
    """Delete reverses effects, audits, and buffers for undo."""

    def test_delete_reverts_and_records(self, reconciliation, temp_db, ledger, wallet):
        """Scenario D."""
        created = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")

        assert reconciliation.delete_transaction(created.id) is True

        assert _balance(temp_db, "Wallet") == Decimal("100.00")
        assert temp_db.get_transaction(created.id) is None
        history = temp_db.list_history()
        assert len(history) == 1
        assert history[0].action == HistoryAction.DELETE
        assert history[0].transaction_id == created.id
        assert history[0].snapshot["amount"] == "30.00"
        assert created.id in ledger.undo_buffer
        assert created not in ledger.transactions

    def test_delete_unknown_returns_false(self, reconciliation, temp_db):
        assert reconciliation.delete_transaction(999) is False
        assert temp_db.list_history() == []

    def test_budget_reversal_floors_at_zero(self, reconciliation, temp_db, food_budget):
        created = reconciliation.create_transaction(type="expense", amount=40, category="Food")
        # Simulate an accumulator that drifted below the transaction amount
        temp_db.update_budget(food_budget.id, spent=Decimal("10.00"))

        reconciliation.delete_transaction(created.id)

        assert _spent(temp_db, food_budget.id) == Decimal("0.00")

    def test_failed_unit_leaves_store_unchanged(
        self, reconciliation, temp_db, ledger, wallet, monkeypatch
    ):
        created = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")

        def failing_history(*args, **kwargs):
            raise OperationalError("INSERT INTO transaction_history", {}, Exception("disk I/O error"))

        monkeypatch.setattr(temp_db, "add_history_record", failing_history)

        with pytest.raises(StoreError):
            reconciliation.delete_transaction(created.id)

        assert temp_db.get_transaction(created.id) is not None
        assert _balance(temp_db, "Wallet") == Decimal("70.00")
        assert ledger.assets[0].amount == Decimal("70.00")
        assert len(ledger.undo_buffer) == 0


class TestRestore:
    """Restore re-runs Create from a snapshot."""

    def test_delete_then_undo_reproduces_state(self, reconciliation, temp_db, ledger, wallet, food_budget):
        created = reconciliation.create_transaction(
            type="expense", amount=30, category="Food", location="Wallet"
        )
        reconciliation.delete_transaction(created.id)

        restored = reconciliation.undo_last_delete()

        assert restored.id != created.id
        assert restored.amount == created.amount
        assert _balance(temp_db, "Wallet") == Decimal("70.00")
        assert _spent(temp_db, food_budget.id) == Decimal("30.00")
        assert len(ledger.undo_buffer) == 0
        assert [r.action for r in temp_db.list_history()] == [
            HistoryAction.RESTORE,
            HistoryAction.DELETE,
        ]

    def test_undo_with_empty_buffer(self, reconciliation):
        assert reconciliation.undo_last_delete() is None

    def test_restore_from_history(self, reconciliation, temp_db, wallet):
        created = reconciliation.create_transaction(type="income", amount=20, location="Wallet")
        reconciliation.delete_transaction(created.id)
        record = temp_db.list_history()[0]

        restored = reconciliation.restore_from_history(record.id)

        assert restored.location == "Wallet"
        assert _balance(temp_db, "Wallet") == Decimal("120.00")

    def test_restore_from_history_only_once(self, reconciliation, temp_db, wallet):
        created = reconciliation.create_transaction(type="income", amount=20, location="Wallet")
        reconciliation.delete_transaction(created.id)
        record = temp_db.list_history()[0]
        reconciliation.restore_from_history(record.id)

        with pytest.raises(ConflictError):
            reconciliation.restore_from_history(record.id)

    def test_restore_from_restore_record_rejected(self, reconciliation, temp_db, wallet):
        created = reconciliation.create_transaction(type="income", amount=20, location="Wallet")
        reconciliation.delete_transaction(created.id)
        reconciliation.undo_last_delete()
        restore_record = temp_db.list_history()[0]

        with pytest.raises(ValidationError):
            reconciliation.restore_from_history(restore_record.id)

    def test_undo_of_highest_row_gets_fresh_id(self, reconciliation, temp_db, wallet):
        kept = reconciliation.create_transaction(type="income", amount=5, location="Wallet")
        latest = reconciliation.create_transaction(type="income", amount=20, location="Wallet")
        reconciliation.delete_transaction(latest.id)

        restored = reconciliation.undo_last_delete()

        assert restored.id > latest.id > kept.id
        assert temp_db.get_transaction(latest.id) is None
        assert _balance(temp_db, "Wallet") == Decimal("125.00")

    def test_restore_older_deletion_after_unrelated_undo(self, reconciliation, temp_db, wallet):
        first = reconciliation.create_transaction(type="income", amount=20, location="Wallet")
        reconciliation.delete_transaction(first.id)
        first_delete = temp_db.list_history()[0]
        second = reconciliation.create_transaction(type="income", amount=5, location="Wallet")
        reconciliation.delete_transaction(second.id)
        reconciliation.undo_last_delete()

        restored = reconciliation.restore_from_history(first_delete.id)

        assert restored.amount == Decimal("20.00")
        assert _balance(temp_db, "Wallet") == Decimal("125.00")
        assert temp_db.list_history()[0].snapshot["restored_from"] == first_delete.id
        with pytest.raises(ConflictError):
            reconciliation.restore_from_history(first_delete.id)

    def test_restore_from_unknown_record(self, reconciliation):
        with pytest.raises(NotFoundError):
            reconciliation.restore_from_history(42)


class TestStrictAssets:
    """Strict mode refuses new effects on unknown assets."""

    @pytest.fixture
    def strict(self, temp_db, clock):
        ledger = Ledger(temp_db, LedgerSettings(strict_assets=True), clock=clock)
        ledger.reload_all()
        return ReconciliationService(ledger)

    def test_create_on_missing_asset_rolls_back(self, strict, temp_db):
        with pytest.raises(MissingAssetError):
            strict.create_transaction(type="expense", amount=10, location="Nowhere")

        assert temp_db.list_transactions() == []

    def test_create_without_location_rejected(self, strict):
        with pytest.raises(MissingAssetError):
            strict.create_transaction(type="expense", amount=10)

    def test_delete_after_asset_removed_still_succeeds(self, strict, temp_db, asset_service, wallet):
        created = strict.create_transaction(type="expense", amount=10, location="Wallet")
        asset_service.delete_asset(wallet.id)

        assert strict.delete_transaction(created.id) is True


class TestStoreUnavailable:
    """Operations on an unconnected store are logged no-ops."""

    @pytest.fixture
    def offline(self, tmp_path, clock):
        db = create_sqlite_database(database_path=str(tmp_path / "offline.db"))
        return ReconciliationService(Ledger(db, clock=clock))

    def test_create_returns_none(self, offline, caplog):
        assert offline.create_transaction(type="expense", amount=10) is None
        assert "Store not initialized" in caplog.text

    def test_delete_returns_false(self, offline):
        assert offline.delete_transaction(1) is False

    def test_update_returns_none(self, offline):
        assert offline.update_transaction(1, amount=5) is None


class TestInvariants:
    """Balances and spent totals stay consistent over mixed sequences."""

    def test_asset_balance_matches_log(self, reconciliation, temp_db, wallet, bank):
        baseline = {"Wallet": Decimal("100.00"), "Bank": Decimal("500.00")}
        a = reconciliation.create_transaction(type="expense", amount=30, location="Wallet")
        b = reconciliation.create_transaction(type="income", amount=200, location="Bank")
        c = reconciliation.create_transaction(type="expense", amount="12.34", location="Bank")
        reconciliation.update_transaction(a.id, amount=45, location="Bank")
        reconciliation.update_transaction(b.id, type="expense")
        reconciliation.delete_transaction(c.id)
        reconciliation.undo_last_delete()
        reconciliation.update_transaction(a.id, location="Wallet", type="income")

        expected = defaultdict(Decimal, baseline)
        for txn in temp_db.list_transactions():
            expected[txn.location] += txn.signed_amount

        assert _balance(temp_db, "Wallet") == expected["Wallet"]
        assert _balance(temp_db, "Bank") == expected["Bank"]

    def test_spent_never_negative(self, reconciliation, temp_db, food_budget):
        created = reconciliation.create_transaction(type="expense", amount=10, category="Food")

        # spent is lowered by hand so each shrinking update would push it below zero
        for amount, expected in [(2, "0.00"), (5, "3.50"), (1, "0.00"), (4, "3.50")]:
            temp_db.update_budget(food_budget.id, spent=Decimal("0.50"))
            reconciliation.update_transaction(created.id, amount=amount)
            spent = _spent(temp_db, food_budget.id)
            assert spent >= 0
            assert spent == Decimal(expected)

        temp_db.update_budget(food_budget.id, spent=Decimal("0.50"))
        reconciliation.update_transaction(created.id, category="Other")
        assert _spent(temp_db, food_budget.id) == Decimal("0.00")

        reconciliation.update_transaction(created.id, category="Food")
        temp_db.update_budget(food_budget.id, spent=Decimal("1.00"))
        reconciliation.delete_transaction(created.id)
        assert _spent(temp_db, food_budget.id) == Decimal("0.00")

    def test_spent_tracks_expenses_without_drift(self, reconciliation, temp_db, food_budget):
        for _ in range(10):
            reconciliation.create_transaction(type="expense", amount="0.10", category="Food")

        assert _spent(temp_db, food_budget.id) == Decimal("1.00")
