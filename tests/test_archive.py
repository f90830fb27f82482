"""Tests for the archive service."""

from datetime import datetime
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta

from pocketledger.domain.entities import TransactionSource
from pocketledger.domain.errors import ValidationError


@pytest.fixture
def old_expense(reconciliation, ledger, wallet):
    """Expense of 30 on the wallet, dated 13 months ago."""
    return reconciliation.create_transaction(
        type="expense",
        amount=30,
        category="Food",
        location="Wallet",
        date=ledger.now() - relativedelta(months=13),
        description="Old groceries",
    )


class TestAutoArchive:
    """Tests for age-based archiving."""

    def test_moves_old_transaction_and_keeps_balance(self, archive_service, ledger, temp_db, old_expense):
        """Scenario E: archiving does not touch the wallet balance."""
        assert temp_db.get_asset_by_name("Wallet").amount == Decimal("70.00")

        moved = archive_service.auto_archive(12)

        assert moved == 1
        assert temp_db.get_transaction(old_expense.id) is None
        assert all(txn.id != old_expense.id for txn in ledger.transactions)
        archived = temp_db.list_archived_transactions()
        assert len(archived) == 1
        assert archived[0].original_id == old_expense.id
        assert archived[0].archived_date == ledger.now()
        assert temp_db.get_asset_by_name("Wallet").amount == Decimal("70.00")

    def test_recent_transactions_stay_active(self, archive_service, reconciliation, ledger, temp_db, wallet):
        recent = reconciliation.create_transaction(
            type="expense",
            amount=5,
            location="Wallet",
            date=ledger.now() - relativedelta(months=11),
        )

        assert archive_service.auto_archive() == 0
        assert temp_db.get_transaction(recent.id) is not None

    def test_runs_on_transaction_reload(self, ledger, temp_db, old_expense):
        ledger.reload_transactions()

        assert temp_db.count_archived_transactions() == 1
        assert temp_db.get_transaction(old_expense.id) is None

    def test_reload_skips_archiving_when_disabled(self, archive_service, ledger, temp_db, old_expense):
        archive_service.update_archive_settings(auto_archive=False)

        ledger.reload_transactions()

        assert temp_db.count_archived_transactions() == 0

    def test_invalid_threshold(self, archive_service):
        with pytest.raises(ValidationError):
            archive_service.auto_archive(0)


class TestArchiveRange:
    """Tests for explicit range archiving."""

    def test_range_is_inclusive_of_whole_end_day(self, archive_service, reconciliation, temp_db, wallet):
        inside = reconciliation.create_transaction(
            type="expense", amount=10, location="Wallet", date=datetime(2024, 1, 31, 18, 0)
        )
        start = reconciliation.create_transaction(
            type="expense", amount=10, location="Wallet", date=datetime(2024, 1, 1, 0, 0)
        )
        outside = reconciliation.create_transaction(
            type="expense", amount=10, location="Wallet", date=datetime(2024, 2, 1, 0, 0)
        )

        moved = archive_service.archive_range("2024-01-01", "2024-01-31")

        assert moved == 2
        assert temp_db.get_transaction(inside.id) is None
        assert temp_db.get_transaction(start.id) is None
        assert temp_db.get_transaction(outside.id) is not None
        assert temp_db.get_asset_by_name("Wallet").amount == Decimal("70.00")

    def test_empty_range(self, archive_service):
        assert archive_service.archive_range("2020-01-01", "2020-12-31") == 0

    def test_reversed_range_rejected(self, archive_service):
        with pytest.raises(ValidationError):
            archive_service.archive_range("2024-02-01", "2024-01-01")


class TestRestoreAndDelete:
    """Tests for restoring and permanently deleting archived rows."""

    def test_restore_does_not_replay_effects(self, archive_service, temp_db, ledger, old_expense):
        archive_service.auto_archive()
        archived_id = temp_db.list_archived_transactions()[0].id

        restored = archive_service.restore_archived(archived_id)

        assert restored.id != old_expense.id
        assert restored.amount == Decimal("30.00")
        assert temp_db.get_archived_transaction(archived_id) is None
        assert temp_db.get_transaction(restored.id) is not None
        assert temp_db.get_asset_by_name("Wallet").amount == Decimal("70.00")

    def test_restore_recent_row_returns_to_projection(
        self, archive_service, reconciliation, ledger, temp_db, wallet
    ):
        created = reconciliation.create_transaction(type="income", amount=15, location="Wallet")
        archive_service.archive_range(created.date, created.date)
        assert created not in ledger.transactions

        restored = archive_service.restore_archived(temp_db.list_archived_transactions()[0].id)

        assert restored in ledger.transactions

    def test_restore_unknown(self, archive_service):
        assert archive_service.restore_archived(999) is None

    def test_permanent_delete(self, archive_service, temp_db, old_expense):
        archive_service.auto_archive()
        archived_id = temp_db.list_archived_transactions()[0].id

        assert archive_service.permanent_delete(archived_id) is True
        assert archive_service.permanent_delete(archived_id) is False
        assert temp_db.count_archived_transactions() == 0
        assert temp_db.get_asset_by_name("Wallet").amount == Decimal("70.00")


class TestStatisticsAndListing:
    """Tests for archive statistics and pagination."""

    def test_empty_statistics(self, archive_service):
        stats = archive_service.statistics()

        assert stats.total_archived == 0
        assert stats.oldest_date is None
        assert stats.newest_date is None
        assert stats.total_income == Decimal("0.00")
        assert stats.total_expenses == Decimal("0.00")

    def test_statistics(self, archive_service, reconciliation, wallet):
        reconciliation.create_transaction(
            type="income", amount=100, location="Wallet", date=datetime(2023, 1, 5)
        )
        reconciliation.create_transaction(
            type="expense", amount="30.25", location="Wallet", date=datetime(2023, 3, 9)
        )
        archive_service.auto_archive()

        stats = archive_service.statistics()

        assert stats.total_archived == 2
        assert stats.oldest_date == datetime(2023, 1, 5)
        assert stats.newest_date == datetime(2023, 3, 9)
        assert stats.total_income == Decimal("100.00")
        assert stats.total_expenses == Decimal("30.25")

    def test_pagination(self, archive_service, reconciliation, ledger, wallet):
        for month in (1, 2, 3):
            reconciliation.create_transaction(
                type="expense", amount=1, location="Wallet", date=datetime(2022, month, 1)
            )
        archive_service.auto_archive()

        first = archive_service.list_archived(page=0, limit=2)
        second = archive_service.list_archived(page=1, limit=2)

        assert [row.date.month for row in first] == [3, 2]
        assert [row.date.month for row in second] == [1]
        assert len(ledger.archived_transactions) == 3
        assert archive_service.count_archived() == 3

    def test_invalid_page(self, archive_service):
        with pytest.raises(ValidationError):
            archive_service.list_archived(page=-1)


class TestSearchAll:
    """Tests for searching active and archived transactions."""

    def test_active_only(self, archive_service, reconciliation, old_expense, wallet):
        reconciliation.create_transaction(type="expense", amount=3, location="Wallet", category="Groceries")
        archive_service.auto_archive()

        results = archive_service.search_all("GROCER")

        assert len(results) == 1
        assert results[0].source == TransactionSource.ACTIVE

    def test_include_archived_ordered_by_date(self, archive_service, reconciliation, old_expense, wallet):
        reconciliation.create_transaction(type="expense", amount=3, location="Wallet", category="Groceries")
        archive_service.auto_archive()

        results = archive_service.search_all("grocer", include_archived=True)

        assert [r.source for r in results] == [TransactionSource.ACTIVE, TransactionSource.ARCHIVED]
        assert results[1].original_id == old_expense.id
        assert results[0].date > results[1].date

    def test_matches_location(self, archive_service, reconciliation, wallet):
        reconciliation.create_transaction(type="income", amount=3, location="Wallet")

        assert len(archive_service.search_all("wall")) == 1

    def test_wildcards_are_literal(self, archive_service, reconciliation, wallet):
        reconciliation.create_transaction(type="expense", amount=3, location="Wallet", description="50% off")
        reconciliation.create_transaction(type="expense", amount=3, location="Wallet", description="Lunch")

        results = archive_service.search_all("%")

        assert [r.description for r in results] == ["50% off"]


class TestArchiveSettings:
    """Tests for persisted archive settings."""

    def test_defaults_persisted_on_first_load(self, ledger, temp_db):
        settings = temp_db.get_archive_settings()

        assert settings.auto_archive is True
        assert settings.archive_after_months == 12
        assert settings.keep_recent_months == 3
        assert ledger.archive_settings == settings

    def test_update(self, archive_service, ledger, temp_db):
        archive_service.update_archive_settings(archive_after_months=6, keep_recent_months=2)

        assert temp_db.get_archive_settings().archive_after_months == 6
        assert ledger.archive_settings.keep_recent_months == 2
        assert ledger.archive_settings.auto_archive is True

    @pytest.mark.parametrize("months", [0, -1])
    def test_rejects_non_positive_months(self, archive_service, months):
        with pytest.raises(ValidationError):
            archive_service.update_archive_settings(archive_after_months=months)

    def test_recent_window_limits_projection(self, archive_service, reconciliation, ledger, wallet):
        archive_service.update_archive_settings(auto_archive=False)
        old = reconciliation.create_transaction(
            type="expense", amount=1, location="Wallet", date=ledger.now() - relativedelta(months=4)
        )
        recent = reconciliation.create_transaction(
            type="expense", amount=1, location="Wallet", date=ledger.now() - relativedelta(months=2)
        )

        ledger.reload_transactions()

        assert recent in ledger.transactions
        assert old not in ledger.transactions

    def test_writes_outside_recent_window_skip_projection(
        self, archive_service, reconciliation, ledger, temp_db, wallet
    ):
        archive_service.update_archive_settings(auto_archive=False)
        old = reconciliation.create_transaction(
            type="expense", amount=1, location="Wallet", date=ledger.now() - relativedelta(months=4)
        )
        assert old not in ledger.transactions

        reconciliation.delete_transaction(old.id)
        restored = reconciliation.undo_last_delete()

        assert temp_db.get_transaction(restored.id) is not None
        assert restored not in ledger.transactions

    def test_update_moving_date_out_of_window_drops_from_projection(
        self, archive_service, reconciliation, ledger, temp_db, wallet
    ):
        archive_service.update_archive_settings(auto_archive=False)
        created = reconciliation.create_transaction(type="expense", amount=1, location="Wallet")
        assert created in ledger.transactions

        moved = reconciliation.update_transaction(
            created.id, date=ledger.now() - relativedelta(months=4)
        )

        assert temp_db.get_transaction(created.id) == moved
        assert all(txn.id != created.id for txn in ledger.transactions)
