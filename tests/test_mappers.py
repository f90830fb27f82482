"""Tests for database mappers."""

from datetime import datetime
from decimal import Decimal

from pocketledger.database.models import (
    Asset as ORMAsset,
    ArchivedTransaction as ORMArchivedTransaction,
    ArchiveSettings as ORMArchiveSettings,
    Budget as ORMBudget,
    Transaction as ORMTransaction,
    TransactionHistory as ORMTransactionHistory,
)
from pocketledger.database.mappers import (
    archive_settings_to_domain,
    archived_transaction_to_domain,
    asset_to_domain,
    budget_to_domain,
    history_to_domain,
    search_result_to_domain,
    to_money,
    transaction_to_domain,
)
from pocketledger.domain.entities import (
    Asset,
    ArchiveSettings,
    Budget,
    BudgetPeriod,
    HistoryAction,
    Transaction,
    TransactionSource,
    TransactionType,
)

WHEN = datetime(2024, 3, 10, 18, 45)


class TestAssetMapper:
    """Tests for Asset mapper."""

    def test_asset_to_domain(self):
        """Test converting ORM Asset to domain Asset."""
        orm_asset = ORMAsset(id=1, name="Wallet", amount=Decimal("99.5"), currency="PHP", image=None)

        domain_asset = asset_to_domain(orm_asset)

        assert isinstance(domain_asset, Asset)
        assert domain_asset.id == 1
        assert domain_asset.name == "Wallet"
        assert domain_asset.amount == Decimal("99.50")
        assert domain_asset.currency_code == "PHP"
        assert domain_asset.image_ref is None


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_transaction_to_domain(self):
        """Test converting ORM Transaction to domain Transaction."""
        orm_txn = ORMTransaction(
            id=3,
            type="expense",
            amount=Decimal("12.00"),
            category="Food",
            description="Lunch",
            location="Wallet",
            date=WHEN,
        )

        domain_txn = transaction_to_domain(orm_txn)

        assert isinstance(domain_txn, Transaction)
        assert domain_txn.type == TransactionType.EXPENSE
        assert domain_txn.amount == Decimal("12.00")
        assert domain_txn.date == WHEN

    def test_missing_text_columns_become_empty(self):
        orm_txn = ORMTransaction(id=4, type="income", amount=Decimal("1"), date=WHEN)

        domain_txn = transaction_to_domain(orm_txn)

        assert domain_txn.category == ""
        assert domain_txn.description == ""
        assert domain_txn.location == ""


class TestBudgetMapper:
    """Tests for Budget mapper."""

    def test_budget_to_domain(self):
        orm_budget = ORMBudget(id=2, category="Food", amount=Decimal("200"), period="Weekly", spent=None)

        domain_budget = budget_to_domain(orm_budget)

        assert isinstance(domain_budget, Budget)
        assert domain_budget.period == BudgetPeriod.WEEKLY
        assert domain_budget.spent == Decimal("0.00")


class TestArchiveMappers:
    """Tests for archive mappers."""

    def test_archived_transaction_to_domain(self):
        orm_archived = ORMArchivedTransaction(
            id=9,
            original_id=3,
            type="expense",
            amount=Decimal("5"),
            category="Food",
            description="",
            location="Wallet",
            date=WHEN,
            archived_date=datetime(2025, 1, 1),
        )

        archived = archived_transaction_to_domain(orm_archived)

        assert archived.original_id == 3
        assert archived.archived_date == datetime(2025, 1, 1)
        assert archived.to_transaction().id is None

    def test_archive_settings_to_domain(self):
        row = ORMArchiveSettings(id=1, auto_archive=False, archive_after_months=6, keep_recent_months=3)

        assert archive_settings_to_domain(row) == ArchiveSettings(
            auto_archive=False, archive_after_months=6, keep_recent_months=3
        )
        assert archive_settings_to_domain(None) is None


class TestHistoryMapper:
    """Tests for TransactionHistory mapper."""

    def test_history_to_domain_decodes_snapshot(self):
        row = ORMTransactionHistory(
            id=1, transaction_id=5, action="restore", timestamp=WHEN, data='{"amount": "1.00"}'
        )

        record = history_to_domain(row)

        assert record.action == HistoryAction.RESTORE
        assert record.snapshot == {"amount": "1.00"}


class TestSearchResultMapper:
    """Tests for tagging search results with their source."""

    def test_active_row(self):
        orm_txn = ORMTransaction(
            id=3, type="expense", amount=Decimal("1"), category="Food", description="", location="", date=WHEN
        )

        result = search_result_to_domain(orm_txn, TransactionSource.ACTIVE)

        assert result.source == TransactionSource.ACTIVE
        assert result.original_id is None
        assert result.archived_date is None

    def test_archived_row(self):
        orm_archived = ORMArchivedTransaction(
            id=1,
            original_id=3,
            type="income",
            amount=Decimal("1"),
            category="Gift",
            description="",
            location="",
            date=WHEN,
            archived_date=WHEN,
        )

        result = search_result_to_domain(orm_archived, TransactionSource.ARCHIVED)

        assert result.source == TransactionSource.ARCHIVED
        assert result.original_id == 3
        assert result.archived_date == WHEN


def test_to_money():
    assert to_money(None) == Decimal("0.00")
    assert to_money(1.5) == Decimal("1.50")
    assert str(to_money(Decimal("3"))) == "3.00"
