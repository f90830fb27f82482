"""Mapper functions to convert SQLAlchemy models into domain entities.

This layer isolates the conversion logic: column names follow the legacy
schema (``currency``, ``image``, ``data``) while domain entities use
descriptive names.
"""

import json
from decimal import Decimal
from typing import Optional

from pocketledger.domain import entities as domain
from pocketledger.database.models import (
    Asset as ORMAsset,
    Transaction as ORMTransaction,
    Budget as ORMBudget,
    ArchivedTransaction as ORMArchivedTransaction,
    ArchiveSettings as ORMArchiveSettings,
    TransactionHistory as ORMTransactionHistory,
)

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normalize a stored numeric value to a two-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS)


def asset_to_domain(orm_asset: ORMAsset) -> domain.Asset:
    """Convert SQLAlchemy Asset model to domain Asset entity."""
    return domain.Asset(
        id=orm_asset.id,
        name=orm_asset.name,
        amount=to_money(orm_asset.amount),
        currency_code=orm_asset.currency,
        image_ref=orm_asset.image,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        type=domain.TransactionType(orm_transaction.type),
        amount=to_money(orm_transaction.amount),
        category=orm_transaction.category or "",
        description=orm_transaction.description or "",
        location=orm_transaction.location or "",
        date=orm_transaction.date,
    )


def budget_to_domain(orm_budget: ORMBudget) -> domain.Budget:
    """Convert SQLAlchemy Budget model to domain Budget entity."""
    return domain.Budget(
        id=orm_budget.id,
        category=orm_budget.category,
        amount=to_money(orm_budget.amount),
        period=domain.BudgetPeriod(orm_budget.period),
        spent=to_money(orm_budget.spent),
    )


def archived_transaction_to_domain(
    orm_archived: ORMArchivedTransaction,
) -> domain.ArchivedTransaction:
    """Convert SQLAlchemy ArchivedTransaction model to domain entity."""
    return domain.ArchivedTransaction(
        id=orm_archived.id,
        original_id=orm_archived.original_id,
        type=domain.TransactionType(orm_archived.type),
        amount=to_money(orm_archived.amount),
        category=orm_archived.category or "",
        description=orm_archived.description or "",
        location=orm_archived.location or "",
        date=orm_archived.date,
        archived_date=orm_archived.archived_date,
    )


def archive_settings_to_domain(
    orm_settings: Optional[ORMArchiveSettings],
) -> Optional[domain.ArchiveSettings]:
    """Convert the settings row, or None when it has not been created yet."""
    if orm_settings is None:
        return None
    return domain.ArchiveSettings(
        auto_archive=bool(orm_settings.auto_archive),
        archive_after_months=orm_settings.archive_after_months,
        keep_recent_months=orm_settings.keep_recent_months,
    )


def history_to_domain(orm_history: ORMTransactionHistory) -> domain.HistoryRecord:
    """Convert SQLAlchemy TransactionHistory model to domain HistoryRecord."""
    return domain.HistoryRecord(
        id=orm_history.id,
        transaction_id=orm_history.transaction_id,
        action=domain.HistoryAction(orm_history.action),
        timestamp=orm_history.timestamp,
        snapshot=json.loads(orm_history.data) if orm_history.data else {},
    )


def search_result_to_domain(orm_row, source: domain.TransactionSource) -> domain.SearchResult:
    """Convert an active or archived row into a tagged search result."""
    is_archived = source == domain.TransactionSource.ARCHIVED
    return domain.SearchResult(
        source=source,
        id=orm_row.id,
        type=domain.TransactionType(orm_row.type),
        amount=to_money(orm_row.amount),
        category=orm_row.category or "",
        description=orm_row.description or "",
        location=orm_row.location or "",
        date=orm_row.date,
        original_id=orm_row.original_id if is_archived else None,
        archived_date=orm_row.archived_date if is_archived else None,
    )
