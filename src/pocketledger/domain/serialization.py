"""Conversion between domain entities and JSON-compatible dictionaries.

Used for history snapshots and for the export/import document. Amounts are
written as decimal strings; numbers are accepted on the way in so documents
produced by older releases still load.
"""

from datetime import datetime
from typing import Any, Mapping, Optional

from pocketledger.domain.entities import (
    Asset,
    Budget,
    BudgetPeriod,
    Transaction,
    TransactionType,
)
from pocketledger.domain.errors import ValidationError
from pocketledger.utils.amount_parser import parse_amount
from pocketledger.utils.date_parser import parse_datetime


def coerce_transaction_type(value) -> TransactionType:
    """Normalize 'Income', 'EXPENSE', TransactionType, ... to a TransactionType."""
    if isinstance(value, TransactionType):
        return value
    if isinstance(value, str):
        try:
            return TransactionType(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(f"Transaction type must be 'income' or 'expense', got '{value}'")


def coerce_budget_period(value) -> BudgetPeriod:
    """Normalize 'monthly', 'Monthly', BudgetPeriod, ... to a BudgetPeriod."""
    if isinstance(value, BudgetPeriod):
        return value
    if isinstance(value, str):
        try:
            return BudgetPeriod(value.strip().capitalize())
        except ValueError:
            pass
    raise ValidationError(f"Budget period must be Weekly, Monthly or Yearly, got '{value}'")


def coerce_money(value, field_name: str = "amount"):
    try:
        return parse_amount(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {e}")


def coerce_datetime(value, field_name: str = "date") -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field_name}: '{value}'")
    try:
        return parse_datetime(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {e}")


def transaction_to_dict(transaction: Transaction) -> dict[str, Any]:
    """Serialize a transaction; also the snapshot format stored in history."""
    return {
        "id": transaction.id,
        "type": transaction.type.value,
        "amount": str(transaction.amount),
        "category": transaction.category,
        "description": transaction.description,
        "location": transaction.location,
        "date": transaction.date.isoformat(),
    }


def transaction_from_dict(data: Mapping[str, Any]) -> Transaction:
    """Rebuild a transaction from a snapshot or an exported record.

    Raises:
        ValidationError: If a required field is missing or malformed
    """
    for required in ("type", "amount", "date"):
        if data.get(required) in (None, ""):
            raise ValidationError(f"Transaction record is missing '{required}'")

    raw_id: Optional[Any] = data.get("id")
    return Transaction(
        id=int(raw_id) if raw_id is not None else None,
        type=coerce_transaction_type(data["type"]),
        amount=coerce_money(data["amount"]),
        category=data.get("category") or "",
        description=data.get("description") or "",
        location=data.get("location") or "",
        date=coerce_datetime(data["date"]),
    )


def asset_to_dict(asset: Asset) -> dict[str, Any]:
    return {
        "id": asset.id,
        "name": asset.name,
        "amount": str(asset.amount),
        "currency": asset.currency_code,
        "image": asset.image_ref,
    }


def budget_to_dict(budget: Budget) -> dict[str, Any]:
    return {
        "id": budget.id,
        "category": budget.category,
        "amount": str(budget.amount),
        "period": budget.period.value,
        "spent": str(budget.spent),
    }
