"""Export and import of the whole ledger as a JSON document.

Imported rows are written verbatim: balances and ``spent`` totals in the
document already include the effects of its transactions, so no
reconciliation is replayed.
"""

import json
import logging
from typing import Any, Mapping, Optional, TYPE_CHECKING

from pocketledger.domain.entities import Preferences
from pocketledger.domain.errors import ConflictError, ValidationError, duplicate_asset_name
from pocketledger.domain.serialization import (
    asset_to_dict,
    budget_to_dict,
    coerce_budget_period,
    coerce_money,
    transaction_from_dict,
    transaction_to_dict,
)

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("assets", "transactions", "budgets")


def _require(record: Mapping[str, Any], field_name: str, section: str, index: int):
    value = record.get(field_name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{section}[{index}] is missing '{field_name}'")
    return value


def _parse_assets(records: list) -> list[dict[str, Any]]:
    assets = []
    seen = set()
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValidationError(f"assets[{index}] must be an object")
        name = str(_require(record, "name", "assets", index)).strip()
        if name in seen:
            raise ConflictError(duplicate_asset_name(name))
        seen.add(name)
        assets.append(
            {
                "name": name,
                "amount": coerce_money(_require(record, "amount", "assets", index), "asset amount"),
                "currency_code": str(_require(record, "currency", "assets", index)).upper(),
                "image_ref": record.get("image"),
            }
        )
    return assets


def _parse_budgets(records: list) -> list[dict[str, Any]]:
    budgets = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValidationError(f"budgets[{index}] must be an object")
        spent = record.get("spent")
        budgets.append(
            {
                "category": str(_require(record, "category", "budgets", index)).strip(),
                "amount": coerce_money(_require(record, "amount", "budgets", index), "budget amount"),
                "period": coerce_budget_period(_require(record, "period", "budgets", index)),
                "spent": coerce_money(spent, "budget spent") if spent is not None else coerce_money(0),
            }
        )
    return budgets


def _parse_transactions(records: list):
    transactions = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValidationError(f"transactions[{index}] must be an object")
        try:
            transactions.append(transaction_from_dict(record))
        except ValidationError as e:
            raise ValidationError(f"transactions[{index}]: {e}")
    return transactions


def parse_preferences(data: Optional[Mapping[str, Any]]) -> Preferences:
    if not data:
        return Preferences()
    defaults = Preferences()
    return Preferences(
        currency=data.get("currency") or defaults.currency,
        dark_mode=bool(data.get("darkMode", defaults.dark_mode)),
    )


class DataTransferService:
    """Service for exporting, importing and clearing ledger data."""

    def __init__(self, ledger: "Ledger"):
        """Initialize data transfer service.

        Args:
            ledger: Ledger context
        """
        self.ledger = ledger

    @property
    def db(self):
        return self.ledger.db

    def export_data(self, preferences: Optional[Preferences] = None) -> Optional[dict[str, Any]]:
        """Build the export document.

        Every active transaction is included, not only the recent window.

        Args:
            preferences: Presentation preferences to embed. Defaults to Preferences()

        Returns:
            Document with ``assets``, ``transactions``, ``budgets``,
            ``preferences`` and ``exportDate``, or None if the store is not available
        """
        preferences = preferences or Preferences()

        def _collect():
            return {
                "assets": [asset_to_dict(asset) for asset in self.db.list_assets()],
                "transactions": [transaction_to_dict(txn) for txn in self.db.list_transactions()],
                "budgets": [budget_to_dict(budget) for budget in self.db.list_budgets()],
                "preferences": {
                    "currency": preferences.currency,
                    "darkMode": preferences.dark_mode,
                },
                "exportDate": self.ledger.now().isoformat(),
            }

        return self.ledger.run(_collect, "data export")

    def export_json(self, preferences: Optional[Preferences] = None) -> Optional[str]:
        document = self.export_data(preferences)
        if document is None:
            return None
        return json.dumps(document, indent=2)

    def import_data(self, document) -> Optional[Preferences]:
        """Replace all assets, transactions and budgets with a document's content.

        The whole document is validated before anything is written; the clear
        and the inserts then run as one atomic unit.

        Args:
            document: Parsed document (mapping) or its JSON text

        Returns:
            Imported preferences, or None if the store is not available

        Raises:
            ValidationError: If the document is malformed or a section is missing
            ConflictError: If two assets share a name
        """
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except ValueError as e:
                raise ValidationError(f"Invalid data format: {e}")

        if not isinstance(document, Mapping):
            raise ValidationError("Invalid data format: expected an object")
        for section in REQUIRED_SECTIONS:
            if not isinstance(document.get(section), list):
                raise ValidationError(f"Invalid data format: missing '{section}' list")

        assets = _parse_assets(document["assets"])
        transactions = _parse_transactions(document["transactions"])
        budgets = _parse_budgets(document["budgets"])
        preferences = parse_preferences(document.get("preferences"))

        def _replace():
            self.db.clear_all()
            for asset in assets:
                self.db.create_asset(**asset)
            for txn in transactions:
                self.db.create_transaction(
                    type=txn.type,
                    amount=txn.amount,
                    category=txn.category,
                    description=txn.description,
                    location=txn.location,
                    date=txn.date,
                )
            for budget in budgets:
                self.db.create_budget(**budget)
            return True

        if not self.ledger.run(lambda: self.db.run_atomic(_replace), "data import", default=False):
            return None

        self.ledger.undo_buffer.clear()
        self.ledger.reload_all()
        logger.info(
            "Imported %d assets, %d transactions and %d budgets",
            len(assets),
            len(transactions),
            len(budgets),
        )
        return preferences

    def clear_all(self) -> bool:
        """Delete every asset, transaction and budget.

        Archived transactions and the audit history are kept.
        """

        def _clear():
            self.db.clear_all()
            return True

        cleared = self.ledger.run(lambda: self.db.run_atomic(_clear), "clear all", default=False)
        if cleared:
            self.ledger.assets = ()
            self.ledger.transactions = ()
            self.ledger.budgets = ()
            self.ledger.undo_buffer.clear()
            logger.info("Cleared all assets, transactions and budgets")
        return cleared
