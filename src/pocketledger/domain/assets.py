"""Asset domain service."""

import logging
from typing import Optional, TYPE_CHECKING

from pocketledger.domain.entities import Asset
from pocketledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    asset_not_found,
    duplicate_asset_name,
)
from pocketledger.domain.serialization import coerce_money

if TYPE_CHECKING:
    from pocketledger.domain.ledger import Ledger

logger = logging.getLogger(__name__)


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Asset name is required")
    return name.strip()


def _clean_currency(currency_code: Optional[str]) -> str:
    if currency_code is None or not currency_code.strip():
        raise ValidationError("Currency code is required")
    return currency_code.strip().upper()


class AssetService:
    """Service for managing assets.

    Manual edits set a balance directly; they are not reconciliation events
    and leave the transaction log untouched.
    """

    def __init__(self, ledger: "Ledger"):
        """Initialize asset service.

        Args:
            ledger: Ledger context
        """
        self.ledger = ledger

    @property
    def db(self):
        return self.ledger.db

    def add_asset(
        self, name: str, amount, currency_code: str, image_ref: Optional[str] = None
    ) -> Optional[Asset]:
        """Create a new asset.

        Args:
            name: Unique asset name; transactions refer to it as their location
            amount: Opening balance
            currency_code: ISO currency code (e.g. 'PHP')
            image_ref: Optional image reference

        Returns:
            The created asset, or None if the store is not available

        Raises:
            ValidationError: If a field is missing or the amount is invalid
            ConflictError: If an asset with the same name already exists
        """
        name = _clean_name(name)
        balance = coerce_money(amount)
        currency_code = _clean_currency(currency_code)

        def _create():
            if self.db.get_asset_by_name(name) is not None:
                raise ConflictError(duplicate_asset_name(name))
            asset_id = self.db.create_asset(
                name=name, amount=balance, currency_code=currency_code, image_ref=image_ref
            )
            return self.db.get_asset(asset_id)

        asset = self.ledger.run(lambda: self.db.run_atomic(_create), "asset create")
        if asset is not None:
            self.ledger.apply_asset_changes([asset])
            logger.info("Created asset '%s' with balance %s", asset.name, asset.amount)
        return asset

    def update_asset(
        self,
        asset_id: int,
        name: Optional[str] = None,
        amount=None,
        currency_code: Optional[str] = None,
        image_ref: Optional[str] = None,
    ) -> Optional[Asset]:
        """Update asset fields; None leaves a field unchanged.

        Renaming an asset does not rewrite the location of existing
        transactions.

        Raises:
            NotFoundError: If the asset does not exist
            ConflictError: If the new name belongs to another asset
        """
        if name is not None:
            name = _clean_name(name)
        balance = coerce_money(amount) if amount is not None else None
        if currency_code is not None:
            currency_code = _clean_currency(currency_code)

        def _update():
            if self.db.get_asset(asset_id) is None:
                raise NotFoundError(asset_not_found(asset_id))
            if name is not None:
                existing = self.db.get_asset_by_name(name)
                if existing is not None and existing.id != asset_id:
                    raise ConflictError(duplicate_asset_name(name))
            self.db.update_asset(
                asset_id,
                name=name,
                amount=balance,
                currency_code=currency_code,
                image_ref=image_ref,
            )
            return self.db.get_asset(asset_id)

        asset = self.ledger.run(lambda: self.db.run_atomic(_update), "asset update")
        if asset is not None:
            self.ledger.apply_asset_changes([asset])
        return asset

    def delete_asset(self, asset_id: int) -> bool:
        """Delete an asset. Transactions located at it are kept.

        Raises:
            NotFoundError: If the asset does not exist
        """

        def _delete():
            if self.db.get_asset(asset_id) is None:
                raise NotFoundError(asset_not_found(asset_id))
            self.db.delete_asset(asset_id)
            return True

        deleted = self.ledger.run(lambda: self.db.run_atomic(_delete), "asset delete", default=False)
        if deleted:
            self.ledger.remove_asset(asset_id)
            logger.info("Deleted asset %s", asset_id)
        return deleted

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        return self.ledger.run(lambda: self.db.get_asset(asset_id), "asset lookup")

    def get_asset_by_name(self, name: str) -> Optional[Asset]:
        return self.ledger.run(lambda: self.db.get_asset_by_name(name), "asset lookup")

    def list_assets(self) -> list[Asset]:
        """List assets, highest balance first."""
        return self.ledger.run(self.db.list_assets, "asset listing", default=[])
