"""Utility for resolving asset names to entities."""

from pocketledger.domain.assets import AssetService
from pocketledger.domain.entities import Asset
from pocketledger.domain.errors import NotFoundError, asset_not_found


def resolve_asset(asset_service: AssetService, asset: str | int) -> Asset:
    """Resolve asset name or ID to an asset entity.

    Args:
        asset_service: AssetService instance
        asset: Asset name (str) or ID (int or string representation of int)

    Returns:
        Asset entity

    Raises:
        NotFoundError: If asset is not found
    """
    # Names win over numeric IDs so an asset called "2024" stays reachable
    if isinstance(asset, str):
        by_name = asset_service.get_asset_by_name(asset)
        if by_name is not None:
            return by_name

    try:
        asset_id = int(asset)
    except (ValueError, TypeError):
        raise NotFoundError(asset_not_found(asset))

    found = asset_service.get_asset(asset_id)
    if found is None:
        raise NotFoundError(asset_not_found(asset_id))
    return found
