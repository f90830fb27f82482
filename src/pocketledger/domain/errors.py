"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class MissingAssetError(NotFoundError):
    """A transaction location does not resolve to a known asset (strict mode)."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class StoreError(DomainError):
    """A store write failed; the atomic unit was rolled back."""

    user_message = "Operation failed, please try again."


class StoreUnavailableError(StoreError):
    """The store handle has not been connected yet."""


class ConnectionLostError(StoreError):
    """The store connection dropped and could not be re-established."""


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def archived_transaction_not_found(archived_id: int) -> str:
    """Return message for missing archived transaction."""
    return f"Archived transaction {archived_id} not found"


def asset_not_found(asset: int | str) -> str:
    """Return message for missing asset by ID or name."""
    if isinstance(asset, int):
        return f"Asset {asset} not found"
    return f"Asset '{asset}' not found"


def budget_not_found(budget_id: int) -> str:
    """Return message for missing budget."""
    return f"Budget {budget_id} not found"


def history_record_not_found(record_id: int) -> str:
    """Return message for missing history record."""
    return f"History record {record_id} not found"


def duplicate_asset_name(name: str) -> str:
    """Return message for duplicate asset names."""
    return f"Asset with name '{name}' already exists"
