"""CLI error handling helpers."""

import logging

import click

from pocketledger.domain.errors import DomainError, StoreError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    Store failures carry driver details that mean nothing to the user; they
    are logged and replaced by a generic message.
    """
    if isinstance(error, StoreError):
        logger.error("Store failure: %s", error)
        click.echo(f"Error: {error.user_message}", err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def require_store(ctx: click.Context, result, message: str = "Store is not available"):
    """Exit with failure when a service returned None because the store is down."""
    if result is None:
        click.echo(f"Error: {message}", err=True)
        ctx.exit(1)
    return result
