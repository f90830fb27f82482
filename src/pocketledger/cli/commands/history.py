"""Audit history commands."""

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.domain.errors import DomainError
from pocketledger.domain.history import HistoryService
from pocketledger.domain.reconciliation import ReconciliationService


@click.group()
def history_group():
    """Inspect the deletion history and restore deleted transactions."""
    pass


@history_group.command("list")
@click.option("--limit", type=int, help="Show at most this many records")
@click.pass_context
def list_history(ctx, limit: int | None):
    """List audit records, newest first."""
    records = HistoryService(ctx.obj["ledger"]).list_history(limit=limit)

    if not records:
        click.echo("No history records found.")
        return

    click.echo("\nHistory:")
    click.echo("-" * 100)
    for record in records:
        snapshot = record.snapshot
        click.echo(
            f"ID: {record.id:4d} | {record.timestamp:%Y-%m-%d %H:%M:%S} | {record.action.value:7s} | "
            f"transaction {record.transaction_id} | {snapshot.get('type', '')} "
            f"{snapshot.get('amount', '')} | {snapshot.get('category') or 'Uncategorized'} | "
            f"{snapshot.get('location') or '-'}"
        )


@history_group.command("restore")
@click.argument("record_id", type=int)
@click.pass_context
def restore_from_history(ctx, record_id: int):
    """Restore the transaction deleted in history record RECORD_ID.

    Its effects on assets and budgets are applied again.
    """
    service = ReconciliationService(ctx.obj["ledger"])

    try:
        restored = service.restore_from_history(record_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    restored = require_store(ctx, restored)
    click.echo(f"Restored transaction as ID {restored.id}")


@history_group.command("prune")
@click.pass_context
def prune_history(ctx):
    """Apply the configured history retention policy now."""
    ledger = ctx.obj["ledger"]

    if not ledger.settings.history_retention_enabled:
        click.echo("No retention policy configured; history is kept in full.")
        return

    try:
        removed = HistoryService(ledger).prune()
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Removed {removed} history record(s)")


def register_commands(cli):
    """Register history commands with main CLI."""
    cli.add_command(history_group, name="history")
