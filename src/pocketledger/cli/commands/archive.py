"""Archive commands."""

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.cli.formatting import echo_transactions
from pocketledger.config import DEFAULT_ARCHIVE_PAGE_SIZE
from pocketledger.domain.archive import ArchiveService
from pocketledger.domain.errors import DomainError


@click.group()
def archive_group():
    """Archive old transactions and manage the archive."""
    pass


@archive_group.command("run")
@click.option("--months", type=int, help="Archive transactions older than this many months")
@click.pass_context
def run_archive(ctx, months: int | None):
    """Archive transactions older than the configured threshold.

    Archiving keeps asset balances and budget spending as they are.
    """
    service = ArchiveService(ctx.obj["ledger"])

    try:
        moved = service.auto_archive(months)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived {moved} transaction(s)")


@archive_group.command("range")
@click.argument("start_date")
@click.argument("end_date")
@click.pass_context
def archive_range(ctx, start_date: str, end_date: str):
    """Archive transactions dated between START_DATE and END_DATE (inclusive).

    Examples:
        pocketledger archive range 2023-01-01 2023-12-31
    """
    service = ArchiveService(ctx.obj["ledger"])

    try:
        moved = service.archive_range(start_date, end_date)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived {moved} transaction(s)")


@archive_group.command("list")
@click.option("--page", type=int, default=0, show_default=True)
@click.option("--limit", type=int, default=DEFAULT_ARCHIVE_PAGE_SIZE, show_default=True)
@click.pass_context
def list_archived(ctx, page: int, limit: int):
    """List archived transactions, newest first."""
    service = ArchiveService(ctx.obj["ledger"])

    try:
        rows = service.list_archived(page=page, limit=limit)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Archived transactions: {service.count_archived()} total")
    echo_transactions(rows, empty_message="No archived transactions on this page.")


@archive_group.command("restore")
@click.argument("archived_id", type=int)
@click.pass_context
def restore_archived(ctx, archived_id: int):
    """Move an archived transaction back to the active set."""
    service = ArchiveService(ctx.obj["ledger"])

    try:
        restored = service.restore_archived(archived_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    restored = require_store(ctx, restored, f"Archived transaction {archived_id} not found")
    click.echo(f"Restored archived transaction {archived_id} as transaction {restored.id}")


@archive_group.command("delete")
@click.argument("archived_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_archived(ctx, archived_id: int, yes: bool):
    """Permanently delete an archived transaction."""
    service = ArchiveService(ctx.obj["ledger"])

    if not yes and not click.confirm(
        f"Permanently delete archived transaction {archived_id}? This cannot be undone"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        deleted = service.permanent_delete(archived_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not deleted:
        click.echo(f"Error: Archived transaction {archived_id} not found", err=True)
        ctx.exit(1)
    click.echo(f"Deleted archived transaction {archived_id}")


@archive_group.command("stats")
@click.pass_context
def archive_stats(ctx):
    """Show archive statistics."""
    stats = require_store(ctx, ArchiveService(ctx.obj["ledger"]).statistics())

    click.echo(f"Archived transactions: {stats.total_archived}")
    if stats.total_archived:
        click.echo(f"Date range:            {stats.oldest_date:%Y-%m-%d} to {stats.newest_date:%Y-%m-%d}")
    click.echo(f"Total income:          {stats.total_income:,.2f}")
    click.echo(f"Total expenses:        {stats.total_expenses:,.2f}")


@archive_group.command("settings")
@click.option("--auto/--no-auto", "auto_archive", default=None, help="Archive automatically on load")
@click.option("--after-months", type=int, help="Age in months after which transactions are archived")
@click.option("--keep-months", type=int, help="Months of transactions kept in the recent window")
@click.pass_context
def archive_settings(ctx, auto_archive: bool | None, after_months: int | None, keep_months: int | None):
    """Show or change archive settings."""
    ledger = ctx.obj["ledger"]

    if auto_archive is not None or after_months is not None or keep_months is not None:
        try:
            saved = ArchiveService(ledger).update_archive_settings(
                auto_archive=auto_archive,
                archive_after_months=after_months,
                keep_recent_months=keep_months,
            )
        except DomainError as e:
            handle_domain_error(ctx, e)
        require_store(ctx, saved)
        click.echo("Archive settings updated")

    settings = ledger.archive_settings
    click.echo(f"Auto-archive:         {'on' if settings.auto_archive else 'off'}")
    click.echo(f"Archive after months: {settings.archive_after_months}")
    click.echo(f"Keep recent months:   {settings.keep_recent_months}")


def register_commands(cli):
    """Register archive commands with main CLI."""
    cli.add_command(archive_group, name="archive")
