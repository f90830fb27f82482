"""Data export, import and reset commands."""

from pathlib import Path

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.domain.entities import Preferences
from pocketledger.domain.errors import DomainError
from pocketledger.domain.transfer import DataTransferService


@click.group()
def data_group():
    """Export, import or clear ledger data."""
    pass


@data_group.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.option("--currency", default="PHP", show_default=True, help="Preferred display currency")
@click.option("--dark-mode/--light-mode", default=False, help="Preferred theme")
@click.pass_context
def export_data(ctx, output: str | None, currency: str, dark_mode: bool):
    """Export assets, transactions and budgets as JSON."""
    service = DataTransferService(ctx.obj["ledger"])

    document = require_store(
        ctx, service.export_json(Preferences(currency=currency.upper(), dark_mode=dark_mode))
    )
    if output is None:
        click.echo(document)
        return

    Path(output).write_text(document, encoding="utf-8")
    click.echo(f"Exported data to {output}")


@data_group.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def import_data(ctx, file: str, yes: bool):
    """Replace all assets, transactions and budgets with an exported FILE."""
    service = DataTransferService(ctx.obj["ledger"])

    if not yes and not click.confirm(
        "This will replace all your current data. Do you want to continue?"
    ):
        click.echo("Import cancelled.")
        return

    try:
        preferences = service.import_data(Path(file).read_text(encoding="utf-8"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    preferences = require_store(ctx, preferences)

    ledger = ctx.obj["ledger"]
    click.echo(
        f"Imported {len(ledger.assets)} asset(s), {len(ledger.budgets)} budget(s) "
        f"and {len(ledger.transactions)} recent transaction(s)"
    )
    click.echo(f"Preferences: currency {preferences.currency}, dark mode {'on' if preferences.dark_mode else 'off'}")


@data_group.command("clear")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear_data(ctx, yes: bool):
    """Delete every asset, transaction and budget.

    The archive and the audit history are kept.
    """
    if not yes and not click.confirm("Delete all assets, transactions and budgets?"):
        click.echo("Clear cancelled.")
        return

    try:
        cleared = DataTransferService(ctx.obj["ledger"]).clear_all()
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not cleared:
        click.echo("Error: Store is not available", err=True)
        ctx.exit(1)
    click.echo("All data cleared")


def register_commands(cli):
    """Register data commands with main CLI."""
    cli.add_command(data_group, name="data")
