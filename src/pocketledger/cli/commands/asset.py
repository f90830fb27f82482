"""Asset management commands."""

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.cli.formatting import money
from pocketledger.domain.assets import AssetService
from pocketledger.domain.errors import DomainError
from pocketledger.domain.queries import SummaryService
from pocketledger.utils.asset_resolver import resolve_asset


@click.group()
def asset_group():
    """Manage assets (wallets, bank accounts, cards)."""
    pass


@asset_group.command("add")
@click.argument("name", metavar="ASSET_NAME")
@click.argument("amount")
@click.option("--currency", default="PHP", show_default=True, help="ISO currency code")
@click.option("--image", help="Image reference")
@click.pass_context
def add_asset(ctx, name: str, amount: str, currency: str, image: str | None):
    """Create a new asset with an opening balance.

    Transactions refer to an asset by its name as their location.

    Examples:
        pocketledger asset add "Wallet" 100
        pocketledger asset add "Savings" "1,250.00" --currency USD
    """
    service = AssetService(ctx.obj["ledger"])

    try:
        created = service.add_asset(name=name, amount=amount, currency_code=currency, image_ref=image)
    except DomainError as e:
        handle_domain_error(ctx, e)
    created = require_store(ctx, created)
    click.echo(f"Created asset '{created.name}' (ID: {created.id})")


@asset_group.command("list")
@click.pass_context
def list_assets(ctx):
    """List all assets, highest balance first."""
    ledger = ctx.obj["ledger"]

    if not ledger.assets:
        click.echo("No assets found.")
        return

    click.echo("\nAssets:")
    click.echo("-" * 60)
    for asset in ledger.assets:
        click.echo(f"ID: {asset.id:3d} | {asset.name:20s} | {money(asset.amount, asset.currency_code)}")
    click.echo("-" * 60)
    click.echo(f"Total: {SummaryService(ledger).total_assets():,.2f}")


@asset_group.command("update")
@click.argument("asset", metavar="ASSET")
@click.option("--name", help="New asset name")
@click.option("--amount", help="New balance (sets the balance directly)")
@click.option("--currency", help="New ISO currency code")
@click.option("--image", help="New image reference")
@click.pass_context
def update_asset(
    ctx,
    asset: str,
    name: str | None,
    amount: str | None,
    currency: str | None,
    image: str | None,
) -> None:
    """Update an asset.

    ASSET can be an asset name or ID. Setting --amount is a manual balance
    correction and does not create a transaction.

    Examples:
        pocketledger asset update "Wallet" --amount 250
        pocketledger asset update 1 --name "Cash"
    """
    service = AssetService(ctx.obj["ledger"])

    try:
        asset_obj = resolve_asset(service, asset)
        updated = service.update_asset(
            asset_obj.id, name=name, amount=amount, currency_code=currency, image_ref=image
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    updated = require_store(ctx, updated)
    click.echo(f"Updated asset '{updated.name}' ({money(updated.amount, updated.currency_code)})")


@asset_group.command("delete")
@click.argument("asset", metavar="ASSET")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_asset(ctx, asset: str, yes: bool) -> None:
    """Delete an asset.

    ASSET can be an asset name or ID. Transactions located at the asset are
    kept; their balance effects are skipped from then on.
    """
    service = AssetService(ctx.obj["ledger"])

    try:
        asset_obj = resolve_asset(service, asset)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(
        f"Are you sure you want to delete asset '{asset_obj.name}' (ID: {asset_obj.id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_asset(asset_obj.id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted asset '{asset_obj.name}'")


def register_commands(cli):
    """Register asset commands with CLI."""
    cli.add_command(asset_group, name="asset")
