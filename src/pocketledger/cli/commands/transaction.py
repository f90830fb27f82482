"""Transaction management commands."""

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.cli.formatting import echo_transactions, transaction_line
from pocketledger.domain.archive import ArchiveService
from pocketledger.domain.errors import DomainError
from pocketledger.domain.history import HistoryService
from pocketledger.domain.queries import SummaryService
from pocketledger.domain.reconciliation import ReconciliationService

TYPES = ["income", "expense"]
PERIODS = ["Weekly", "Monthly", "Yearly"]


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("add")
@click.argument("type", type=click.Choice(TYPES, case_sensitive=False))
@click.argument("amount")
@click.option("--category", default="", help="Category (expenses count against its budgets)")
@click.option("--location", default="", help="Asset name the money moves in or out of")
@click.option("--date", help="Transaction date (YYYY-MM-DD, 'today', '3 days ago'); defaults to now")
@click.option("--description", help="Transaction description")
@click.pass_context
def add_transaction(
    ctx,
    type: str,
    amount: str,
    category: str,
    location: str,
    date: str | None,
    description: str | None,
):
    """Record an income or expense.

    Income is added to the asset named by --location and expenses are
    subtracted from it.

    Examples:
        pocketledger transaction add income 1000 --location Wallet --category Salary
        pocketledger transaction add expense 45.50 --location Wallet --category Food
    """
    service = ReconciliationService(ctx.obj["ledger"])

    try:
        created = service.create_transaction(
            type=type,
            amount=amount,
            category=category,
            location=location,
            date=date,
            description=description,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    created = require_store(ctx, created)
    click.echo(f"Created transaction (ID: {created.id})")


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--type", "type_", type=click.Choice(TYPES, case_sensitive=False), help="New type")
@click.option("--amount", help="New amount")
@click.option("--category", help="New category")
@click.option("--location", help="New asset name")
@click.option("--date", help="New date")
@click.option("--description", help="New description")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    type_: str | None,
    amount: str | None,
    category: str | None,
    location: str | None,
    date: str | None,
    description: str | None,
) -> None:
    """Update a transaction.

    Updates only the fields that are provided. Asset balances and budget
    spending are adjusted by the difference.

    Examples:
        pocketledger transaction update 3 --amount 60
        pocketledger transaction update 3 --location Bank --type income
    """
    service = ReconciliationService(ctx.obj["ledger"])

    try:
        updated = service.update_transaction(
            transaction_id,
            type=type_,
            amount=amount,
            category=category,
            location=location,
            date=date,
            description=description,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    require_store(ctx, updated)
    click.echo(f"Updated transaction {transaction_id}")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.pass_context
def delete_transaction(ctx, transaction_id: int) -> None:
    """Delete a transaction and reverse its effects.

    The printed history record ID can be passed to 'history restore' to
    bring the transaction back.
    """
    ledger = ctx.obj["ledger"]
    service = ReconciliationService(ledger)

    try:
        deleted = service.delete_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not deleted:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    click.echo(f"Deleted transaction {transaction_id}")
    latest = HistoryService(ledger).list_history(limit=1)
    if latest:
        click.echo(f"Undo with: pocketledger history restore {latest[0].id}")


@transaction_group.command("list")
@click.option("--period", type=click.Choice(PERIODS, case_sensitive=False), help="Only the current period")
@click.pass_context
def list_transactions(ctx, period: str | None):
    """List recent transactions, newest first.

    Only the recent window is shown; older transactions live in the archive.
    """
    ledger = ctx.obj["ledger"]

    if period is None:
        transactions = ledger.transactions
    else:
        transactions = SummaryService(ledger).transactions_in_period(period)
    echo_transactions(transactions)


@transaction_group.command("search")
@click.argument("term")
@click.option("--archived", is_flag=True, help="Include archived transactions")
@click.pass_context
def search_transactions(ctx, term: str, archived: bool):
    """Search category, description and location (case-insensitive)."""
    results = ArchiveService(ctx.obj["ledger"]).search_all(term, include_archived=archived)

    if not results:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(results)} transaction(s):")
    click.echo("-" * 100)
    for result in results:
        click.echo(f"[{result.source.value:8s}] {transaction_line(result)}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
