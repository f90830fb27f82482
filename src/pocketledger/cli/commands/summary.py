"""Summary command."""

import click

from pocketledger.cli.formatting import money
from pocketledger.domain.queries import SummaryService

PERIODS = ["Weekly", "Monthly", "Yearly"]


@click.command("summary")
@click.option(
    "--period",
    type=click.Choice(PERIODS, case_sensitive=False),
    default="Monthly",
    show_default=True,
)
@click.option("--currency", default="PHP", show_default=True, help="Display currency")
@click.pass_context
def summary(ctx, period: str, currency: str):
    """Show balances, budget usage and spending by category for the current period.

    Weekly periods start on Sunday, monthly on the 1st and yearly on January 1st.

    Examples:
        pocketledger summary
        pocketledger summary --period Weekly --currency USD
    """
    service = SummaryService(ctx.obj["ledger"])
    currency = currency.upper()

    totals = service.period_summary(period)
    start = service.period_start(period)

    click.echo(f"\n{period} summary since {start:%Y-%m-%d}")
    click.echo("=" * 60)
    click.echo(f"{'Total assets':<30} {money(service.total_assets(), currency):>25}")
    click.echo(f"{'Income':<30} {money(totals.income, currency):>25}")
    click.echo(f"{'Expenses':<30} {money(totals.expenses, currency):>25}")
    click.echo(f"{'Net':<30} {money(totals.net, currency):>25}")
    click.echo(f"{'Transactions':<30} {totals.count:>25d}")

    click.echo()
    click.echo(f"{'Budgeted':<30} {money(service.total_budget(period), currency):>25}")
    click.echo(f"{'Remaining':<30} {money(service.total_remaining(period), currency):>25}")

    distribution = service.category_distribution(period)
    if distribution:
        click.echo("\nSpending by category")
        click.echo("-" * 60)
        total_expenses = totals.expenses
        for category, amount in distribution:
            share = amount / total_expenses * 100 if total_expenses else 0
            click.echo(f"{category:<30} {money(amount, currency):>18} {share:5.1f}%")


def register_commands(cli):
    """Register summary command with main CLI."""
    cli.add_command(summary)
