"""Budget management commands."""

import click

from pocketledger.cli.error_handling import handle_domain_error, require_store
from pocketledger.domain.budgets import BudgetService
from pocketledger.domain.errors import DomainError
from pocketledger.domain.queries import SummaryService

PERIODS = ["Weekly", "Monthly", "Yearly"]


@click.group()
def budget_group():
    """Manage budgets."""
    pass


@budget_group.command("add")
@click.argument("category")
@click.argument("amount")
@click.option(
    "--period",
    type=click.Choice(PERIODS, case_sensitive=False),
    default="Monthly",
    show_default=True,
)
@click.pass_context
def add_budget(ctx, category: str, amount: str, period: str):
    """Create a budget for an expense category.

    Examples:
        pocketledger budget add Food 500
        pocketledger budget add Transport 80 --period weekly
    """
    service = BudgetService(ctx.obj["ledger"])

    try:
        created = service.add_budget(category=category, amount=amount, period=period)
    except DomainError as e:
        handle_domain_error(ctx, e)
    created = require_store(ctx, created)
    click.echo(f"Created {created.period.value} budget for '{created.category}' (ID: {created.id})")


@budget_group.command("list")
@click.option("--period", type=click.Choice(PERIODS, case_sensitive=False), help="Only this period")
@click.pass_context
def list_budgets(ctx, period: str | None):
    """List budgets with their spending and what remains this period."""
    ledger = ctx.obj["ledger"]
    summary = SummaryService(ledger)

    budgets = [b for b in ledger.budgets if period is None or b.period.value == period]
    if not budgets:
        click.echo("No budgets found.")
        return

    click.echo("\nBudgets:")
    click.echo("-" * 90)
    for budget in budgets:
        remaining = summary.budget_remaining(budget.id)
        click.echo(
            f"ID: {budget.id:3d} | {budget.category:20s} | {budget.period.value:8s} | "
            f"Budget: {budget.amount:>12,.2f} | Spent: {budget.spent:>12,.2f} | "
            f"Remaining: {remaining:>12,.2f}"
        )


@budget_group.command("update")
@click.argument("budget_id", type=int)
@click.option("--category", help="New category")
@click.option("--amount", help="New budgeted amount")
@click.option("--period", type=click.Choice(PERIODS, case_sensitive=False), help="New period")
@click.pass_context
def update_budget(ctx, budget_id: int, category: str | None, amount: str | None, period: str | None):
    """Update a budget. Spending recorded so far is kept."""
    service = BudgetService(ctx.obj["ledger"])

    try:
        updated = service.update_budget(budget_id, category=category, amount=amount, period=period)
    except DomainError as e:
        handle_domain_error(ctx, e)
    require_store(ctx, updated)
    click.echo(f"Updated budget {budget_id}")


@budget_group.command("delete")
@click.argument("budget_id", type=int)
@click.pass_context
def delete_budget(ctx, budget_id: int):
    """Delete a budget."""
    service = BudgetService(ctx.obj["ledger"])

    try:
        service.delete_budget(budget_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted budget {budget_id}")


@budget_group.command("goal")
@click.argument("total")
@click.option(
    "--period",
    type=click.Choice(PERIODS, case_sensitive=False),
    default="Monthly",
    show_default=True,
)
@click.pass_context
def set_goal(ctx, total: str, period: str):
    """Set the combined budget of a period.

    Existing budgets of the period are scaled proportionally; if there are
    none, an "Other" budget holding the whole total is created.

    Examples:
        pocketledger budget goal 2000
        pocketledger budget goal 300 --period Weekly
    """
    service = BudgetService(ctx.obj["ledger"])

    try:
        budgets = service.update_budget_goal(total, period)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"{period} budget goal set to {total}")
    for budget in budgets:
        click.echo(f"  {budget.category:20s} {budget.amount:>12,.2f}")


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
