"""Text rendering of ledger entities for the CLI."""

from decimal import Decimal

import click

from pocketledger.domain.entities import ArchivedTransaction, SearchResult, Transaction
from pocketledger.utils.currency import format_currency

DEFAULT_DISPLAY_CURRENCY = "PHP"


def money(amount: Decimal, currency_code: str = DEFAULT_DISPLAY_CURRENCY) -> str:
    return format_currency(amount, currency_code)


def transaction_line(txn: Transaction | ArchivedTransaction | SearchResult) -> str:
    """One-line rendering: ID, date, signed amount, category, location and description."""
    sign = "+" if txn.type.value == "income" else "-"
    amount_str = f"{sign}{txn.amount:,.2f}"
    category = txn.category or "Uncategorized"
    line = (
        f"ID: {txn.id:4d} | {txn.date:%Y-%m-%d %H:%M} | {amount_str:>14s} | "
        f"{category:20s} | {txn.location or '-':15s}"
    )
    if txn.description:
        line += f" | {txn.description}"
    return line


def echo_transactions(transactions, empty_message: str = "No transactions found.") -> None:
    if not transactions:
        click.echo(empty_message)
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 100)
    for txn in transactions:
        click.echo(transaction_line(txn))
