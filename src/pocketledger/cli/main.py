"""Main CLI entry point."""

import click

from pocketledger.config import ENV_DB_PATH, configure_logging, load_settings
from pocketledger.database.factories import create_sqlite_database
from pocketledger.domain.errors import DomainError
from pocketledger.domain.ledger import Ledger
from pocketledger.cli.error_handling import handle_domain_error

# Import and register all commands at module level
from pocketledger.cli.commands import (
    archive,
    asset,
    budget,
    data,
    history,
    summary,
    transaction,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help=f"Path to database file (overrides {ENV_DB_PATH} environment variable)",
    envvar=ENV_DB_PATH,
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging verbosity (overrides POCKETLEDGER_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """PocketLedger - Personal finance ledger.

    Track assets, income and expenses against budgets. Asset balances and
    budget spending follow every transaction you add, edit or delete.
    """
    ctx.ensure_object(dict)

    # Open the ledger only when actually running a command (not for --help)
    if ctx.invoked_subcommand is None:
        return

    try:
        settings = load_settings(database_path=db_path, log_level=log_level)
    except DomainError as e:
        handle_domain_error(ctx, e)
    configure_logging(settings.log_level)

    db = create_sqlite_database(database_path=settings.database_path)
    try:
        db.connect()
        db.initialize_schema()
        ledger = Ledger(db, settings)
        ledger.reload_all()
    except DomainError as e:
        handle_domain_error(ctx, e)

    ctx.obj["db"] = db
    ctx.obj["ledger"] = ledger
    ctx.call_on_close(db.disconnect)


# Register all commands
asset.register_commands(cli)
budget.register_commands(cli)
transaction.register_commands(cli)
archive.register_commands(cli)
history.register_commands(cli)
data.register_commands(cli)
summary.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
