"""Main CLI entry point."""

import logging

import click
from ledgerlink.database.factories import create_sqlite_database

# Import and register all commands at module level
from ledgerlink.cli.commands import (
    account,
    transaction,
    rule,
    match,
    restructure,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERLINK_DB_PATH environment variable)",
    envvar="LEDGERLINK_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity (overrides LEDGERLINK_LOG_LEVEL environment variable)",
    envvar="LEDGERLINK_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Ledgerlink - Double-entry ledger reconciliation.

    Record transactions as debit and credit entry lines, let rules rename,
    merge and complete them automatically, and find the counterparts that
    balance what is left.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
transaction.register_commands(cli)
rule.register_commands(cli)
match.register_commands(cli)
restructure.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
