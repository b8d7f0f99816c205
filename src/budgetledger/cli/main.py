"""Main CLI entry point."""

import click
from budgetledger.config import load_settings
from budgetledger.database.factories import create_sqlite_database
from budgetledger.domain.errors import DomainError
from budgetledger.logging_setup import configure_logging

# Import and register all commands at module level
from budgetledger.cli.commands import (
    category,
    balance,
    jobs,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BUDGETLEDGER_DB_PATH environment variable)",
    envvar="BUDGETLEDGER_DB_PATH",
)
@click.option(
    "--log-level",
    help="Log level (overrides BUDGETLEDGER_LOG_LEVEL environment variable)",
    envvar="BUDGETLEDGER_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Budgetledger - budget category ledger.

    Keep money in named categories, move it around, undo the last change,
    and roll leftovers into savings every month.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = load_settings()
        except DomainError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        configure_logging(log_level or settings.log_level)
        db = create_sqlite_database(database_path=db_path, settings=settings)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings
        ctx.call_on_close(db.disconnect)


# Register all commands
category.register_commands(cli)
balance.register_commands(cli)
jobs.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
