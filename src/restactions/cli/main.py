"""restactions CLI entry point."""

import logging

import click

from restactions.persistence.config import StoreConfig

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@click.group()
@click.option(
    "--database-url",
    default=None,
    help="Store URL (memory://, sqlite:///path, postgresql://...). "
    "Defaults to RESTACTIONS_DATABASE_URL, DATABASE_URL or RESTACTIONS_DB_PATH.",
)
@click.option(
    "--log-level",
    envvar="RESTACTIONS_LOG_LEVEL",
    default="warning",
    show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level.",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, log_level: str):
    """restactions: REST verbs for document collections."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {
        "config": StoreConfig(url=database_url) if database_url else StoreConfig.from_env(),
        "log_level": log_level.lower(),
    }


# Register commands
from restactions.cli.records_cmd import create, delete, list_records, show, update  # noqa: E402
from restactions.cli.serve_cmd import serve  # noqa: E402

cli.add_command(list_records)
cli.add_command(show)
cli.add_command(create)
cli.add_command(update)
cli.add_command(delete)
cli.add_command(serve)
