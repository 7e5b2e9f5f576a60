"""Serve CLI command: expose collections over HTTP."""

import click
import uvicorn

from restactions.http import create_app
from restactions.persistence.config import create_store
from restactions.plugin import define_model


@click.command()
@click.argument("collections", nargs=-1, required=True)
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port.")
@click.option(
    "--search-in",
    "searchable",
    multiple=True,
    help="Field matched by the q parameter (repeatable, applies to all collections).",
)
@click.pass_context
def serve(
    ctx: click.Context,
    collections: tuple[str, ...],
    host: str,
    port: int,
    searchable: tuple[str, ...],
):
    """Serve COLLECTIONS as REST resources."""
    config = ctx.obj["config"]
    try:
        store = create_store(config)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    models = [define_model(name, searchable=searchable) for name in collections]
    app = create_app(models, store)

    click.echo(f"Serving {', '.join(collections)} from {config.url} on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=ctx.obj["log_level"])
