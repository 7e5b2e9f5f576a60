"""Record CLI commands: list, show, create, update, delete.

Each command runs one verb against a collection of the configured store
and prints the result as JSON. With the default memory:// store nothing
outlives the command; point --database-url at a SQL database to keep data.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import click

from restactions.document import Document
from restactions.persistence.config import create_store
from restactions.plugin import define_model
from restactions.types import ResultEnvelope
from restactions.verbs.base import plugin_options


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, default=_default))


def _parse_json(name: str, value: str | None) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        click.echo(f"Error: {name} is not valid JSON: {e}", err=True)
        raise SystemExit(1)


def _run(
    ctx: click.Context,
    collection: str,
    action: Callable[[type[Document]], Awaitable[Any]],
    searchable: tuple[str, ...] = (),
) -> Any:
    """Run a verb against a runtime model of ``collection``.

    Verb errors are reported as ``Error (<status>): <message>`` with exit code 1.
    """
    try:
        store = create_store(ctx.obj["config"])
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    store.connect()
    model = define_model(collection, searchable=searchable, store=store)
    try:
        return asyncio.run(action(model))
    except Exception as e:
        status = getattr(e, "status", None) or 400
        message = getattr(e, "message", None) or str(e)
        click.echo(f"Error ({status}): {message}", err=True)
        raise SystemExit(1)
    finally:
        store.close()


def _render(model: type[Document], result: Any) -> Any:
    if isinstance(result, ResultEnvelope):
        return result.to_dict(plugin_options(model).root)
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return result


@click.command("list")
@click.argument("collection")
@click.option("--page", type=int, default=None, help="Page number (wins over --skip).")
@click.option("--limit", type=int, default=None, help="Page size.")
@click.option("--skip", type=int, default=None, help="Records to skip.")
@click.option("--q", "q", default=None, help="Free-text search term.")
@click.option(
    "--search-in",
    "searchable",
    multiple=True,
    help="Field matched by --q (repeatable).",
)
@click.option("--filter", "filter_json", default=None, help="Match conditions as JSON.")
@click.option("--sort", default=None, help='Sort spec, e.g. "name -createdAt".')
@click.option("--select", default=None, help='Projection, e.g. "name email".')
@click.option(
    "--if-modified-since",
    default=None,
    help="Only records updated after this ISO-8601 or HTTP date.",
)
@click.pass_context
def list_records(
    ctx: click.Context,
    collection: str,
    page: int | None,
    limit: int | None,
    skip: int | None,
    q: str | None,
    searchable: tuple[str, ...],
    filter_json: str | None,
    sort: str | None,
    select: str | None,
    if_modified_since: str | None,
):
    """List records of COLLECTION as a paginated envelope."""
    options: dict[str, Any] = {
        "page": page,
        "limit": limit,
        "skip": skip,
        "q": q,
        "filter": _parse_json("--filter", filter_json),
        "sort": sort,
        "select": select,
    }
    if if_modified_since:
        options["headers"] = {"ifModifiedSince": if_modified_since}

    async def action(model: type[Document]) -> Any:
        return _render(model, await model.get(options))

    _echo_json(_run(ctx, collection, action, searchable))


@click.command()
@click.argument("collection")
@click.argument("id")
@click.option("--select", default=None, help="Projection.")
@click.pass_context
def show(ctx: click.Context, collection: str, id: str, select: str | None):
    """Show record ID of COLLECTION."""

    async def action(model: type[Document]) -> Any:
        return _render(model, await model.get_by_id({"_id": id, "select": select}))

    _echo_json(_run(ctx, collection, action))


@click.command()
@click.argument("collection")
@click.argument("body")
@click.pass_context
def create(ctx: click.Context, collection: str, body: str):
    """Create a record in COLLECTION from a JSON BODY."""
    fields = _parse_json("BODY", body)

    async def action(model: type[Document]) -> Any:
        return _render(model, await model.post(fields))

    _echo_json(_run(ctx, collection, action))


@click.command()
@click.argument("collection")
@click.argument("id")
@click.argument("body")
@click.option("--replace", is_flag=True, default=False, help="Use put instead of patch.")
@click.pass_context
def update(ctx: click.Context, collection: str, id: str, body: str, replace: bool):
    """Update record ID of COLLECTION with a JSON BODY."""
    fields = _parse_json("BODY", body)

    async def action(model: type[Document]) -> Any:
        verb = model.put if replace else model.patch
        return _render(model, await verb(id, fields))

    _echo_json(_run(ctx, collection, action))


@click.command()
@click.argument("collection")
@click.argument("id")
@click.option("--soft", is_flag=True, default=False, help="Mark as deleted, keep the record.")
@click.pass_context
def delete(ctx: click.Context, collection: str, id: str, soft: bool):
    """Delete record ID of COLLECTION."""

    async def action(model: type[Document]) -> Any:
        return _render(model, await model.delete({"_id": id, "soft": soft}))

    _echo_json(_run(ctx, collection, action))
