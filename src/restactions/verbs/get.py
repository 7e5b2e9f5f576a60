"""Read verbs: get_by_id, get and fresh.

A list read runs three store operations concurrently against the same
conditions: the total count, the requested page and the most recently
updated match. The first failure wins and no partial envelope is built.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from restactions.arguments import normalize_get_by_id
from restactions.errors import normalize_errors
from restactions.hooks.types import HookPhase
from restactions.persistence.matching import MISSING, get_path
from restactions.types import QueryOptions, ResultEnvelope, Verb
from restactions.verbs.base import plugin_options, run_hook

logger = logging.getLogger(__name__)


@normalize_errors
async def get_by_id(model: type, id_or_options: Any) -> Any:
    """Fetch one record by id.

    Args:
        model: The model class
        id_or_options: An id, or ``{"_id", "select", "populate", "filter"}``

    Returns:
        The record (or the after hook's substitute)

    Raises:
        MissingInstanceId: When no id was given
        DocumentNotFound: When nothing matched (normalized to status 400)
    """
    options = normalize_get_by_id(id_or_options)
    await run_hook(model, Verb.READ, HookPhase.BEFORE)

    query = model.find_by_id(options.id).select(options.select).where(options.filter)
    for spec in options.populate:
        query.populate(spec)
    record = await query.or_fail()

    return await run_hook(model, Verb.READ, HookPhase.AFTER, record, context=record)


def query_options(model: type, options: Any) -> QueryOptions:
    return QueryOptions.from_mapping(options, plugin_options(model).default_limit)


async def fetch(model: type, options: QueryOptions) -> ResultEnvelope:
    """Run a list read and assemble its envelope. No hooks."""
    updated_at = model.UPDATED_AT_FIELD
    conditions = options.conditions(updated_at)

    page = (
        model.find(conditions)
        .search(options.q)
        .select(options.select)
        .sort(options.sort)
        .skip(options.skip)
        .limit(options.limit)
    )
    for spec in options.populate:
        page.populate(spec)

    latest = (
        model.find(conditions)
        .search(options.q)
        .select({updated_at: 1})
        .sort({updated_at: -1})
        .limit(1)
        .lean()
    )

    total, data, newest = await asyncio.gather(
        model.find(conditions).search(options.q).count(),
        page.exec(),
        latest.exec(),
    )

    last_modified = get_path(newest[0], updated_at) if newest else None
    if last_modified is MISSING:
        last_modified = None

    logger.debug(
        "Fetched %d of %d %s record(s) (page %d)",
        len(data),
        total,
        model.__name__,
        options.page,
    )
    return ResultEnvelope(
        data=data,
        total=total,
        limit=options.limit,
        skip=options.skip,
        page=options.page,
        last_modified=last_modified,
    )


@normalize_errors
async def get(model: type, options: Mapping[str, Any] | QueryOptions | None = None) -> Any:
    """Paginated list read wrapped in the get hooks.

    The before hook receives the resolved QueryOptions and may return
    replacement options (QueryOptions or a mapping). The after hook
    receives the options and the envelope and may substitute the result.
    """
    resolved = query_options(model, options)
    replaced = await run_hook(
        model, Verb.READ_MANY, HookPhase.BEFORE, resolved, context=resolved
    )
    if replaced is not resolved:
        resolved = query_options(model, replaced)

    envelope = await fetch(model, resolved)
    return await run_hook(
        model, Verb.READ_MANY, HookPhase.AFTER, resolved, envelope, context=envelope
    )


@normalize_errors
async def fresh(model: type, options: Mapping[str, Any] | QueryOptions | None = None) -> ResultEnvelope:
    """Same read as ``get`` without running any hooks."""
    return await fetch(model, query_options(model, options))
