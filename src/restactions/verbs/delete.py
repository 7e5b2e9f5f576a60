"""Delete verb, hard or soft.

A soft delete stamps the deleted-at field through the patch pipeline (so
patch hooks run too) and keeps the record. A hard delete removes it.
"""

import logging
from collections.abc import Mapping
from typing import Any

from restactions.arguments import normalize_delete
from restactions.document import utcnow
from restactions.errors import normalize_errors
from restactions.hooks.types import HookPhase
from restactions.types import DeleteOptions, Verb
from restactions.verbs.base import plugin_options, run_hook
from restactions.verbs.update import update_record

logger = logging.getLogger(__name__)


async def _delete(record: Any, soft: bool) -> Any:
    record = await run_hook(record, Verb.DELETE, HookPhase.BEFORE, context=record)

    if soft:
        field = plugin_options(type(record)).deleted_at_field
        await update_record(record, {field: utcnow()}, Verb.PATCH)
    else:
        await record.remove()
    logger.debug(
        "Deleted %s %s (%s)", type(record).__name__, record.id, "soft" if soft else "hard"
    )

    return await run_hook(record, Verb.DELETE, HookPhase.AFTER, context=record)


@normalize_errors
async def delete_record(record: Any, options: Any = None, *, soft: bool = False) -> Any:
    """Delete a live record. ``options`` may be ``{"soft": True}``."""
    if isinstance(options, DeleteOptions):
        soft = soft or options.soft
    elif isinstance(options, Mapping):
        soft = soft or bool(options.get("soft", False))
    return await _delete(record, soft)


@normalize_errors
async def delete_model(model: type, id_or_options: Any, *, soft: bool = False) -> Any:
    """Locate a record by id (and optional filter) and delete it.

    Raises:
        MissingInstanceId: When no id was given
        DocumentNotFound: When nothing matched (normalized to status 400)
    """
    options = normalize_delete(id_or_options)
    record = await model.find_by_id(options.id).where(options.filter).or_fail()
    return await _delete(record, soft or options.soft)
