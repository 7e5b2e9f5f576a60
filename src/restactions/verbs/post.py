"""Create verb: post."""

import logging
from typing import Any

from restactions.arguments import normalize_post
from restactions.errors import normalize_errors
from restactions.hooks.types import HookPhase
from restactions.types import Verb
from restactions.verbs.base import run_hook

logger = logging.getLogger(__name__)


async def _post(record: Any) -> Any:
    record = await run_hook(record, Verb.CREATE, HookPhase.BEFORE, context=record)
    await record.save()
    logger.debug("Posted %s %s", type(record).__name__, record.id)
    return await run_hook(record, Verb.CREATE, HookPhase.AFTER, context=record)


@normalize_errors
async def post_record(record: Any) -> Any:
    """Save a new record: before hook, insert, after hook."""
    return await _post(record)


@normalize_errors
async def post_model(model: type, body: Any = None) -> Any:
    """Create and save a record from ``body`` (a mapping or a live record)."""
    return await _post(normalize_post(model, body))
