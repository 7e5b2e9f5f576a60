"""Update verbs: put and patch.

Both verbs apply the given fields onto the record and save it. The
identifier and the timestamp fields are never taken from the payload;
the update timestamp is stamped by the pipeline itself.
"""

import copy
import logging
from typing import Any

from restactions.arguments import copy_instance, normalize_update
from restactions.document import utcnow
from restactions.errors import normalize_errors
from restactions.hooks.types import HookPhase
from restactions.persistence.matching import MISSING
from restactions.types import UpdateByInstance, Verb
from restactions.verbs.base import run_hook

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = ("_id", "id")


def strip_protected(model: type, updates: Any) -> dict[str, Any]:
    """Copy of ``updates`` without id and timestamp fields."""
    payload = copy_instance(updates)
    for key in (*PROTECTED_FIELDS, model.CREATED_AT_FIELD, model.UPDATED_AT_FIELD):
        payload.pop(key, None)
    return payload


async def update_record(record: Any, updates: Any, verb: Verb) -> Any:
    """Instance pipeline shared by put, patch and soft delete.

    When ``updates`` is the record itself it is saved as-is: its fields are
    not copied back onto it, only the fields the before hook changed.
    """
    model = type(record)
    as_is = updates is record
    payload = strip_protected(model, updates)
    snapshot = copy.deepcopy(payload) if as_is else None
    payload = strip_protected(
        model, await run_hook(record, verb, HookPhase.BEFORE, payload, context=payload)
    )

    if as_is:
        record.set(
            {key: value for key, value in payload.items() if snapshot.get(key, MISSING) != value}
        )
    else:
        record.set(payload)
    if model.TIMESTAMPS:
        record[model.UPDATED_AT_FIELD] = utcnow()
    await record.save()
    logger.debug("%s %s %s: %s", verb.value, model.__name__, record.id, sorted(payload))

    return await run_hook(record, verb, HookPhase.AFTER, payload, context=record)


async def update_model(model: type, args: tuple[Any, ...], verb: Verb) -> Any:
    """Static pipeline: resolve the call shape, locate the record, update it."""
    request = normalize_update(args)
    if isinstance(request, UpdateByInstance):
        return await update_record(request.record, request.record, verb)

    record = await model.find_by_id(request.id).or_fail()
    return await update_record(record, request.updates, verb)


@normalize_errors
async def put_record(record: Any, updates: Any = None) -> Any:
    return await update_record(record, updates, Verb.REPLACE)


@normalize_errors
async def patch_record(record: Any, updates: Any = None) -> Any:
    return await update_record(record, updates, Verb.PATCH)


@normalize_errors
async def put_model(model: type, *args: Any) -> Any:
    """``Model.put(id, updates)``, ``Model.put({"_id": ..., ...})`` or ``Model.put(record)``."""
    return await update_model(model, args, Verb.REPLACE)


@normalize_errors
async def patch_model(model: type, *args: Any) -> Any:
    """``Model.patch(id, updates)``, ``Model.patch({"_id": ..., ...})`` or ``Model.patch(record)``."""
    return await update_model(model, args, Verb.PATCH)
