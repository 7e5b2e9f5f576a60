"""Argument normalization for the verb surface.

Each verb accepts a few call shapes (an id, an options mapping, an updates
mapping, a live record). The functions here resolve them once, at the
boundary, into the tagged types of ``restactions.types``. All of them raise
before any store I/O.
"""

import copy
from collections.abc import Mapping
from typing import Any

from restactions.errors import IllegalArguments, InvalidArgument, MissingInstanceId
from restactions.types import (
    DeleteOptions,
    GetByIdOptions,
    UpdateById,
    UpdateByInstance,
    UpdateByPayload,
    UpdateRequest,
)

UPDATE_REQUESTS = (UpdateById, UpdateByInstance, UpdateByPayload)


def is_instance(value: Any) -> bool:
    """Duck-typed check for a live record: not a mapping, can render and save itself."""
    return (
        value is not None
        and not isinstance(value, Mapping)
        and callable(getattr(value, "to_dict", None))
        and callable(getattr(value, "save", None))
    )


def copy_instance(value: Any) -> dict[str, Any]:
    """Plain deep copy of a record or mapping."""
    if value is None:
        return {}
    if is_instance(value):
        return value.to_dict()
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    raise InvalidArgument(f"Expected a record or a mapping, got {type(value).__name__}")


def _missing(id: Any) -> bool:
    return id is None or id == ""


def _id_of(options: Mapping[str, Any]) -> Any:
    """Read ``_id``, falling back to the legacy ``id`` key."""
    id = options.get("_id")
    return options.get("id") if _missing(id) else id


def normalize_get_by_id(value: Any) -> GetByIdOptions:
    """Resolve ``get_by_id(id)`` / ``get_by_id({_id, select, populate, filter})``."""
    if isinstance(value, GetByIdOptions):
        options = value
    elif isinstance(value, Mapping):
        populate = value.get("populate") or ()
        if not isinstance(populate, (list, tuple)):
            populate = (populate,)
        options = GetByIdOptions(
            id=_id_of(value),
            select=value.get("select") or None,
            populate=tuple(spec for spec in populate if spec),
            filter=value.get("filter") or None,
        )
    else:
        options = GetByIdOptions(id=value)

    if _missing(options.id):
        raise MissingInstanceId()
    return options


def normalize_delete(value: Any) -> DeleteOptions:
    """Resolve ``delete(id)`` / ``delete({_id, soft, filter})``."""
    if isinstance(value, DeleteOptions):
        options = value
    elif isinstance(value, Mapping):
        options = DeleteOptions(
            id=_id_of(value),
            soft=bool(value.get("soft", False)),
            filter=value.get("filter") or None,
        )
    elif is_instance(value):
        options = DeleteOptions(id=value.id)
    else:
        options = DeleteOptions(id=value)

    if _missing(options.id):
        raise MissingInstanceId()
    return options


def _payload(updates: Mapping[str, Any], id: Any) -> dict[str, Any]:
    payload = copy_instance(updates)
    payload.pop("id", None)
    payload["_id"] = id
    return payload


def normalize_update(args: tuple[Any, ...]) -> UpdateRequest:
    """Resolve the call shapes of static put/patch.

    Accepted shapes:
        (id, updates)        -> UpdateById, unless ``updates`` is a live
                                record carrying the same id, which is then
                                used as-is (UpdateByInstance)
        (updates_with_id,)   -> UpdateByPayload
        (record,)            -> UpdateByInstance
        (request,)           -> the prebuilt request itself

    Raises:
        IllegalArguments: For any other arity or shape
        MissingInstanceId: When no id can be resolved
    """
    if len(args) == 1:
        (value,) = args
        if isinstance(value, UPDATE_REQUESTS):
            request: UpdateRequest = value
        elif is_instance(value):
            request = UpdateByInstance(value)
        elif isinstance(value, Mapping):
            request = UpdateByPayload(_payload(value, _id_of(value)))
        else:
            raise IllegalArguments()

    elif len(args) == 2:
        id, updates = args
        if is_instance(updates) and updates.id == id:
            request = UpdateByInstance(updates)
        elif updates is None or isinstance(updates, Mapping) or is_instance(updates):
            fallback = _id_of(updates) if isinstance(updates, Mapping) else None
            resolved = fallback if _missing(id) else id
            request = UpdateById(resolved, _payload(updates or {}, resolved))
        else:
            raise IllegalArguments()

    else:
        raise IllegalArguments()

    if _missing(request.id):
        raise MissingInstanceId()
    return request


def normalize_post(model: type, body: Any) -> Any:
    """A live record is used directly; a mapping is copied into a new record."""
    if is_instance(body):
        return body
    if body is None or isinstance(body, Mapping):
        return model(copy_instance(body))
    raise InvalidArgument(f"Cannot create {model.__name__} from {type(body).__name__}")
