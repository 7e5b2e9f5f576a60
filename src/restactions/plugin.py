"""Attach rest actions to document models.

    @rest_actions(root="guardians", default_limit=20)
    class Guardian(Document):
        __searchable__ = ("name", "email")

        async def before_patch(self, updates):
            updates["editedBy"] = "system"

    guardian = await Guardian.post({"name": "Jane"})
    guardian = await guardian.patch({"name": "Jane Doe"})
    result = await Guardian.get({"page": 2, "limit": 10})

The verbs are exposed on both the model and its records: ``Guardian.patch``
runs the static form (lookup by id), ``guardian.patch`` the instance form.
"""

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from types import MethodType
from typing import Any, TypeVar

from restactions.document import Document
from restactions.hooks.registry import HookRegistry
from restactions.persistence.adapter import DocumentStore
from restactions.types import PluginOptions
from restactions.verbs import (
    delete_model,
    delete_record,
    fresh,
    get,
    get_by_id,
    patch_model,
    patch_record,
    post_model,
    post_record,
    put_model,
    put_record,
)

logger = logging.getLogger(__name__)

PLUGIN_ATTRIBUTE = "__rest_actions__"

D = TypeVar("D", bound=type[Document])


class VerbMethod:
    """Descriptor binding a verb to the model on class access and to the
    record on instance access.

    Verbs without an instance form (the reads) bind to the record's class
    either way.
    """

    def __init__(
        self,
        static: Callable[..., Any],
        instance: Callable[..., Any] | None = None,
    ):
        self.static = static
        self.instance = instance
        self.__doc__ = static.__doc__

    def __get__(self, record: Any, model: type | None = None) -> Any:
        if record is None or self.instance is None:
            return MethodType(self.static, model if model is not None else type(record))
        return MethodType(self.instance, record)

    def __repr__(self) -> str:
        return f"VerbMethod({self.static.__name__})"


VERB_METHODS: dict[str, VerbMethod] = {
    "post": VerbMethod(post_model, post_record),
    "get_by_id": VerbMethod(get_by_id),
    "get": VerbMethod(get),
    "fresh": VerbMethod(fresh),
    "put": VerbMethod(put_model, put_record),
    "patch": VerbMethod(patch_model, patch_record),
    "delete": VerbMethod(delete_model, delete_record),
}


def rest_actions(model: D | None = None, /, **options: Any) -> Any:
    """Attach the rest verbs to a Document subclass.

    Usable as ``@rest_actions``, ``@rest_actions(root=...)`` or
    ``rest_actions(Model, ...)``. Attaching twice is a no-op.

    Args:
        model: The Document subclass
        **options: PluginOptions fields (root, default_limit, deleted_at_field)

    Returns:
        The model, or a decorator when called without one
    """
    plugin_options = PluginOptions(**options)

    def attach(model: D) -> D:
        if not (isinstance(model, type) and issubclass(model, Document)):
            raise TypeError(f"rest_actions expects a Document subclass, got {model!r}")
        if PLUGIN_ATTRIBUTE in model.__dict__:
            logger.debug("Rest actions already attached to %s", model.__name__)
            return model

        setattr(model, PLUGIN_ATTRIBUTE, plugin_options)
        for name, method in VERB_METHODS.items():
            setattr(model, name, method)
        HookRegistry.resolve(model)

        logger.debug("Attached rest actions to %s (%s)", model.__name__, plugin_options)
        return model

    if model is None:
        return attach
    return attach(model)


def _class_name(collection: str) -> str:
    parts = re.split(r"[^0-9a-zA-Z]+", collection)
    return "".join(part[:1].upper() + part[1:] for part in parts if part) or "Record"


def define_model(
    collection: str,
    *,
    searchable: Iterable[str] = (),
    refs: Mapping[str, Any] | None = None,
    store: DocumentStore | None = None,
    **options: Any,
) -> type[Document]:
    """Build a plugged model for a collection at runtime.

    Used by the CLI and the HTTP app to expose collections that have no
    model class of their own.
    """
    model = type(
        _class_name(collection),
        (Document,),
        {
            "__collection__": collection,
            "__searchable__": tuple(searchable),
            "__refs__": dict(refs or {}),
            "__module__": __name__,
        },
    )
    if store is not None:
        model.bind(store)
    return rest_actions(model, **options)
