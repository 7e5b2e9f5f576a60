"""Document models.

A Document subclass describes one collection. Instances hold their fields
in a plain mapping and persist themselves through the document store the
model is bound to:

    class Guardian(Document):
        __collection__ = "guardians"
        __searchable__ = ("name", "email")
        __refs__ = {"ward": "Ward"}

    Guardian.bind(MemoryStore())
    guardian = Guardian(name="Jane")
    await guardian.save()
"""

from __future__ import annotations

import copy
import re
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, ClassVar

from restactions.errors import InvalidArgument, StoreError
from restactions.hooks.registry import HookRegistry
from restactions.persistence.adapter import DocumentStore
from restactions.persistence.matching import MISSING, set_path
from restactions.query import Query

DEFAULT_CREATED_AT_FIELD = "createdAt"
DEFAULT_UPDATED_AT_FIELD = "updatedAt"


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a document identifier."""
    return uuid.uuid4().hex


def _collection_name(class_name: str) -> str:
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", class_name).lower()
    return snake if snake.endswith("s") else f"{snake}s"


def _plain(value: Any, depopulate: bool = False) -> Any:
    """Deep-copy a field value, turning nested records into mappings (or ids)."""
    if isinstance(value, Document):
        return value.id if depopulate else value.to_dict()
    if isinstance(value, Mapping):
        return {key: _plain(item, depopulate) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item, depopulate) for item in value]
    return copy.deepcopy(value)


class Document:
    """Base class for document models.

    Class attributes:
        __collection__: Collection name (defaults to the snake_case plural
            of the class name)
        __searchable__: Fields matched by a free-text ``q`` term
        __refs__: Populate paths mapped to the referenced model (class or
            class name)
        __timestamps__: True, False, or ``{"created_at": ..., "updated_at": ...}``
            to rename the timestamp fields
    """

    __collection__: ClassVar[str] = "documents"
    __searchable__: ClassVar[tuple[str, ...]] = ()
    __refs__: ClassVar[Mapping[str, type[Document] | str]] = {}
    __timestamps__: ClassVar[bool | Mapping[str, str]] = True
    __store__: ClassVar[DocumentStore | None] = None

    TIMESTAMPS: ClassVar[bool] = True
    CREATED_AT_FIELD: ClassVar[str] = DEFAULT_CREATED_AT_FIELD
    UPDATED_AT_FIELD: ClassVar[str] = DEFAULT_UPDATED_AT_FIELD

    _registry: ClassVar[dict[str, type[Document]]] = {}

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        if "__collection__" not in cls.__dict__:
            cls.__collection__ = _collection_name(cls.__name__)

        timestamps = cls.__timestamps__
        cls.TIMESTAMPS = bool(timestamps)
        if isinstance(timestamps, Mapping):
            cls.CREATED_AT_FIELD = timestamps.get("created_at", DEFAULT_CREATED_AT_FIELD)
            cls.UPDATED_AT_FIELD = timestamps.get("updated_at", DEFAULT_UPDATED_AT_FIELD)

        Document._registry[cls.__name__] = cls

        # Subclasses of a plugged model get their own hook resolution
        if getattr(cls, "__rest_actions__", None) is not None:
            HookRegistry.resolve(cls)

    def __init__(self, data: Mapping[str, Any] | Document | None = None, **fields: Any):
        object.__setattr__(self, "_data", {})
        object.__setattr__(self, "_is_new", True)
        object.__setattr__(self, "_projected", False)
        self.set(data, **fields)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") and name != "_id":
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(
                f"'{type(self).__name__}' record has no field '{name}'"
            ) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if (name.startswith("_") and name != "_id") or isinstance(
            getattr(type(self), name, None), property
        ):
            object.__setattr__(self, name, value)
        else:
            self._data[name] = value

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    @property
    def id(self) -> Any:
        return self._data.get("_id")

    @property
    def is_new(self) -> bool:
        """True until the record has been written to (or read from) the store."""
        return self._is_new

    @property
    def is_projected(self) -> bool:
        """True when the record was loaded with only some of its stored fields."""
        return self._projected

    def to_dict(self) -> dict[str, Any]:
        """Plain, deep-copied mapping of the record's fields."""
        return _plain(self._data)

    def set(self, fields: Mapping[str, Any] | Document | None = None, **extra: Any) -> Document:
        """Assign fields in place. Dotted keys assign nested paths."""
        if isinstance(fields, Document):
            fields = fields.to_dict()
        elif fields is not None and not isinstance(fields, Mapping):
            raise InvalidArgument(f"Cannot set fields from {type(fields).__name__}")

        for key, value in {**(fields or {}), **extra}.items():
            if "." in key:
                set_path(self._data, key, value)
            else:
                self._data[key] = value
        return self

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> Document:
        """Write the record to the store.

        New records get an ``_id`` and, when timestamps are enabled, their
        creation and update timestamps before they are inserted. A record
        loaded through a projection only writes the fields it holds; the
        stored fields it never loaded are kept.
        """
        model = type(self)
        store = model.store()

        if self._is_new:
            if self._data.get("_id") is None:
                self._data["_id"] = new_id()
            if model.TIMESTAMPS:
                now = utcnow()
                if self._data.get(model.CREATED_AT_FIELD) is None:
                    self._data[model.CREATED_AT_FIELD] = now
                if self._data.get(model.UPDATED_AT_FIELD) is None:
                    self._data[model.UPDATED_AT_FIELD] = now
            await store.insert(model.__collection__, _plain(self._data, depopulate=True))
            self._is_new = False
        else:
            document = _plain(self._data, depopulate=True)
            if self._projected:
                stored = await store.find_by_id(model.__collection__, self.id)
                document = {**(stored or {}), **document}
            await store.save(model.__collection__, document)

        return self

    async def remove(self) -> Document:
        """Physically delete the record from the store."""
        if self.id is None:
            raise StoreError("Cannot remove a record without an _id")
        await type(self).store().delete(type(self).__collection__, self.id)
        return self

    # ------------------------------------------------------------------
    # Model-level access
    # ------------------------------------------------------------------

    @classmethod
    def bind(cls, store: DocumentStore) -> DocumentStore:
        """Bind the model (and subclasses without their own binding) to a store."""
        cls.__store__ = store
        return store

    @classmethod
    def store(cls) -> DocumentStore:
        if cls.__store__ is None:
            raise StoreError(
                f"{cls.__name__} is not bound to a document store", status=500
            )
        return cls.__store__

    @classmethod
    def from_store(cls, document: Mapping[str, Any], projected: bool = False) -> Document:
        """Hydrate a record from a stored document (or a projection of one)."""
        record = cls(document)
        record._is_new = False
        record._projected = projected
        return record

    @classmethod
    def resolve_ref(cls, path: str) -> type[Document]:
        """Resolve the model referenced by a populate path."""
        ref = cls.__refs__.get(path, MISSING)
        if ref is MISSING:
            raise InvalidArgument(f"Cannot populate unknown path '{path}' on {cls.__name__}")
        if isinstance(ref, str):
            if ref not in Document._registry:
                raise InvalidArgument(f"Unknown model '{ref}' referenced by '{path}'")
            return Document._registry[ref]
        return ref

    @classmethod
    def find(cls, filter: Mapping[str, Any] | None = None) -> Query:
        return Query(cls, filter)

    @classmethod
    def find_one(cls, filter: Mapping[str, Any] | None = None) -> Query:
        return Query(cls, filter, one=True)

    @classmethod
    def find_by_id(cls, id: Any) -> Query:
        return Query(cls, id=id)

    @classmethod
    async def count_documents(cls, filter: Mapping[str, Any] | None = None) -> int:
        return await cls.find(filter).count()
