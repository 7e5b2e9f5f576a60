"""REST verbs for document models.

Attach ``post``, ``get_by_id``, ``get``, ``fresh``, ``put``, ``patch`` and
``delete`` to a Document model:

    from restactions import Document, MemoryStore, rest_actions

    @rest_actions
    class Guardian(Document):
        __searchable__ = ("name",)

    Guardian.bind(MemoryStore())

    guardian = await Guardian.post({"name": "Jane"})
    result = await Guardian.get({"q": "jane", "page": 1})
    await Guardian.delete({"_id": guardian.id, "soft": True})
"""

from restactions.document import Document
from restactions.errors import (
    DocumentNotFound,
    DuplicateKeyError,
    IllegalArguments,
    InvalidArgument,
    MissingInstanceId,
    RestActionError,
    StoreError,
)
from restactions.hooks import hook
from restactions.persistence import MemoryStore, SQLStore, StoreConfig, create_store
from restactions.plugin import define_model, rest_actions
from restactions.query import Query
from restactions.types import (
    DeleteOptions,
    GetByIdOptions,
    PluginOptions,
    QueryOptions,
    ResultEnvelope,
    UpdateById,
    UpdateByInstance,
    UpdateByPayload,
    Verb,
)

__all__ = [
    "DeleteOptions",
    "Document",
    "DocumentNotFound",
    "DuplicateKeyError",
    "GetByIdOptions",
    "IllegalArguments",
    "InvalidArgument",
    "MemoryStore",
    "MissingInstanceId",
    "PluginOptions",
    "Query",
    "QueryOptions",
    "RestActionError",
    "ResultEnvelope",
    "SQLStore",
    "StoreConfig",
    "StoreError",
    "UpdateById",
    "UpdateByInstance",
    "UpdateByPayload",
    "Verb",
    "create_store",
    "define_model",
    "hook",
    "rest_actions",
]
