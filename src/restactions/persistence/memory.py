"""In-memory document store."""

import copy
import logging
from collections.abc import Iterable
from typing import Any

from restactions.errors import DuplicateKeyError, StoreError
from restactions.persistence.matching import matches, matches_search, sort_documents

logger = logging.getLogger(__name__)


class MemoryStore:
    """Document store backed by per-collection dicts.

    Intended for tests and for serving throwaway collections. Every read
    and write copies documents so callers never share state with the store.
    """

    def __init__(self) -> None:
        self.conn: dict[str, dict[Any, dict[str, Any]]] | None = None

    def connect(self) -> None:
        if self.conn is None:
            self.conn = {}

    def close(self) -> None:
        self.conn = None

    def _collection(self, name: str) -> dict[Any, dict[str, Any]]:
        if self.conn is None:
            self.connect()
        return self.conn.setdefault(name, {})

    def _matching(
        self,
        collection: str,
        filter: dict[str, Any] | None,
        q: str | None,
        search_fields: Iterable[str],
    ) -> list[dict[str, Any]]:
        search_fields = tuple(search_fields)
        return [
            document
            for document in self._collection(collection).values()
            if matches(document, filter) and matches_search(document, q, search_fields)
        ]

    async def find_by_id(self, collection: str, id: Any) -> dict[str, Any] | None:
        document = self._collection(collection).get(id)
        return copy.deepcopy(document) if document is not None else None

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        q: str | None = None,
        search_fields: Iterable[str] = (),
        sort: Any = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        documents = sort_documents(
            self._matching(collection, filter, q, search_fields), sort
        )
        end = skip + limit if limit else None
        return copy.deepcopy(documents[skip:end])

    async def count_documents(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        q: str | None = None,
        search_fields: Iterable[str] = (),
    ) -> int:
        return len(self._matching(collection, filter, q, search_fields))

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        if document.get("_id") is None:
            raise StoreError("Cannot insert a document without an _id")

        documents = self._collection(collection)
        if document["_id"] in documents:
            raise DuplicateKeyError(
                f"Duplicate _id {document['_id']!r} in collection '{collection}'"
            )
        documents[document["_id"]] = copy.deepcopy(document)
        logger.debug("Inserted %s into %s", document["_id"], collection)
        return copy.deepcopy(document)

    async def save(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        if document.get("_id") is None:
            raise StoreError("Cannot save a document without an _id")

        self._collection(collection)[document["_id"]] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def delete(self, collection: str, id: Any) -> dict[str, Any] | None:
        return self._collection(collection).pop(id, None)

    async def drop(self, collection: str) -> None:
        if self.conn is not None:
            self.conn.pop(collection, None)
