"""Chainable queries against a model's document store.

A Query collects match conditions, a search term, projection, sort,
pagination and populate specs, then runs them on ``exec()``:

    records = await Guardian.find({"age": {"$gte": 18}}).sort("-createdAt").limit(5)
    guardian = await Guardian.find_by_id(id).select("name").or_fail()
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Mapping
from typing import TYPE_CHECKING, Any

from restactions.errors import DocumentNotFound, InvalidArgument
from restactions.persistence.matching import MISSING, get_path, matches, project

if TYPE_CHECKING:
    from restactions.document import Document

logger = logging.getLogger(__name__)


def populate_spec(spec: Any) -> tuple[str, Any]:
    """Split a populate spec into ``(path, select)``."""
    if isinstance(spec, str):
        return spec, None
    if isinstance(spec, Mapping) and spec.get("path"):
        return spec["path"], spec.get("select")
    raise InvalidArgument(f"Invalid populate option: {spec!r}")


def _and(first: dict[str, Any], second: Mapping[str, Any]) -> dict[str, Any]:
    if not first:
        return dict(second)
    if not second:
        return first
    if set(first) & set(second):
        return {"$and": [first, dict(second)]}
    return {**first, **second}


class Query:
    """A pending query for one model."""

    def __init__(
        self,
        model: type[Document],
        filter: Mapping[str, Any] | None = None,
        *,
        id: Any = MISSING,
        one: bool = False,
    ):
        self.model = model
        self._filter: dict[str, Any] = dict(filter or {})
        self._id = id
        self._one = one or id is not MISSING
        self._q: str | None = None
        self._select: Any = None
        self._sort: Any = None
        self._skip = 0
        self._limit: int | None = None
        self._populate: list[Any] = []
        self._lean = False
        self._or_fail = False

    def __repr__(self) -> str:
        target = f"id={self._id!r}" if self._id is not MISSING else f"filter={self._filter!r}"
        return f"Query({self.model.__name__}, {target})"

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def where(self, filter: Mapping[str, Any] | None) -> Query:
        """AND additional conditions into the query."""
        if filter:
            self._filter = _and(self._filter, filter)
        return self

    def search(self, q: str | None) -> Query:
        self._q = q or None
        return self

    def select(self, select: Any) -> Query:
        self._select = select or None
        return self

    def sort(self, sort: Any) -> Query:
        self._sort = sort or None
        return self

    def skip(self, skip: int) -> Query:
        self._skip = max(int(skip or 0), 0)
        return self

    def limit(self, limit: int | None) -> Query:
        self._limit = int(limit) if limit else None
        return self

    def populate(self, spec: Any) -> Query:
        """Queue a relation expansion. Specs apply in the order they are queued."""
        if spec:
            populate_spec(spec)
            self._populate.append(spec)
        return self

    def lean(self, lean: bool = True) -> Query:
        """Return plain mappings instead of model instances."""
        self._lean = lean
        return self

    def or_fail(self, or_fail: bool = True) -> Query:
        """Raise DocumentNotFound instead of returning nothing."""
        self._or_fail = or_fail
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _fetch(self) -> list[dict[str, Any]]:
        store = self.model.store()
        collection = self.model.__collection__

        if self._id is not MISSING:
            document = await store.find_by_id(collection, self._id)
            if document is None or not matches(document, self._filter):
                return []
            return [document]

        return await store.find(
            collection,
            self._filter,
            q=self._q,
            search_fields=self.model.__searchable__,
            sort=self._sort,
            skip=self._skip,
            limit=1 if self._one else self._limit,
        )

    async def _populate_records(self, records: list[Any]) -> None:
        """Fold each populate spec over the records, one spec at a time."""
        for spec in self._populate:
            path, select = populate_spec(spec)
            ref_model = self.model.resolve_ref(path)

            ids: list[Any] = []
            for record in records:
                value = get_path(_fields(record), path)
                for item in value if isinstance(value, list) else [value]:
                    if item is not MISSING and item is not None and not isinstance(item, Mapping):
                        if hasattr(item, "to_dict"):
                            continue
                        ids.append(item)
            if not ids:
                continue

            referenced = await (
                ref_model.find({"_id": {"$in": ids}}).select(select).lean(self._lean)
            )
            by_id = {_fields(ref).get("_id"): ref for ref in referenced}

            for record in records:
                fields = _fields(record)
                value = get_path(fields, path)
                if value is MISSING or value is None:
                    continue
                if isinstance(value, list):
                    expanded = [_expand(item, by_id) for item in value]
                else:
                    expanded = _expand(value, by_id)
                _assign(fields, path, expanded)

    async def exec(self) -> Any:
        """Run the query.

        Returns:
            A list of records, or a single record (or None) for
            single-record queries.

        Raises:
            DocumentNotFound: When ``or_fail`` is set and nothing matched
        """
        documents = await self._fetch()
        logger.debug("%r matched %d document(s)", self, len(documents))

        if self._select:
            documents = [project(document, self._select) for document in documents]

        records: list[Any] = (
            documents
            if self._lean
            else [
                self.model.from_store(document, projected=bool(self._select))
                for document in documents
            ]
        )

        if self._populate and records:
            await self._populate_records(records)

        if self._or_fail and not records:
            raise DocumentNotFound(
                f"No {self.model.__name__} found for {self!r}"
            )

        if self._one:
            return records[0] if records else None
        return records

    async def count(self) -> int:
        return await self.model.store().count_documents(
            self.model.__collection__,
            self._filter,
            q=self._q,
            search_fields=self.model.__searchable__,
        )

    def __await__(self) -> Generator[Any, None, Any]:
        return self.exec().__await__()


def _expand(item: Any, by_id: dict[Any, Any]) -> Any:
    if isinstance(item, Mapping) or hasattr(item, "to_dict"):
        return item
    return by_id.get(item, item)


def _fields(record: Any) -> dict[str, Any]:
    """The live field mapping of a record or plain document."""
    return record if isinstance(record, Mapping) else record._data


def _assign(fields: dict[str, Any], path: str, value: Any) -> None:
    """Assign a dotted path inside a field mapping."""
    *parents, leaf = path.split(".")
    target = get_path(fields, ".".join(parents)) if parents else fields
    if target is MISSING:
        return
    target[leaf] = value
