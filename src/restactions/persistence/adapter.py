"""DocumentStore Protocol: the shared interface for all document stores."""

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DocumentStore(Protocol):
    """Interface all document stores must implement.

    Documents are plain mappings keyed by ``_id``. Stores hand out copies,
    never their own internal state. Filters, search terms and sort specs
    follow ``restactions.persistence.matching``.
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    async def find_by_id(self, collection: str, id: Any) -> dict[str, Any] | None: ...

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
    ) -> list[dict[str, Any]]: ...

    async def count_documents(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        q: str | None = None,
        search_fields: Iterable[str] = (),
    ) -> int: ...

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]: ...

    async def save(self, collection: str, document: dict[str, Any]) -> dict[str, Any]: ...

    async def delete(self, collection: str, id: Any) -> dict[str, Any] | None: ...

    async def drop(self, collection: str) -> None: ...
