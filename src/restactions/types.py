"""Core types for rest actions.

Defines the verbs, the immutable option structs each verb is driven by,
the tagged update requests and the list-read result envelope:
- Verb: the operations a plugged model exposes
- QueryOptions / Paginate: list-read options, built by a pure merge
- GetByIdOptions / DeleteOptions: single-record options
- UpdateById / UpdateByInstance / UpdateByPayload: put/patch call shapes
- ResultEnvelope: paginated list-read result
- PluginOptions: per-model plugin configuration
"""

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Mapping

from restactions.errors import InvalidArgument

DEFAULT_LIMIT = 10
DEFAULT_ROOT = "data"
DELETED_AT_FIELD = "deletedAt"

FILTER_ALIASES = ("filter", "criteria", "query")
IF_MODIFIED_SINCE_KEYS = (
    "ifModifiedSince",
    "if_modified_since",
    "If-Modified-Since",
    "if-modified-since",
)


class Verb(Enum):
    """The operations a plugged model exposes."""

    CREATE = "post"
    READ = "get_by_id"
    READ_MANY = "get"
    REPLACE = "put"
    PATCH = "patch"
    DELETE = "delete"


# =============================================================================
# Coercion helpers
# =============================================================================


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any) -> datetime:
    """Parse a datetime, an ISO-8601 string or an HTTP date into an aware datetime.

    Naive values are taken as UTC.

    Raises:
        InvalidArgument: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            try:
                parsed = parsedate_to_datetime(value)
            except (TypeError, ValueError):
                raise InvalidArgument(f"Invalid timestamp: {value!r}") from None
    else:
        raise InvalidArgument(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _compact(value: Any) -> tuple[Any, ...]:
    """Flatten a populate value into a tuple, dropping empty entries."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(v for v in value if v)
    return (value,) if value else ()


# =============================================================================
# List-read options
# =============================================================================


@dataclass(frozen=True)
class Paginate:
    """Resolved pagination. ``skip`` is always consistent with ``page``."""

    skip: int = 0
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def resolve(
        cls,
        limit: Any = None,
        skip: Any = None,
        page: Any = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> "Paginate":
        """Resolve raw pagination values.

        A non-positive or unparsable limit falls back to ``default_limit``
        and a negative skip to 0. A positive page wins over skip:
        ``skip = (page - 1) * limit``. When only skip is given the page is
        derived from it.
        """
        resolved_limit = _as_int(limit)
        if resolved_limit is None or resolved_limit <= 0:
            resolved_limit = default_limit

        resolved_skip = _as_int(skip)
        if resolved_skip is None or resolved_skip < 0:
            resolved_skip = 0

        resolved_page = _as_int(page)
        if resolved_page is not None and resolved_page > 0:
            resolved_skip = (resolved_page - 1) * resolved_limit
        else:
            resolved_page = resolved_skip // resolved_limit + 1

        return cls(skip=resolved_skip, page=resolved_page, limit=resolved_limit)


@dataclass(frozen=True)
class QueryOptions:
    """Options for a list read (get / fresh).

    Attributes:
        filter: Structured match conditions (``q`` already extracted)
        q: Free-text search term, or None
        select: Projection spec
        sort: Sort spec
        populate: Relation expansion specs, applied in order
        paginate: Resolved skip/page/limit
        if_modified_since: Only match records updated after this instant
    """

    filter: Mapping[str, Any] = field(default_factory=dict)
    q: str | None = None
    select: Any = field(default_factory=dict)
    sort: Any = field(default_factory=dict)
    populate: tuple[Any, ...] = ()
    paginate: Paginate = field(default_factory=Paginate)
    if_modified_since: datetime | None = None

    @classmethod
    def from_mapping(
        cls,
        options: "Mapping[str, Any] | QueryOptions | None" = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> "QueryOptions":
        """Merge caller options over the defaults.

        The input mapping is never mutated. Match criteria may be given as
        ``filter``, ``criteria`` or ``query``; the first non-empty one wins.
        Pagination may be given at the top level or under ``paginate``.
        """
        if isinstance(options, QueryOptions):
            return options
        if options is None:
            options = {}
        if not isinstance(options, Mapping):
            raise InvalidArgument(f"Invalid query options: {options!r}")

        criteria: dict[str, Any] = {}
        for alias in FILTER_ALIASES:
            if options.get(alias):
                criteria = dict(options[alias])
                break

        q = criteria.pop("q", None) or options.get("q") or None

        paginate = dict(options.get("paginate") or {})
        for key in ("limit", "skip", "offset", "page"):
            if options.get(key) is not None:
                paginate[key] = options[key]
        skip = paginate.get("skip")
        if skip is None:
            skip = paginate.get("offset")

        headers = options.get("headers") or {}
        since = options.get("if_modified_since")
        for key in IF_MODIFIED_SINCE_KEYS:
            if since is None and headers.get(key):
                since = headers[key]

        return cls(
            filter=criteria,
            q=str(q) if q is not None else None,
            select=options.get("select") or {},
            sort=options.get("sort") or {},
            populate=_compact(options.get("populate")),
            paginate=Paginate.resolve(
                limit=paginate.get("limit"),
                skip=skip,
                page=paginate.get("page"),
                default_limit=default_limit,
            ),
            if_modified_since=parse_timestamp(since) if since else None,
        )

    @property
    def limit(self) -> int:
        return self.paginate.limit

    @property
    def skip(self) -> int:
        return self.paginate.skip

    @property
    def page(self) -> int:
        return self.paginate.page

    def conditions(self, updated_at_field: str) -> dict[str, Any]:
        """Structured conditions with the conditional-fetch clause ANDed in."""
        conditions = dict(self.filter)
        if self.if_modified_since is None:
            return conditions

        fresh = {updated_at_field: {"$gt": self.if_modified_since}}
        if updated_at_field in conditions:
            return {"$and": [conditions, fresh]}
        conditions.update(fresh)
        return conditions


@dataclass
class ResultEnvelope:
    """Result of a list read.

    ``pages`` is ``ceil(total / limit)`` and ``has_more`` is true only when
    the requested page lies beyond the last page.
    """

    data: list[Any]
    total: int
    limit: int
    skip: int
    page: int
    last_modified: datetime | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit > 0 else 0

    @property
    def has_more(self) -> bool:
        return self.page > self.pages

    def to_dict(self, root: str = DEFAULT_ROOT) -> dict[str, Any]:
        return {
            root: [
                record.to_dict() if hasattr(record, "to_dict") else dict(record)
                for record in self.data
            ],
            "total": self.total,
            "size": self.size,
            "limit": self.limit,
            "skip": self.skip,
            "page": self.page,
            "pages": self.pages,
            "lastModified": self.last_modified,
            "hasMore": self.has_more,
        }


# =============================================================================
# Single-record options and update requests
# =============================================================================


@dataclass(frozen=True)
class GetByIdOptions:
    id: Any
    select: Any = None
    populate: tuple[Any, ...] = ()
    filter: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class DeleteOptions:
    id: Any
    soft: bool = False
    filter: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class UpdateById:
    """put/patch with an explicit id and a mapping of updates."""

    id: Any
    updates: Mapping[str, Any]


@dataclass(frozen=True)
class UpdateByInstance:
    """put/patch with a live record; no lookup, no merge."""

    record: Any

    @property
    def id(self) -> Any:
        return self.record.id


@dataclass(frozen=True)
class UpdateByPayload:
    """put/patch with a mapping that carries its own ``_id``."""

    updates: Mapping[str, Any]

    @property
    def id(self) -> Any:
        return self.updates.get("_id")


UpdateRequest = UpdateById | UpdateByInstance | UpdateByPayload


@dataclass(frozen=True)
class PluginOptions:
    """Options given when attaching rest actions to a model.

    Attributes:
        root: Key holding the records in a rendered envelope
        default_limit: Page size when none (or a non-positive one) is given
        deleted_at_field: Field stamped by a soft delete
    """

    root: str = DEFAULT_ROOT
    default_limit: int = DEFAULT_LIMIT
    deleted_at_field: str = DELETED_AT_FIELD
