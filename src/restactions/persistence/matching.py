"""In-process evaluation of filters, search terms, sort specs and projections.

Both store backends share these helpers so that a filter means the same
thing regardless of where the documents live.

Supported filter operators:
    $eq, $ne, $gt, $gte, $lt, $lte, $in, $nin, $exists, $regex, $not
    plus the logical $and, $or and $nor. Dotted paths reach into
    nested mappings and list indexes.
"""

import copy
import operator
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from restactions.errors import InvalidArgument, StoreError

MISSING: Any = object()

SortSpec = list[tuple[str, int]]


# =============================================================================
# Paths
# =============================================================================


def get_path(document: Any, path: str) -> Any:
    """Resolve a dotted path, returning MISSING when any segment is absent."""
    current = document
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def set_path(document: dict[str, Any], path: str, value: Any) -> None:
    """Assign a dotted path, creating intermediate mappings as needed."""
    *parents, leaf = path.split(".")
    current = document
    for segment in parents:
        child = current.get(segment)
        if not isinstance(child, dict):
            child = {}
            current[segment] = child
        current = child
    current[leaf] = value


# =============================================================================
# Filters
# =============================================================================


def _equals(value: Any, expected: Any) -> bool:
    if value is MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(value: Any, operand: Any) -> bool:
        if value is MISSING or value is None:
            return False
        try:
            return bool(compare(value, operand))
        except TypeError:
            return False

    return apply


def _regex(value: Any, operand: Any, options: str = "") -> bool:
    if not isinstance(value, str):
        return False
    flags = re.IGNORECASE if "i" in options else 0
    if "m" in options:
        flags |= re.MULTILINE
    pattern = operand if isinstance(operand, re.Pattern) else re.compile(operand, flags)
    return pattern.search(value) is not None


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": _equals,
    "$ne": lambda value, operand: not _equals(value, operand),
    "$gt": _compare(operator.gt),
    "$gte": _compare(operator.ge),
    "$lt": _compare(operator.lt),
    "$lte": _compare(operator.le),
    "$in": lambda value, operand: any(_equals(value, item) for item in operand),
    "$nin": lambda value, operand: not any(_equals(value, item) for item in operand),
    "$exists": lambda value, operand: (value is not MISSING) == bool(operand),
}


def _is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(key, str) and key.startswith("$") for key in condition)
    )


def _match_field(value: Any, condition: Any) -> bool:
    if not _is_operator_mapping(condition):
        if isinstance(condition, re.Pattern):
            return _regex(value, condition)
        return _equals(value, condition)

    for op, operand in condition.items():
        if op == "$options":
            continue
        if op == "$regex":
            if not _regex(value, operand, condition.get("$options", "")):
                return False
        elif op == "$not":
            if _match_field(value, operand):
                return False
        elif op in _OPERATORS:
            if not _OPERATORS[op](value, operand):
                return False
        else:
            raise StoreError(f"Unsupported filter operator: {op}")
    return True


def matches(document: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Check whether a document satisfies a filter."""
    if not filter:
        return True

    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif key == "$nor":
            if any(matches(document, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise StoreError(f"Unsupported filter operator: {key}")
        elif not _match_field(get_path(document, key), condition):
            return False
    return True


def matches_search(
    document: Mapping[str, Any],
    q: str | None,
    fields: Iterable[str],
) -> bool:
    """Case-insensitive substring match of ``q`` against any searchable field.

    A blank term, or a model without searchable fields, matches everything.
    """
    fields = tuple(fields)
    if not q or not fields:
        return True

    term = q.strip().lower()
    for path in fields:
        value = get_path(document, path)
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is not MISSING and item is not None and term in str(item).lower():
                return True
    return False


# =============================================================================
# Sorting
# =============================================================================


def normalize_sort(sort: Any) -> SortSpec:
    """Normalize a sort spec into ``[(path, 1 | -1), ...]``.

    Accepts a mapping ``{"name": 1, "age": -1}``, a string ``"name -age"``
    or a sequence of names and/or ``(path, direction)`` pairs.
    """
    if not sort:
        return []

    if isinstance(sort, str):
        items: Iterable[Any] = sort.replace(",", " ").split()
    elif isinstance(sort, Mapping):
        items = sort.items()
    else:
        items = sort

    spec: SortSpec = []
    for item in items:
        if isinstance(item, str):
            if item.startswith("-"):
                spec.append((item[1:], -1))
            else:
                spec.append((item.lstrip("+"), 1))
            continue
        path, direction = item
        spec.append((path, _direction(direction)))
    return spec


def _direction(direction: Any) -> int:
    if isinstance(direction, str):
        lowered = direction.lower()
        if lowered in ("asc", "ascending", "1"):
            return 1
        if lowered in ("desc", "descending", "-1"):
            return -1
        raise InvalidArgument(f"Invalid sort direction: {direction!r}")
    return -1 if direction < 0 else 1


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.timestamp())
    if isinstance(value, date):
        return (3, datetime(value.year, value.month, value.day).timestamp())
    return (4, str(value))


def sort_documents(documents: list[dict[str, Any]], sort: Any) -> list[dict[str, Any]]:
    """Return the documents ordered by the sort spec (stable)."""
    ordered = list(documents)
    for path, direction in reversed(normalize_sort(sort)):
        ordered.sort(
            key=lambda document: _sort_key(get_path(document, path)),
            reverse=direction < 0,
        )
    return ordered


# =============================================================================
# Projection
# =============================================================================


def normalize_select(select: Any) -> tuple[bool, list[str], bool]:
    """Normalize a projection into ``(inclusive, paths, keep_id)``.

    Raises:
        InvalidArgument: If inclusion and exclusion are mixed
    """
    if isinstance(select, str):
        pairs = [
            (token[1:], False) if token.startswith("-") else (token, True)
            for token in select.replace(",", " ").split()
        ]
    elif isinstance(select, Mapping):
        pairs = [(path, bool(flag)) for path, flag in select.items()]
    else:
        pairs = [(path, True) for path in select or ()]

    keep_id = True
    included: list[str] = []
    excluded: list[str] = []
    for path, flag in pairs:
        if path == "_id":
            keep_id = flag
            continue
        (included if flag else excluded).append(path)

    if included and excluded:
        raise InvalidArgument("Projection cannot mix inclusion and exclusion")

    if included:
        return True, included, keep_id
    if not keep_id:
        excluded.append("_id")
    return False, excluded, True


def project(document: Mapping[str, Any], select: Any) -> dict[str, Any]:
    """Apply a projection to a document, returning a new mapping."""
    if not select:
        return dict(document)

    inclusive, paths, keep_id = normalize_select(select)
    if inclusive:
        projected: dict[str, Any] = {}
        if keep_id and "_id" in document:
            projected["_id"] = document["_id"]
        for path in paths:
            value = get_path(document, path)
            if value is not MISSING:
                set_path(projected, path, copy.deepcopy(value))
        return projected

    projected = copy.deepcopy(dict(document))
    for path in paths:
        *parents, leaf = path.split(".")
        parent = get_path(projected, ".".join(parents)) if parents else projected
        if isinstance(parent, dict):
            parent.pop(leaf, None)
    return projected
