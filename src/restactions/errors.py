"""Error types and status normalization for rest actions.

Every error that leaves a verb carries a numeric ``status``. Errors that
arrive without one (store failures, hook failures, lookups that found
nothing) get the default of 400 attached by ``ensure_status``.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_ERROR_STATUS = 400

T = TypeVar("T")


class RestActionError(Exception):
    """Base class for errors raised by rest actions.

    Attributes:
        message: Human-readable message
        status: HTTP-like status code, or None when unset
        code: Machine-readable error code
    """

    default_message = "Rest Action Error"
    default_status: int | None = None
    default_code = "REST_ACTION_ERROR"

    def __init__(
        self,
        message: str | None = None,
        status: int | None = None,
        code: str | None = None,
    ):
        self.message = message or self.default_message
        self.status = status if status is not None else self.default_status
        self.code = code or self.default_code
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return error_to_dict(self)


class InvalidArgument(RestActionError):
    """Malformed or missing call arguments. Raised before any store I/O."""

    default_message = "Invalid Argument"
    default_status = 400
    default_code = "INVALID_ARGUMENT"


class IllegalArguments(InvalidArgument):
    default_message = "Illegal Arguments"
    default_code = "ILLEGAL_ARGUMENTS"


class MissingInstanceId(InvalidArgument):
    default_message = "Missing Instance Id"
    default_code = "MISSING_INSTANCE_ID"


class DocumentNotFound(RestActionError):
    """An id-based lookup matched nothing.

    Carries no status of its own, so the verb tail assigns the default.
    """

    default_message = "Document Not Found"
    default_code = "DOCUMENT_NOT_FOUND"


class StoreError(RestActionError):
    """A failure reported by the document store."""

    default_message = "Store Error"
    default_code = "STORE_ERROR"


class DuplicateKeyError(StoreError):
    default_message = "Duplicate Key"
    default_code = "DUPLICATE_KEY"


def ensure_status(error: BaseException, default: int = DEFAULT_ERROR_STATUS) -> BaseException:
    """Attach ``default`` as the error status when it has none.

    An existing truthy status is never touched. Exceptions that refuse
    attribute assignment are wrapped in a StoreError chained to the original.

    Returns:
        The error to raise (the same object unless it had to be wrapped)
    """
    if getattr(error, "status", None):
        return error

    try:
        error.status = default  # type: ignore[attr-defined]
    except (AttributeError, TypeError):
        wrapped = StoreError(str(error) or type(error).__name__, status=default)
        wrapped.__cause__ = error
        return wrapped

    return error


def normalize_errors(
    fn: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Decorate a verb coroutine so every error it raises carries a status."""

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except Exception as error:
            normalized = ensure_status(error)
            logger.warning(
                "%s failed with status %s: %s",
                fn.__name__,
                getattr(normalized, "status", None),
                normalized,
            )
            if normalized is error:
                raise
            raise normalized from error

    return wrapper


def error_to_dict(error: BaseException) -> dict[str, Any]:
    """Render an error as a JSON-ready mapping."""
    status = getattr(error, "status", None) or DEFAULT_ERROR_STATUS
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    return {
        "status": status,
        "code": getattr(error, "code", None) or status,
        "name": type(error).__name__,
        "message": message,
    }
