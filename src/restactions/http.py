"""FastAPI resource routers for plugged models.

Each router maps the HTTP methods of one collection onto the model's
verbs:

    GET    /guardians          -> Guardian.get (paginated envelope)
    GET    /guardians/{id}     -> Guardian.get_by_id
    POST   /guardians          -> Guardian.post (201)
    PUT    /guardians/{id}     -> Guardian.put
    PATCH  /guardians/{id}     -> Guardian.patch
    DELETE /guardians/{id}     -> Guardian.delete (?soft=true keeps the record)

Verb errors become HTTP errors with the error's status.
"""

import json
import logging
from collections.abc import Awaitable, Iterable
from contextlib import asynccontextmanager
from datetime import UTC
from email.utils import format_datetime
from typing import Any, TypeVar

from fastapi import APIRouter, Body, FastAPI, Header, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from restactions.document import Document
from restactions.errors import DEFAULT_ERROR_STATUS, InvalidArgument, error_to_dict
from restactions.persistence.adapter import DocumentStore
from restactions.types import ResultEnvelope
from restactions.verbs.base import plugin_options

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorBody(BaseModel):
    """Body of an error response."""

    status: int
    code: str | int
    name: str
    message: str


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {400: {"model": ErrorBody}}


def _status(error: BaseException) -> int:
    status = getattr(error, "status", None)
    if isinstance(status, int) and 400 <= status < 600:
        return status
    return DEFAULT_ERROR_STATUS


async def _dispatch(call: Awaitable[T]) -> T:
    """Await a verb, turning its error into an HTTPException."""
    try:
        return await call
    except Exception as error:
        raise HTTPException(_status(error), detail=error_to_dict(error)) from error


def _json_param(name: str, value: str | None) -> Any:
    if not value:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        raise HTTPException(
            400, detail=error_to_dict(InvalidArgument(f"'{name}' must be valid JSON"))
        ) from None


def _render(result: Any, root: str) -> Any:
    if isinstance(result, ResultEnvelope):
        result = result.to_dict(root)
    elif hasattr(result, "to_dict"):
        result = result.to_dict()
    return jsonable_encoder(result)


def http_date(value: Any) -> str:
    """Format an aware datetime as an HTTP date."""
    return format_datetime(value.astimezone(UTC), usegmt=True)


def create_resource_router(
    model: type[Document],
    *,
    prefix: str | None = None,
    envelope: bool = False,
) -> APIRouter:
    """Create a router exposing a plugged model's verbs.

    Args:
        model: A model with rest actions attached
        prefix: URL prefix (defaults to ``/<collection>``)
        envelope: Wrap single-record responses as ``{<root>: record}``

    Returns:
        APIRouter with the collection routes
    """
    root = plugin_options(model).root
    router = APIRouter(
        prefix=prefix if prefix is not None else f"/{model.__collection__}",
        tags=[model.__collection__],
        responses=ERROR_RESPONSES,
    )

    def single(result: Any, status_code: int = 200) -> JSONResponse:
        content = _render(result, root)
        return JSONResponse(
            status_code=status_code, content={root: content} if envelope else content
        )

    @router.get("")
    async def list_records(
        response: Response,
        page: int | None = None,
        limit: int | None = None,
        skip: int | None = None,
        q: str | None = None,
        sort: str | None = None,
        select: str | None = None,
        filter: str | None = None,
        if_modified_since: str | None = Header(None),
    ) -> Any:
        """List records, paginated."""
        options: dict[str, Any] = {
            "page": page,
            "limit": limit,
            "skip": skip,
            "q": q,
            "sort": sort,
            "select": select,
            "filter": _json_param("filter", filter),
        }
        if if_modified_since:
            options["headers"] = {"ifModifiedSince": if_modified_since}

        result = await _dispatch(model.get(options))

        if isinstance(result, ResultEnvelope):
            if if_modified_since and result.total == 0:
                return Response(status_code=304)
            if result.last_modified is not None:
                response.headers["Last-Modified"] = http_date(result.last_modified)
        return _render(result, root)

    @router.get("/{id}")
    async def show_record(id: str, select: str | None = None) -> Any:
        """Get a single record."""
        options = {"_id": id, "select": select}
        return single(await _dispatch(model.get_by_id(options)))

    @router.post("")
    async def create_record(body: dict[str, Any] | None = Body(None)) -> Any:
        """Create a record."""
        return single(await _dispatch(model.post(body or {})), status_code=201)

    @router.put("/{id}")
    async def replace_record(id: str, body: dict[str, Any] = Body(...)) -> Any:
        """Replace a record's fields."""
        return single(await _dispatch(model.put(id, body)))

    @router.patch("/{id}")
    async def patch_record(id: str, body: dict[str, Any] = Body(...)) -> Any:
        """Update some of a record's fields."""
        return single(await _dispatch(model.patch(id, body)))

    @router.delete("/{id}")
    async def delete_record(id: str, soft: bool = False) -> Any:
        """Delete a record. Soft deletes keep it, stamped as deleted."""
        return single(await _dispatch(model.delete({"_id": id, "soft": soft})))

    return router


async def _error_response(request: Request, exc: HTTPException) -> JSONResponse:
    """Render structured error details as the response body."""
    if isinstance(exc.detail, dict) and "status" in exc.detail:
        body = ErrorBody(**exc.detail)
    else:
        body = ErrorBody(
            status=exc.status_code,
            code=exc.status_code,
            name=type(exc).__name__,
            message=str(exc.detail),
        )
    content = body.model_dump()
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def create_app(
    models: Iterable[type[Document]],
    store: DocumentStore | None = None,
    *,
    title: str = "restactions",
) -> FastAPI:
    """Create a FastAPI app serving the given models.

    Args:
        models: Models with rest actions attached
        store: Store to bind the models to (kept as-is when None)
        title: OpenAPI title

    Returns:
        The app; the store is closed on shutdown
    """
    models = list(models)
    if store is not None:
        store.connect()
        for model in models:
            model.bind(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close the store on shutdown."""
        yield
        if store is not None:
            store.close()

    app = FastAPI(title=title, lifespan=lifespan)
    app.add_exception_handler(HTTPException, _error_response)

    for model in models:
        app.include_router(create_resource_router(model))
        logger.info("Serving %s at /%s", model.__name__, model.__collection__)

    return app
