from __future__ import annotations

import logging
from http import HTTPStatus
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from api.common.errors import ConflictError, ReplayConsistencyError
from api.observability import request_id_var

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[int, str] = {
    400: "bad_request",
    404: "not_found",
    409: "conflict",
    422: "validation_error",
    503: "service_unavailable",
}


def _error_code(status_code: int) -> str:
    if status_code in _ERROR_CODES:
        return _ERROR_CODES[status_code]
    if 500 <= status_code <= 599:
        return "internal_error"
    return f"http_{status_code}"


def _error_response(
    request: Request,
    status_code: int,
    detail: object,
    *,
    details: object | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid4())
    body: dict[str, object] = {
        "error_code": _error_code(status_code),
        "message": detail if isinstance(detail, str) else HTTPStatus(status_code).phrase,
        "detail": detail,
        "request_id": request_id,
    }
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Install the request id middleware and the JSON error envelope.

    Rating conflicts (busy seasons, duplicate names, logs that no longer
    replay) answer 409. Storage failures answer 503 so callers know to retry.
    """

    @app.middleware("http")
    async def attach_request_id(
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request.state.request_id = request.headers.get("x-request-id") or str(uuid4())
        token = request_id_var.set(request.state.request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail if exc.detail is not None else HTTPStatus(exc.status_code).phrase
        return _error_response(
            request,
            exc.status_code,
            detail,
            details=detail if isinstance(detail, (dict, list)) else None,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return _error_response(request, 422, "Validation failed", details=exc.errors())

    @app.exception_handler(ConflictError)
    @app.exception_handler(ReplayConsistencyError)
    async def rating_conflict_handler(request: Request, exc: Exception) -> JSONResponse:
        details = None
        if isinstance(exc, ReplayConsistencyError):
            logger.warning(
                "replay_inconsistent",
                extra={"error": str(exc), "offending_record": exc.offending_record},
            )
            details = {"offending_record": exc.offending_record}
        return _error_response(request, 409, str(exc), details=details)

    @app.exception_handler(OperationalError)
    @app.exception_handler(DBAPIError)
    @app.exception_handler(OSError)
    async def database_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.warning("database_unavailable", extra={"error": type(exc).__name__})
        return _error_response(request, 503, "Database unavailable")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"path": request.url.path},
        )
        return _error_response(request, 500, "Internal server error")
