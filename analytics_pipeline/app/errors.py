"""
Translation of service errors into HTTP responses.

Storage and permission-service failures answer with a generic message so
internals don't leak to clients; the details go to the log.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics_pipeline.errors import (
    AuthorizationError,
    NotFoundError,
    PipelineError,
    ValidationError,
)
from analytics_pipeline.observability import JSONLogger

MESSAGE_BAD_INPUT = "bad input"
MESSAGE_FORBIDDEN = "forbidden"
MESSAGE_NOT_FOUND = "not found"
MESSAGE_SOMETHING_WRONG = "something went wrong"

_log = JSONLogger(name=__name__)


def status_for(error: PipelineError) -> tuple[int, str]:
    """HTTP status and client-facing message for a service error."""
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST, error.message or MESSAGE_BAD_INPUT
    if isinstance(error, AuthorizationError):
        return status.HTTP_403_FORBIDDEN, MESSAGE_FORBIDDEN
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND, MESSAGE_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR, MESSAGE_SOMETHING_WRONG


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code, message = status_for(exc)
    _log.error(
        "request failed",
        error=str(exc),
        error_type=type(exc).__name__,
        method=request.method,
        path=request.url.path,
        status=status_code,
    )
    return JSONResponse(status_code=status_code, content={"error": message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    _log.error(
        "error parsing request",
        error=str(exc.errors()),
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": MESSAGE_BAD_INPUT},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
