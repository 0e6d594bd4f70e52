"""Maps the LessonError taxonomy onto HTTP responses."""
from __future__ import annotations
import sqlite3

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from lessonhub.domain.common.errors import (
    AuthorizationError,
    IllegalStateTransition,
    LessonError,
    ModerationBlocked,
    ModerationUnavailable,
    NotFound,
    PermissionDenied,
    ReplicaWriteFailure,
    StoreUnavailable,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# First match wins, so subclasses go before their bases
_STATUS_CODES = (
    (ModerationBlocked, 422),
    (ValidationError, 400),
    (AuthorizationError, 403),
    (IllegalStateTransition, 409),
    (NotFound, 404),
    (PermissionDenied, 404),
    (ReplicaWriteFailure, 503),
    (ModerationUnavailable, 503),
    (StoreUnavailable, 503),
)

CONTENT_UNAVAILABLE = "Content unavailable."
TRY_AGAIN = "Temporarily unavailable. Please try again."


def status_code_for(error: LessonError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


def error_body(error: LessonError) -> dict:
    """NotFound and PermissionDenied share one body so callers cannot tell them apart."""
    if isinstance(error, (NotFound, PermissionDenied)):
        return {"detail": CONTENT_UNAVAILABLE, "error": "NotFound", "retryable": False}

    body = {"detail": error.message, "error": type(error).__name__, "retryable": error.retryable}
    if isinstance(error, ModerationBlocked):
        body["reasons"] = error.reasons
        body["notes"] = error.notes
    elif isinstance(error, (ReplicaWriteFailure, ModerationUnavailable, StoreUnavailable)):
        body["detail"] = TRY_AGAIN
    return body


async def lesson_error_handler(request: Request, exc: LessonError) -> JSONResponse:
    code = status_code_for(exc)
    log = logger.warning if code >= 500 else logger.info
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        status=code,
        error=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(status_code=code, content=error_body(exc))


async def store_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """A store outage (locked or unreadable database) is reported like any retryable failure."""
    logger.error("store_unavailable", method=request.method, path=request.url.path, error=str(exc))
    return await lesson_error_handler(request, StoreUnavailable(str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LessonError, lesson_error_handler)
    app.add_exception_handler(sqlite3.Error, store_error_handler)
