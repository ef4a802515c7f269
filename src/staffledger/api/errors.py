"""Map the exception hierarchy onto HTTP responses with a ``{"message"}`` body."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from staffledger.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    StaffLedgerError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[StaffLedgerError], int], ...] = (
    (NotFoundError, 404),
    (InvalidStateError, 400),
    (ConflictError, 400),
    (ValidationError, 400),
)


def status_for(exc: StaffLedgerError) -> int:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return 500


def _message(message: str, code: int, **extra) -> JSONResponse:
    return JSONResponse(status_code=code, content={"message": message, **extra})


async def handle_staffledger_error(request: Request, exc: StaffLedgerError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    if isinstance(exc, ValidationError) and exc.errors:
        return _message(str(exc), code, errors=exc.errors)
    return _message(str(exc), code)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _message(f"Données invalides: {'; '.join(parts)}", 400)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _message(str(exc.detail), exc.status_code)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _message(str(exc) or "Erreur serveur", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StaffLedgerError, handle_staffledger_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected)
