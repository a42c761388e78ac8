"""
Exception Handlers
==================

Translate domain and request errors into the ``ErrorResponse`` envelope.

Rule problems reach clients in one shape whatever their origin: a list of
human-readable strings under ``details.errors``, whether they come from
``validate_rule`` or from request parsing.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from lorebook.api.schemas.errors import ErrorDetail, ErrorResponse
from lorebook.shared.context import get_request_id
from lorebook.shared.error_handling import map_exception_to_error_data
from lorebook.shared.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def _error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    error = ErrorDetail(
        code=code.value,
        message=message,
        request_id=get_request_id(),
        timestamp=datetime.now(UTC),
        details=details or None,
    )
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error).model_dump(mode="json"))


def _request_context(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors: unknown rule, duplicate id, invalid rule, unreadable import."""
    mapped = map_exception_to_error_data(exc)
    logger.warning(f"{_request_context(request)} -> {exc.status_code} {mapped['code']}: {exc.message}")

    return _error_response(exc.code, exc.message, exc.status_code, exc.details)


def _describe(error: dict[str, Any]) -> str:
    # Drop the "body" prefix FastAPI adds to payload locations
    location = [str(part) for part in error["loc"] if part != "body"]
    return f"{'.'.join(location) or 'body'}: {error['msg']}"


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed payloads (wrong types, unknown fields, bad logic names)."""
    errors = [_describe(error) for error in exc.errors()]
    logger.warning(f"{_request_context(request)} -> 422 with {len(errors)} request errors")

    return _error_response(
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        422,
        {"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; never expose internals to clients."""
    logger.exception(f"{_request_context(request)} failed: {type(exc).__name__}: {exc}")

    return _error_response(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
