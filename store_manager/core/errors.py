from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InsufficientStock(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "insufficient_stock"


class InvalidStatus(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_status"


class InvalidState(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"


class Conflict(StoreError):
    """A uniqueness rule (barcode, username) would be broken."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"


class AuthenticationError(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"


class AuthorizationError(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "authorization_error"


class AccountDisabled(AuthorizationError):
    code = "account_disabled"


class InternalError(StoreError):
    pass


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("request.failed", extra={"extra_data": {"code": exc.code, "path": request.url.path}})
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, details=details)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="validation_error",
        message="Validation failed",
        details={"errors": _jsonable_errors(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("request.unhandled", extra={"extra_data": {"path": request.url.path}})
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_error",
        message="Internal server error",
    )


def _jsonable_errors(errors) -> list[dict[str, Any]]:
    # pydantic puts the raw exception under ``ctx`` for custom validators.
    cleaned = []
    for error in errors:
        item = {key: value for key, value in error.items() if key != "ctx"}
        if "ctx" in error:
            item["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(item)
    return cleaned


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
