"""HTTP error mapping for the OKR Keeper API.

Services return ``Err(ApplicationError)``; routers call ``unwrap`` which
raises the matching ``APIError``. Every error response has the body
``{"error": <message>, "details": {...}}``.
"""

import logging
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from okrkeeper.core.result import Err, Result
from okrkeeper.services.errors import (
    AlreadyMemberError,
    ApplicationError,
    DeniedError,
    DuplicateInvitationError,
    InfrastructureError,
    InvalidInputError,
    InvitationNotPendingError,
    LastAdminError,
    NotFoundError,
    TeamNotEmptyError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFLICT_ERRORS = (
    LastAdminError,
    AlreadyMemberError,
    InvitationNotPendingError,
    DuplicateInvitationError,
    TeamNotEmptyError,
)

# First match wins: conflicts are DeniedError subclasses and must precede it
STATUS_BY_ERROR: list[tuple[type[ApplicationError] | tuple[type[ApplicationError], ...], int]] = [
    (InvalidInputError, 422),
    (NotFoundError, 404),
    (CONFLICT_ERRORS, 409),
    (DeniedError, 403),
    (InfrastructureError, 500),
]


class APIError(Exception):
    """Error raised inside a request and rendered by ``api_error_handler``."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(APIError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


def to_api_error(error: ApplicationError) -> APIError:
    """Translate a service error.

    Infrastructure failures keep their stable message; the cause is logged
    here and never sent to the client.
    """
    status_code = next(
        (code for kinds, code in STATUS_BY_ERROR if isinstance(error, kinds)), 400
    )
    details: dict[str, Any] = {}
    if isinstance(error, InvalidInputError):
        details["errors"] = error.errors
    elif isinstance(error, InfrastructureError):
        logger.error("%s: %r", error.message, error.cause)
    return APIError(error.message, status_code=status_code, details=details)


def unwrap(result: Result[T, ApplicationError]) -> T:
    """Return the Ok value or raise the matching APIError."""
    if isinstance(result, Err):
        raise to_api_error(result.error)
    return result.value


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "details": details if details is not None else {}},
        headers=headers,
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_response(exc.status_code, exc.message, exc.details, headers)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Response models that fail validation are reported like bad input."""
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    return error_response(422, "Validation error", errors)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
