"""Domain error taxonomy and its mapping to the JSON envelope.

Learn: Services raise these exceptions instead of HTTPException so the
business logic stays independent of the web framework. The handlers
registered below translate them to `{"success": false, "message": ...}`
responses. Nothing else about the failure (stack trace, SQL, token
contents) is ever sent to the client.

Some messages are deliberately identical across different causes:
- login with unknown email vs wrong password
- expired vs tampered vs malformed tokens
Don't make them more specific. That would leak account existence.
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class InvalidInput(ValueError):
    """Raised when a helper is called with input it cannot process."""


class AppError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"


class InvalidStatus(AppError):
    status_code = 400
    default_message = "Invalid status"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationRequired(Unauthorized):
    """No bearer credential on a protected request."""

    default_message = "Authorization token required"


class AuthorizationInvalid(Unauthorized):
    """Bearer credential present but rejected, for whatever reason."""

    default_message = "Invalid or expired token"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


def error_body(message: str, **extra: Any) -> dict:
    return {"success": False, "message": message, **extra}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message),
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        # loc is ("body", "email") or ("query", "page"); drop the source
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=400,
        content=error_body(ValidationFailed.default_message, errors=errors),
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = "Route not found"
    elif exc.status_code == 405:
        message = "Method not allowed"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request.unhandled_error",
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content=error_body(AppError.default_message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all envelope-producing handlers to the app."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
