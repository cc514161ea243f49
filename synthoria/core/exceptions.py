"""
Global exception handlers for the Synthoria API.

Every rejected request is rendered as the envelope ``{"success": false, "error": ...}``.
"""

import json
import traceback
from typing import Any, Union

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings

logger = structlog.get_logger(__name__)


def error_envelope(error: Any, **extra: Any) -> dict:
    """Build the error body shared by every endpoint."""
    body = {"success": False, "error": error}
    body.update(extra)
    return body


async def validation_exception_handler(request: Request, exc: Union[RequestValidationError, ValidationError]) -> JSONResponse:
    """Handle validation errors."""
    errors = []
    for error in exc.errors():
        error_dict = {
            "loc": error.get("loc", []),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        if "input" in error:
            try:
                json.dumps(error["input"])
                error_dict["input"] = error["input"]
            except (TypeError, ValueError):
                pass
        errors.append(error_dict)

    logger.warning(
        "Validation error",
        path=request.url.path,
        method=request.method,
        errors=errors,
        client_ip=request.client.host if request.client else None
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_envelope("Validation error", errors=errors)
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "HTTP exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        detail=exc.detail,
        client_ip=request.client.host if request.client else None
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.detail)
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions."""
    settings = get_settings()

    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        traceback=traceback.format_exc() if settings.debug else None,
        client_ip=request.client.host if request.client else None
    )

    if settings.debug:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_envelope(
                str(exc) or "Internal server error",
                error_type=type(exc).__name__,
                traceback=traceback.format_exc(),
            )
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope("Internal server error")
    )


# Custom exception classes
class APIError(Exception):
    """Base API exception."""

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class DatabaseError(APIError):
    """Database operation error."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(detail, status.HTTP_500_INTERNAL_SERVER_ERROR)


class BadRequestError(APIError):
    """Input validation / bad request error."""

    def __init__(self, detail: Any = "Bad request"):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST)


class AuthenticationError(APIError):
    """No verified caller identity."""

    def __init__(self, detail: str = "User Unauthorized"):
        super().__init__(detail, status.HTTP_401_UNAUTHORIZED)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail, status.HTTP_404_NOT_FOUND)


class InvalidModelError(BadRequestError):
    """Model key is not in the allow-list."""

    def __init__(self, model: str = ""):
        self.model = model
        super().__init__("Invalid Model")


class ConversationNotFoundError(NotFoundError):
    """Conversation is absent or owned by someone else."""

    def __init__(self, chat_id: str = ""):
        self.chat_id = chat_id
        super().__init__("Chat Not Found")


async def api_exception_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API exceptions."""
    logger.warning(
        "API exception",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        detail=exc.detail,
        error_type=type(exc).__name__,
        client_ip=request.client.host if request.client else None
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.detail)
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler above to ``app``."""
    app.add_exception_handler(APIError, api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
