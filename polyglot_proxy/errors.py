"""
Error types and FastAPI exception handlers.

Every error leaving the proxy is rendered with the same envelope:
``{"success": false, "error": "<message>"}``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


class ProxyError(Exception):
    """
    Base exception for proxy errors.

    Attributes:
        status_code: HTTP status code returned when raised inside a handler.
        context: Extra key-value pairs for logging.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(ProxyError):
    """Request is structurally invalid and was rejected before any upstream call."""

    status_code: int = 400


class UpstreamError(ProxyError):
    """An upstream API call timed out, returned an error status or a malformed payload."""

    status_code: int = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.upstream_status = upstream_status


class ConfigurationError(ProxyError):
    """Required configuration or credentials are missing at startup."""


def error_body(message: str) -> dict[str, Any]:
    """Build the error envelope shared by all endpoints."""
    return {"success": False, "error": message}


def _show_internal_detail(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is not None and not settings.is_production


def register_error_handlers(app: FastAPI) -> None:
    """
    Register exception handlers on a FastAPI application.

    Args:
        app: The FastAPI application instance to register handlers on.
    """

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(request: Request, exc: ProxyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}", extra={"error_context": exc.context})
        else:
            logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}", extra={"error_context": exc.context})
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid field '{location}': {first.get('msg')}" if location else "Request body is required"
        else:
            message = "Invalid request body"
        logger.warning(f"Request validation failed on {request.url.path}: {message}")
        return JSONResponse(status_code=400, content=error_body(message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unexpected error on {request.url.path}: {exc}")
        body = error_body(GENERIC_ERROR_MESSAGE)
        if _show_internal_detail(request):
            body["detail"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(status_code=500, content=body)
