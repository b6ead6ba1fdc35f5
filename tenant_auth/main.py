"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Logging setup
- Exception handlers for API errors
- API v1 router mounting
- Health check endpoint
"""

import json
import traceback
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import quote, urlencode

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import RequestResponseEndpoint

from tenant_auth.api.deps import get_strategy_registry
from tenant_auth.api.v1.router import router as v1_router
from tenant_auth.core.config import settings
from tenant_auth.core.errors import APIError, InternalError
from tenant_auth.core.logging import configure_logging, sanitize_payload
from tenant_auth.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()

_OAUTH_PATH_MARKER = "/auth/oauth/"

# Bodies larger than this are not kept for error logging
_MAX_LOGGED_BODY_BYTES = 16 * 1024


def _request_log_fields(request: Request) -> dict[str, Any]:
    """Method, path, params and sanitized body for an error log line."""
    body: Any = None
    raw = getattr(request.state, "raw_body", None)
    if raw:
        try:
            body = sanitize_payload(json.loads(raw))
        except ValueError:
            body = "<non-json body>"
    return {
        "method": request.method,
        "path": request.url.path,
        "params": sanitize_payload(dict(request.query_params)),
        "body": body,
    }


def _linking_state(request: Request) -> str | None:
    """State value of an in-flight OAuth round-trip, if any."""
    if _OAUTH_PATH_MARKER not in request.url.path:
        return None
    return request.query_params.get("state")


def _error_response(request: Request, detail: ErrorDetail, status_code: int) -> Response:
    if _linking_state(request):
        query = urlencode(
            {"errorCode": detail.code, "errorMessage": detail.message},
            quote_via=quote,
        )
        return RedirectResponse(
            url=f"{settings.frontend_url}/mypage?{query}", status_code=307
        )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(exclude_none=True),
    )


async def capture_request_body(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Keep small JSON bodies on request.state for error logging."""
    if request.headers.get("content-type", "").startswith("application/json"):
        raw = await request.body()
        if len(raw) <= _MAX_LOGGED_BODY_BYTES:
            request.state.raw_body = raw
    return await call_next(request)


def api_error_handler(request: Request, exc: APIError) -> Response:
    """Handle custom API errors.

    Returns the error envelope, or a redirect back to the frontend when the
    error interrupts an OAuth linking round-trip.
    """
    logger.warning(
        "API error",
        code=exc.code,
        status=exc.status_code,
        **_request_log_fields(request),
    )
    return _error_response(
        request,
        ErrorDetail(code=exc.code, message=exc.message, details=exc.details),
        exc.status_code,
    )


def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    """Handle Pydantic validation errors from FastAPI.

    Converts FastAPI's validation errors to the standard envelope with
    field-level details. Input values are left out of the details so a
    rejected password is never echoed back.
    """
    details = [
        {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]
    logger.info("Request validation failed", **_request_log_fields(request))
    return _error_response(
        request,
        ErrorDetail(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            details=details,
        ),
        400,
    )


def internal_error_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR with a generic message. The stack trace is
    attached only in development.
    """
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        **_request_log_fields(request),
    )
    error = InternalError()
    stack = None
    if settings.is_development:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return _error_response(
        request,
        ErrorDetail(code=error.code, message=error.message, stack=stack),
        error.status_code,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # Build strategies up front so misconfiguration shows at boot
    get_strategy_registry()
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    configure_logging(settings)

    app = FastAPI(
        title="Tenant Auth API",
        version="1.0.0",
        description="Authentication core for a multi-tenant backend",
        lifespan=lifespan,
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.middleware("http")(capture_request_body)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(v1_router, prefix="/api/v1")

    # Health check endpoint (outside versioned API)
    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    return app


# Used by uvicorn: uvicorn tenant_auth.main:app
app = create_app()
