"""
ThetaFlowz - Global Exception Handlers

Provides consistent, structured error responses for the entire API.
Domain errors, validation errors and HTTP exceptions all render as
``{"error": true, "status_code", "detail", "request_id"}``.
"""

from __future__ import annotations

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

import structlog

from thetaflowz.errors import (
    CapabilityUnavailable,
    EntitlementDenied,
    ThetaFlowzError,
    UnknownStrategyError,
    WatchlistValidationError,
)

log = structlog.get_logger(__name__)

# Most specific first; checked with isinstance
_STATUS_BY_ERROR: list[tuple[type[ThetaFlowzError], int]] = [
    (EntitlementDenied, 403),
    (WatchlistValidationError, 400),
    (UnknownStrategyError, 404),
    (CapabilityUnavailable, 501),
]


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    return {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
        **extra,
    }


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(ThetaFlowzError)
    async def domain_exception_handler(request: Request, exc: ThetaFlowzError):
        status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
        extra: dict = {}
        if isinstance(exc, EntitlementDenied):
            extra = {"upgrade_required": True, "feature": exc.feature}
        elif isinstance(exc, WatchlistValidationError):
            extra = {"symbol": exc.symbol}

        log.info(
            "domain_error",
            path=str(request.url.path),
            error_type=type(exc).__name__,
            status=status_code,
        )
        return JSONResponse(status_code=status_code, content=_error_body(request, status_code, str(exc), **extra))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors → 422 with field details."""
        errors = []
        for err in exc.errors():
            errors.append({
                "field": " → ".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            })

        log.warning("validation_error", path=str(request.url.path), errors=errors)

        return JSONResponse(
            status_code=422,
            content=_error_body(request, 422, "Validation error", errors=errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions → 500 with safe details."""
        log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
        )

        return JSONResponse(
            status_code=500,
            content=_error_body(request, 500, "Internal server error"),
        )
