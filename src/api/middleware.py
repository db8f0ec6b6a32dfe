"""API middleware: CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``StudyHubError`` subclasses into JSON ``ErrorResponse``
bodies.

Starlette runs middleware last-added-first, so in ``main.py``
``RequestLoggingMiddleware`` is added after ``ErrorHandlingMiddleware`` and
sees the final status code of converted errors.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    ConfigurationError,
    DocumentTooShortError,
    ExtractionError,
    FileTooLargeError,
    GenerationAPIError,
    GenerationSchemaError,
    NotConfiguredError,
    PipelineCancelledError,
    StudyHubError,
    UnsupportedFormatError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First match wins, so subclasses come before their parents.
_STATUS_CODES: list[tuple[type[StudyHubError], int]] = [
    (UnsupportedFormatError, 415),
    (FileTooLargeError, 413),
    (DocumentTooShortError, 422),
    (ExtractionError, 422),
    (NotConfiguredError, 503),
    (ConfigurationError, 500),
    (GenerationSchemaError, 502),
    (GenerationAPIError, 502),
    (PipelineCancelledError, 409),
]


def status_code_for(exc: StudyHubError) -> int:
    """Return the HTTP status code used to report *exc*."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``StudyHubError`` subclasses and return structured JSON errors.

    The client sees the exception class name, its message and the failing
    stage.  Stack traces stay in the server log.  Other exceptions fall
    through to FastAPI's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except StudyHubError as exc:
            status_code = status_code_for(exc)
            log = _logger.error if status_code >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                stage=exc.stage,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
                stage=exc.stage,
            )
            return JSONResponse(status_code=status_code, content=body.model_dump())
