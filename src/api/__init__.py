"""StudyHub API layer: routes, schemas and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    DeleteResponse,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentStatsResponse,
    DocumentUploadResponse,
    ErrorResponse,
    HealthResponse,
    RunStatusResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "DeleteResponse",
    "DocumentDetailResponse",
    "DocumentListResponse",
    "DocumentStatsResponse",
    "DocumentUploadResponse",
    "ErrorResponse",
    "HealthResponse",
    "RunStatusResponse",
]
