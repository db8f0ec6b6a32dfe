"""FastAPI route definitions for the StudyHub API.

Exposes endpoints for document upload and processing, document listing,
retrieval, stats, deletion, run progress and health checks.  Service
dependencies are resolved from ``app.state`` via FastAPI's ``Depends``
using the ``Annotated`` pattern.

Endpoint                              Method  Description
------------------------------------  ------  ------------------------------------
/api/v1/documents                     POST    Upload -> pipeline -> save
/api/v1/documents                     GET     List a user's documents
/api/v1/documents/{id}                GET     One document with analysis/summary
/api/v1/documents/{id}/stats          GET     Flashcard and quiz counts
/api/v1/documents/{id}                DELETE  Delete document (cascades)
/api/v1/runs/{run_id}                 GET     Progress of an in-flight upload
/api/v1/health                        GET     Health check + provider status
                                              (?verify=true checks the LLM key)

Authentication is handled upstream; callers pass ``user_id`` and
``subject_id`` explicitly.
"""

from __future__ import annotations

from typing import Annotated, Any
from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, UploadFile

from src.api.schemas import (
    DeleteResponse,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentStatsResponse,
    DocumentSummaryResponse,
    DocumentUploadResponse,
    ErrorResponse,
    HealthResponse,
    RunStatusResponse,
)
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.document import UploadedFile
from src.models.pipeline import ModelChoice, ProcessingOptions
from src.pipeline.progress_tracker import ProgressTracker
from src.services.document_service import DocumentService
from src.utils.errors import FileTooLargeError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in 64 KB pieces so oversized files are rejected early.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers -- resolve services from app.state
# ---------------------------------------------------------------------------


def _get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_progress_tracker(request: Request) -> ProgressTracker:
    return request.app.state.progress_tracker


DocumentServiceDep = Annotated[DocumentService, Depends(_get_document_service)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    parts: list[bytes] = []
    total_size = 0
    while True:
        part = await file.read(_UPLOAD_CHUNK_SIZE)
        if not part:
            break
        total_size += len(part)
        if total_size > max_bytes:
            raise FileTooLargeError(
                message=(
                    f"File is too large (>{max_bytes} bytes). "
                    f"Maximum size: {max_bytes // (1024 * 1024)} MB"
                )
            )
        parts.append(part)
    return b"".join(parts)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=DocumentUploadResponse,
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Upload a document and generate study material from it",
)
async def upload_document(
    file: UploadFile,
    service: DocumentServiceDep,
    settings: SettingsDep,
    tracker: TrackerDep,
    user_id: Annotated[str, Form(min_length=1)],
    subject_id: Annotated[str, Form(min_length=1)],
    flashcard_count: Annotated[int, Form(ge=5, le=50)] = 10,
    quiz_count: Annotated[int, Form(ge=5, le=50)] = 10,
    model: Annotated[ModelChoice, Form()] = ModelChoice.QUALITY,
    run_id: Annotated[str | None, Form(min_length=1, max_length=64)] = None,
) -> DocumentUploadResponse:
    """Extract, generate and persist; report exactly what was saved.

    Clients that want to poll ``/runs/{run_id}`` while the upload is in
    flight pass their own ``run_id``; otherwise one is generated.
    """
    run_id = run_id or str(uuid4())
    data = await _read_upload(file, settings.max_upload_bytes)
    uploaded = UploadedFile.from_bytes(
        data,
        filename=file.filename or "upload",
        content_type=file.content_type or "",
    )
    options = ProcessingOptions(
        flashcard_count=flashcard_count,
        quiz_count=quiz_count,
        model=model,
    )

    try:
        processed = await service.process_and_save(
            user_id, subject_id, uploaded, options, run_id=run_id
        )
    finally:
        tracker.clear(run_id)
    saved, result = processed.saved, processed.result

    return DocumentUploadResponse(
        run_id=run_id,
        document_id=saved.document.id,
        title=saved.document.title,
        flashcards_count=saved.flashcards_count,
        quiz_count=saved.quiz_count,
        warnings=saved.warnings,
        analysis=result.analysis,
        summary=result.summary,
        flashcards=result.flashcards,
        quiz=result.quiz,
        metadata=result.metadata,
    )


@router.get(
    "/documents",
    response_model=DocumentListResponse,
    summary="List a user's documents, optionally for one subject",
)
async def list_documents(
    service: DocumentServiceDep,
    user_id: Annotated[str, Query(min_length=1)],
    subject_id: Annotated[str | None, Query()] = None,
) -> DocumentListResponse:
    documents = await service.get_user_documents(user_id, subject_id)
    return DocumentListResponse(
        documents=[DocumentSummaryResponse.from_document(d) for d in documents],
        total=len(documents),
    )


@router.get(
    "/documents/{document_id}",
    response_model=DocumentDetailResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Fetch one stored document",
)
async def get_document(document_id: str, service: DocumentServiceDep) -> DocumentDetailResponse:
    document = await service.get_document(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return DocumentDetailResponse(document=document)


@router.get(
    "/documents/{document_id}/stats",
    response_model=DocumentStatsResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Count the flashcards and quiz questions generated from a document",
)
async def get_document_stats(
    document_id: str,
    service: DocumentServiceDep,
) -> DocumentStatsResponse:
    stats = await service.get_document_stats(document_id)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return DocumentStatsResponse.from_stats(stats)


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete a document with its flashcards and quiz questions",
)
async def delete_document(document_id: str, service: DocumentServiceDep) -> DeleteResponse:
    deleted = await service.delete_document(document_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    _logger.info("document_delete_requested", document_id=document_id)
    return DeleteResponse(success=True, document_id=document_id)


# ---------------------------------------------------------------------------
# Run progress
# ---------------------------------------------------------------------------


@router.get(
    "/runs/{run_id}",
    response_model=RunStatusResponse,
    summary="Get the progress of an in-flight upload",
)
async def get_run_status(run_id: str, tracker: TrackerDep) -> RunStatusResponse:
    status = tracker.get_status(run_id)
    return RunStatusResponse(
        run_id=run_id,
        phase=status["phase"],
        progress=status["progress"],
        message=status["message"] or None,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(
    request: Request,
    verify: Annotated[bool, Query()] = False,
) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``degraded`` means the API is up but no generation credential is set,
    so uploads will fail with a configuration error.  With ``verify=true``
    the configured key is also checked against the provider, and a
    rejected key reports ``degraded`` too.
    """
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    if verify and providers.get("llm", False):
        llm: ILLMProvider = request.app.state.primary_llm
        providers["llm_verified"] = await llm.validate_credentials()
        if not providers["llm_verified"]:
            _logger.warning("llm_credentials_rejected", provider=llm.get_provider_name())

    if not providers.get("persistence", False):
        status = "unhealthy"
    elif providers.get("llm", False) and providers.get("llm_verified", True):
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(status=status, version=_VERSION, providers=providers)
