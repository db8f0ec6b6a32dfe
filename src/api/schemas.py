"""Pydantic request/response schemas for the StudyHub API.

Defines the public contract for the REST endpoints: document upload,
listing, retrieval, stats, deletion, run progress and health.  Response
schemas end with "Response"; generated artifacts are serialised with their
camelCase wire aliases (``keyConcepts``, ``correctAnswer``) so clients see
the same shape the generation contract uses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.document import Document, DocumentStats
from src.models.pipeline import ProcessingMetadata
from src.models.study import Analysis, Flashcard, QuizQuestion, Summary
from src.utils.errors import PersistencePartialFailure


class DocumentSummaryResponse(BaseModel):
    """A stored document without its full text, for list views."""

    id: str
    user_id: str
    subject_id: str
    title: str
    original_filename: str
    file_size: int
    file_type: str
    created_at: str

    @classmethod
    def from_document(cls, document: Document) -> DocumentSummaryResponse:
        return cls(
            id=document.id,
            user_id=document.user_id,
            subject_id=document.subject_id,
            title=document.title,
            original_filename=document.original_filename,
            file_size=document.file_size,
            file_type=document.file_type,
            created_at=document.created_at.isoformat(),
        )


class DocumentListResponse(BaseModel):
    documents: list[DocumentSummaryResponse]
    total: int


class DocumentUploadResponse(BaseModel):
    """Result of processing and saving one uploaded document.

    ``flashcards_count`` and ``quiz_count`` are what was actually stored;
    ``warnings`` names any collection that failed to save.
    """

    success: bool = True
    run_id: str
    document_id: str
    title: str
    flashcards_count: int
    quiz_count: int
    warnings: list[PersistencePartialFailure] = Field(default_factory=list)
    analysis: Analysis
    summary: Summary
    flashcards: list[Flashcard] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)
    metadata: ProcessingMetadata


class DocumentDetailResponse(BaseModel):
    """A stored document including its text and generated analysis/summary."""

    document: Document


class DocumentStatsResponse(BaseModel):
    document_id: str
    title: str
    flashcards_count: int
    quiz_count: int

    @classmethod
    def from_stats(cls, stats: DocumentStats) -> DocumentStatsResponse:
        return cls(
            document_id=stats.document.id,
            title=stats.document.title,
            flashcards_count=stats.flashcards_count,
            quiz_count=stats.quiz_count,
        )


class DeleteResponse(BaseModel):
    success: bool
    document_id: str


class RunStatusResponse(BaseModel):
    """Progress of an in-flight upload.  Unknown or finished runs report IDLE."""

    run_id: str
    phase: str
    progress: float
    message: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``stage`` names the pipeline step that failed (validation, extraction,
    generation, persistence...) for user-facing messages.
    """

    error: str
    detail: str | None = None
    stage: str | None = None
