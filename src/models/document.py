"""Document upload and persistence models.

Covers both ends of the pipeline:

    - UploadedFile  - the raw upload handed to the pipeline
    - Document, FlashcardRecord, QuizQuestionRecord - rows written by the
      persistence gateway after a successful run
    - SaveResult, DocumentStats - what the document service reports back

Row models mirror the storage columns (``user_id``, ``text_content``,
``ai_analysis``...) rather than the camelCase generation contract.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from src.models.pipeline import AggregatedResult
from src.models.study import Flashcard, QuizOptions, QuizQuestion
from src.utils.errors import PersistencePartialFailure


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# UploadedFile - the first model created for every pipeline run.
# ---------------------------------------------------------------------------
class UploadedFile(BaseModel):
    """An uploaded source file with its declared content type.

    Raw bytes live in a private attribute so that serialising the model
    (logs, API responses) never drags the file contents along.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    filename: str
    # Declared MIME type; the extractor picks its strategy from this value.
    content_type: str
    file_size: int = Field(ge=0)
    content_hash: str
    upload_timestamp: datetime = Field(default_factory=_utcnow)
    _data: bytes | None = PrivateAttr(default=None)

    @classmethod
    def from_bytes(cls, data: bytes, filename: str, content_type: str) -> UploadedFile:
        """Build an UploadedFile from raw bytes, computing size and hash."""
        uploaded = cls(
            filename=filename,
            content_type=content_type,
            file_size=len(data),
            content_hash=hashlib.sha256(data).hexdigest(),
        )
        uploaded.__pydantic_private__["_data"] = data
        return uploaded

    @property
    def data(self) -> bytes | None:
        """Return the raw file bytes (excluded from serialization)."""
        return self._data


# ---------------------------------------------------------------------------
# Persisted rows
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """One uploaded source artifact and its generated analysis/summary."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    subject_id: str
    title: str
    original_filename: str
    file_size: int
    file_type: str
    # Matches the pipeline's minimum; shorter documents are never stored.
    text_content: str = Field(min_length=50)
    ai_analysis: dict[str, Any] = Field(default_factory=dict)
    ai_summary: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class FlashcardRecord(BaseModel):
    """A flashcard row owned by a document and referenced by a subject."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    subject_id: str
    document_id: str | None = None
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    category: str = ""
    difficulty: str = ""
    concept: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_flashcard(
        cls,
        card: Flashcard,
        user_id: str,
        subject_id: str,
        document_id: str | None,
    ) -> FlashcardRecord:
        return cls(
            user_id=user_id,
            subject_id=subject_id,
            document_id=document_id,
            question=card.question,
            answer=card.answer,
            category=card.category,
            difficulty=card.difficulty,
            concept=card.concept,
        )


class QuizQuestionRecord(BaseModel):
    """A quiz-question row owned by a document and referenced by a subject."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    subject_id: str
    document_id: str | None = None
    question: str = Field(min_length=1)
    options: QuizOptions
    correct_answer: str
    explanation: str = ""
    difficulty: str = ""
    category: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_question(
        cls,
        question: QuizQuestion,
        user_id: str,
        subject_id: str,
        document_id: str | None,
    ) -> QuizQuestionRecord:
        return cls(
            user_id=user_id,
            subject_id=subject_id,
            document_id=document_id,
            question=question.question,
            options=question.options,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            difficulty=question.difficulty,
            category=question.category,
        )


# ---------------------------------------------------------------------------
# Service results
# ---------------------------------------------------------------------------
class SaveResult(BaseModel):
    """Outcome of persisting one aggregated result.

    ``flashcards_count`` and ``quiz_count`` are what was actually written;
    a failed batch contributes zero and a matching entry in ``warnings``.
    """

    model_config = ConfigDict(frozen=True)

    document: Document
    flashcards_count: int = 0
    quiz_count: int = 0
    warnings: list[PersistencePartialFailure] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.warnings)


class DocumentStats(BaseModel):
    """A document with the number of flashcards and quiz questions it owns."""

    model_config = ConfigDict(frozen=True)

    document: Document
    flashcards_count: int
    quiz_count: int


class ProcessedDocument(BaseModel):
    """A pipeline result together with what was persisted from it."""

    model_config = ConfigDict(frozen=True)

    saved: SaveResult
    result: AggregatedResult
