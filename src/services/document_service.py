"""Document service: runs the pipeline and persists what it produces.

This is the pipeline's caller and the only place that decides which
persistence failures are fatal:

- The document row must be written; if it fails the
  :class:`PersistenceError` propagates.
- Flashcard and quiz-question batches are best effort.  A failed batch is
  logged as a warning, counted as zero and reported in
  :attr:`SaveResult.warnings` so the user sees exactly what was saved.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from src.interfaces.persistence_gateway import IPersistenceGateway
from src.models.document import (
    Document,
    DocumentStats,
    FlashcardRecord,
    ProcessedDocument,
    QuizQuestionRecord,
    SaveResult,
    UploadedFile,
)
from src.models.pipeline import AggregatedResult, ProcessingOptions
from src.pipeline.cancellation import CancellationToken
from src.pipeline.orchestrator import DocumentPipeline
from src.utils.errors import PersistenceError, PersistencePartialFailure
from src.utils.logging import get_logger


class DocumentService:
    """Processes uploads and manages stored documents for a user."""

    def __init__(self, pipeline: DocumentPipeline, gateway: IPersistenceGateway) -> None:
        self._pipeline = pipeline
        self._gateway = gateway
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_and_save(
        self,
        user_id: str,
        subject_id: str,
        file: UploadedFile,
        options: ProcessingOptions | None = None,
        cancel_token: CancellationToken | None = None,
        run_id: str | None = None,
    ) -> ProcessedDocument:
        """Run the pipeline on *file* and persist the result.

        Pipeline errors and a failed document insert propagate unchanged.
        """
        result = await self._pipeline.process(file, options, cancel_token, run_id=run_id)
        saved = await self.save_results(user_id, subject_id, file, result.source_text, result)
        self._logger.info(
            "document_processed",
            run_id=result.run.run_id if result.run is not None else None,
            document_id=saved.document.id,
            flashcards=saved.flashcards_count,
            quiz=saved.quiz_count,
            partial=saved.partial,
        )
        return ProcessedDocument(saved=saved, result=result)

    async def save_results(
        self,
        user_id: str,
        subject_id: str,
        file: UploadedFile,
        text: str,
        result: AggregatedResult,
    ) -> SaveResult:
        """Persist a document row plus its flashcards and quiz questions.

        Raises
        ------
        PersistenceError
            Only if the document row itself cannot be written.
        """
        record = Document(
            user_id=user_id,
            subject_id=subject_id,
            title=result.summary.title or file.filename,
            original_filename=file.filename,
            file_size=file.file_size,
            file_type=file.content_type,
            text_content=text,
            ai_analysis=result.analysis.model_dump(mode="json", by_alias=True),
            ai_summary=result.summary.model_dump(mode="json", by_alias=True),
            metadata=self._build_metadata(file, text, result),
        )
        document = await self._gateway.create_document(record)

        warnings: list[PersistencePartialFailure] = []

        flashcards_count = 0
        if result.flashcards:
            flashcards = [
                FlashcardRecord.from_flashcard(card, user_id, subject_id, document.id)
                for card in result.flashcards
            ]
            try:
                flashcards_count = await self._gateway.create_flashcards(flashcards)
            except PersistenceError as exc:
                warnings.append(self._partial_failure("flashcards", len(flashcards), exc))

        quiz_count = 0
        if result.quiz:
            questions = [
                QuizQuestionRecord.from_question(question, user_id, subject_id, document.id)
                for question in result.quiz
            ]
            try:
                quiz_count = await self._gateway.create_quiz_questions(questions)
            except PersistenceError as exc:
                warnings.append(self._partial_failure("quiz_questions", len(questions), exc))

        return SaveResult(
            document=document,
            flashcards_count=flashcards_count,
            quiz_count=quiz_count,
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_user_documents(
        self,
        user_id: str,
        subject_id: str | None = None,
    ) -> list[Document]:
        return await self._gateway.get_documents(user_id, subject_id)

    async def get_document(self, document_id: str) -> Document | None:
        return await self._gateway.get_document(document_id)

    async def get_document_stats(self, document_id: str) -> DocumentStats | None:
        """Return a document with its flashcard and quiz counts, or ``None``."""
        document, flashcards, quiz = await asyncio.gather(
            self._gateway.get_document(document_id),
            self._gateway.get_document_flashcards(document_id),
            self._gateway.get_document_quiz(document_id),
        )
        if document is None:
            return None
        return DocumentStats(
            document=document,
            flashcards_count=len(flashcards),
            quiz_count=len(quiz),
        )

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and everything generated from it."""
        deleted = await self._gateway.delete_document(document_id)
        if not deleted:
            self._logger.info("document_not_found", document_id=document_id)
        return deleted

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _partial_failure(
        self,
        collection: str,
        attempted: int,
        exc: PersistenceError,
    ) -> PersistencePartialFailure:
        self._logger.warning(
            f"{collection}_save_failed",
            attempted=attempted,
            provider=self._gateway.get_provider_name(),
            error=str(exc),
        )
        return PersistencePartialFailure(
            collection=collection,
            attempted=attempted,
            message=exc.message,
        )

    @staticmethod
    def _build_metadata(file: UploadedFile, text: str, result: AggregatedResult) -> dict[str, Any]:
        meta = result.metadata
        return {
            "file_name": file.filename,
            "file_size": file.file_size,
            "file_type": file.content_type,
            "content_hash": file.content_hash,
            "processed_at": meta.processed_at.isoformat(),
            "text_length": len(text),
            "model": meta.model,
            "total_chunks": meta.total_chunks,
            "merged": meta.merged,
        }
