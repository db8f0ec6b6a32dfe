"""Abstract base class for the persistence gateway.

Defines the contract for storing documents together with the flashcards
and quiz questions generated from them.  The hosted deployment keeps these
in backend-as-a-service tables; the bundled implementation uses SQLite.
Either way the document service only talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.document import Document, FlashcardRecord, QuizQuestionRecord


class IPersistenceGateway(ABC):
    """Contract for document / flashcard / quiz-question storage.

    All operations are async to support network-backed stores.  Every
    failure is reported as :class:`~src.utils.errors.PersistenceError`;
    deciding which failures are fatal is the caller's job.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    async def create_document(self, record: Document) -> Document:
        """Insert a document row and return it as stored."""

    @abstractmethod
    async def create_flashcards(self, records: list[FlashcardRecord]) -> int:
        """Insert a batch of flashcards atomically.

        Returns
        -------
        int
            Number of rows written.  A failed batch writes nothing.
        """

    @abstractmethod
    async def create_quiz_questions(self, records: list[QuizQuestionRecord]) -> int:
        """Insert a batch of quiz questions atomically; return rows written."""

    @abstractmethod
    async def get_documents(
        self,
        user_id: str,
        subject_id: str | None = None,
    ) -> list[Document]:
        """Return a user's documents, newest first, optionally for one subject."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return one document, or ``None`` if it does not exist."""

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and, by cascade, its flashcards and quiz questions.

        Returns ``True`` if a document was deleted.
        """

    @abstractmethod
    async def get_document_flashcards(self, document_id: str) -> list[FlashcardRecord]:
        """Return the flashcards spawned by a document."""

    @abstractmethod
    async def get_document_quiz(self, document_id: str) -> list[QuizQuestionRecord]:
        """Return the quiz questions spawned by a document."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this gateway."""
