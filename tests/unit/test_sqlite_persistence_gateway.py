"""Unit tests for SQLitePersistenceGateway -- uses a real temp database."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.models.document import Document, FlashcardRecord, QuizQuestionRecord
from src.models.study import QuizOptions
from src.providers.persistence.sqlite_persistence_gateway import SQLitePersistenceGateway
from src.utils.errors import PersistenceError


@pytest.fixture()
async def gateway(tmp_path: Path) -> SQLitePersistenceGateway:
    gw = SQLitePersistenceGateway(tmp_path / "nested" / "studyhub.db")
    await gw.initialize()
    return gw


def _document(user_id: str = "u1", subject_id: str = "s1", **overrides) -> Document:
    data = {
        "user_id": user_id,
        "subject_id": subject_id,
        "title": "Photosynthesis",
        "original_filename": "notes.txt",
        "file_size": 1200,
        "file_type": "text/plain",
        "text_content": "Plants convert light into chemical energy inside their chloroplasts.",
        "ai_analysis": {"subject": "Biology", "keyConcepts": []},
        "ai_summary": {"title": "Photosynthesis"},
        "metadata": {"total_chunks": 1, "merged": False},
    }
    data.update(overrides)
    return Document(**data)


def _flashcards(document_id: str | None, n: int = 3) -> list[FlashcardRecord]:
    return [
        FlashcardRecord(
            user_id="u1",
            subject_id="s1",
            document_id=document_id,
            question=f"Question {i}?",
            answer=f"Answer {i}",
        )
        for i in range(n)
    ]


def _quiz(document_id: str | None, n: int = 2) -> list[QuizQuestionRecord]:
    return [
        QuizQuestionRecord(
            user_id="u1",
            subject_id="s1",
            document_id=document_id,
            question=f"Pick {i}",
            options=QuizOptions(A="a", B="b", C="c", D="d"),
            correct_answer="C",
        )
        for i in range(n)
    ]


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "deep" / "dir" / "studyhub.db"
        await SQLitePersistenceGateway(db_path).initialize()
        assert db_path.exists()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, gateway: SQLitePersistenceGateway) -> None:
        await gateway.initialize()

    def test_provider_name(self, tmp_path: Path) -> None:
        assert SQLitePersistenceGateway(tmp_path / "x.db").get_provider_name() == "sqlite"


class TestDocuments:
    @pytest.mark.asyncio
    async def test_create_and_get_round_trip(self, gateway: SQLitePersistenceGateway) -> None:
        record = _document()
        await gateway.create_document(record)

        fetched = await gateway.get_document(record.id)

        assert fetched == record

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, gateway: SQLitePersistenceGateway) -> None:
        assert await gateway.get_document("missing") is None

    @pytest.mark.asyncio
    async def test_list_newest_first_and_filtered(self, gateway: SQLitePersistenceGateway) -> None:
        now = datetime.now(tz=timezone.utc)
        old = _document(created_at=now - timedelta(days=1), title="old")
        new = _document(created_at=now, title="new")
        other_subject = _document(subject_id="s2", title="other subject")
        other_user = _document(user_id="u2", title="other user")
        for record in (old, new, other_subject, other_user):
            await gateway.create_document(record)

        s1_docs = await gateway.get_documents("u1", "s1")
        all_docs = await gateway.get_documents("u1")

        assert [d.title for d in s1_docs] == ["new", "old"]
        assert {d.title for d in all_docs} == {"old", "new", "other subject"}

    @pytest.mark.asyncio
    async def test_duplicate_id_raises_persistence_error(
        self, gateway: SQLitePersistenceGateway
    ) -> None:
        record = _document()
        await gateway.create_document(record)

        with pytest.raises(PersistenceError) as exc_info:
            await gateway.create_document(record)
        assert exc_info.value.provider_name == "sqlite"


class TestChildren:
    @pytest.mark.asyncio
    async def test_flashcards_and_quiz_round_trip(self, gateway: SQLitePersistenceGateway) -> None:
        document = await gateway.create_document(_document())

        assert await gateway.create_flashcards(_flashcards(document.id, 3)) == 3
        assert await gateway.create_quiz_questions(_quiz(document.id, 2)) == 2

        cards = await gateway.get_document_flashcards(document.id)
        questions = await gateway.get_document_quiz(document.id)
        assert [c.question for c in cards] == ["Question 0?", "Question 1?", "Question 2?"]
        assert questions[0].options.C == "c"
        assert questions[0].correct_answer == "C"

    @pytest.mark.asyncio
    async def test_empty_batches_return_zero(self, gateway: SQLitePersistenceGateway) -> None:
        assert await gateway.create_flashcards([]) == 0
        assert await gateway.create_quiz_questions([]) == 0

    @pytest.mark.asyncio
    async def test_unknown_document_rejected_atomically(
        self, gateway: SQLitePersistenceGateway
    ) -> None:
        with pytest.raises(PersistenceError):
            await gateway.create_flashcards(_flashcards("no-such-document", 3))

        assert await gateway.get_document_flashcards("no-such-document") == []

    @pytest.mark.asyncio
    async def test_delete_cascades(self, gateway: SQLitePersistenceGateway) -> None:
        document = await gateway.create_document(_document())
        await gateway.create_flashcards(_flashcards(document.id))
        await gateway.create_quiz_questions(_quiz(document.id))

        assert await gateway.delete_document(document.id) is True

        assert await gateway.get_document(document.id) is None
        assert await gateway.get_document_flashcards(document.id) == []
        assert await gateway.get_document_quiz(document.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, gateway: SQLitePersistenceGateway) -> None:
        assert await gateway.delete_document("missing") is False
