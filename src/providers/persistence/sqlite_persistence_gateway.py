"""SQLite-backed persistence gateway.

Stores documents, flashcards and quiz questions in a local SQLite database
at ``data/studyhub.db``.  Uses ``aiosqlite`` for async I/O.

Flashcards and quiz questions reference their document with
``ON DELETE CASCADE``; foreign keys are switched on for every connection so
deleting a document removes everything it spawned.  Structured columns
(analysis, summary, metadata, quiz options) are stored as JSON text.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.persistence_gateway import IPersistenceGateway
from src.models.document import Document, FlashcardRecord, QuizQuestionRecord
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/studyhub.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id                 TEXT PRIMARY KEY,
    user_id            TEXT    NOT NULL,
    subject_id         TEXT    NOT NULL,
    title              TEXT    NOT NULL,
    original_filename  TEXT    NOT NULL,
    file_size          INTEGER NOT NULL,
    file_type          TEXT    NOT NULL,
    text_content       TEXT    NOT NULL,
    ai_analysis        TEXT    NOT NULL DEFAULT '{}',
    ai_summary         TEXT    NOT NULL DEFAULT '{}',
    metadata           TEXT    NOT NULL DEFAULT '{}',
    created_at         TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS flashcards (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    subject_id   TEXT NOT NULL,
    document_id  TEXT REFERENCES documents(id) ON DELETE CASCADE,
    question     TEXT NOT NULL,
    answer       TEXT NOT NULL,
    category     TEXT NOT NULL DEFAULT '',
    difficulty   TEXT NOT NULL DEFAULT '',
    concept      TEXT NOT NULL DEFAULT '',
    created_at   TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS quiz_questions (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    subject_id      TEXT NOT NULL,
    document_id     TEXT REFERENCES documents(id) ON DELETE CASCADE,
    question        TEXT NOT NULL,
    options         TEXT NOT NULL,
    correct_answer  TEXT NOT NULL,
    explanation     TEXT NOT NULL DEFAULT '',
    difficulty      TEXT NOT NULL DEFAULT '',
    category        TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id, subject_id);",
    "CREATE INDEX IF NOT EXISTS idx_flashcards_document ON flashcards(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_quiz_document ON quiz_questions(document_id);",
]

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (
    id, user_id, subject_id, title, original_filename, file_size, file_type,
    text_content, ai_analysis, ai_summary, metadata, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_FLASHCARD_SQL = """\
INSERT INTO flashcards (
    id, user_id, subject_id, document_id, question, answer,
    category, difficulty, concept, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_QUIZ_SQL = """\
INSERT INTO quiz_questions (
    id, user_id, subject_id, document_id, question, options, correct_answer,
    explanation, difficulty, category, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""


class SQLitePersistenceGateway(IPersistenceGateway):
    """SQLite-backed document, flashcard and quiz-question storage."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with foreign keys on; wrap driver errors."""
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON;")
                yield db
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=str(exc),
                provider_name=self.get_provider_name(),
            ) from exc

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("studyhub_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_document(self, record: Document) -> Document:
        async with self._connect() as db:
            await db.execute(
                _INSERT_DOCUMENT_SQL,
                (
                    record.id,
                    record.user_id,
                    record.subject_id,
                    record.title,
                    record.original_filename,
                    record.file_size,
                    record.file_type,
                    record.text_content,
                    json.dumps(record.ai_analysis, ensure_ascii=False),
                    json.dumps(record.ai_summary, ensure_ascii=False),
                    json.dumps(record.metadata, ensure_ascii=False, default=str),
                    record.created_at.isoformat(),
                ),
            )
            await db.commit()
        logger.info("document_created", document_id=record.id, user_id=record.user_id)
        return record

    async def create_flashcards(self, records: list[FlashcardRecord]) -> int:
        if not records:
            return 0
        rows = [
            (
                r.id,
                r.user_id,
                r.subject_id,
                r.document_id,
                r.question,
                r.answer,
                r.category,
                r.difficulty,
                r.concept,
                r.created_at.isoformat(),
            )
            for r in records
        ]
        async with self._connect() as db:
            await db.executemany(_INSERT_FLASHCARD_SQL, rows)
            await db.commit()
        logger.info("flashcards_created", count=len(rows), document_id=records[0].document_id)
        return len(rows)

    async def create_quiz_questions(self, records: list[QuizQuestionRecord]) -> int:
        if not records:
            return 0
        rows = [
            (
                r.id,
                r.user_id,
                r.subject_id,
                r.document_id,
                r.question,
                json.dumps(r.options.model_dump(), ensure_ascii=False),
                r.correct_answer,
                r.explanation,
                r.difficulty,
                r.category,
                r.created_at.isoformat(),
            )
            for r in records
        ]
        async with self._connect() as db:
            await db.executemany(_INSERT_QUIZ_SQL, rows)
            await db.commit()
        logger.info("quiz_questions_created", count=len(rows), document_id=records[0].document_id)
        return len(rows)

    async def delete_document(self, document_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info("document_deleted", document_id=document_id, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_documents(
        self,
        user_id: str,
        subject_id: str | None = None,
    ) -> list[Document]:
        async with self._connect() as db:
            if subject_id:
                cursor = await db.execute(
                    "SELECT * FROM documents WHERE user_id = ? AND subject_id = ? "
                    "ORDER BY created_at DESC",
                    (user_id, subject_id),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM documents WHERE user_id = ? ORDER BY created_at DESC",
                    (user_id,),
                )
            rows = await cursor.fetchall()
        return [self._row_to_document(dict(r)) for r in rows]

    async def get_document(self, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
            row = await cursor.fetchone()
        return self._row_to_document(dict(row)) if row is not None else None

    async def get_document_flashcards(self, document_id: str) -> list[FlashcardRecord]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM flashcards WHERE document_id = ? ORDER BY rowid",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [FlashcardRecord.model_validate(dict(r)) for r in rows]

    async def get_document_quiz(self, document_id: str) -> list[QuizQuestionRecord]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM quiz_questions WHERE document_id = ? ORDER BY rowid",
                (document_id,),
            )
            rows = await cursor.fetchall()
        records: list[QuizQuestionRecord] = []
        for row in rows:
            data = dict(row)
            data["options"] = json.loads(data["options"])
            records.append(QuizQuestionRecord.model_validate(data))
        return records

    def get_provider_name(self) -> str:
        return "sqlite"

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        for column in ("ai_analysis", "ai_summary", "metadata"):
            row[column] = json.loads(row[column] or "{}")
        return Document.model_validate(row)
