"""Shared pytest fixtures for the StudyHub test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.document import UploadedFile
from src.models.pipeline import ChunkResult, ModelChoice
from src.models.study import Analysis, Flashcard, QuizQuestion, Summary

# ---------------------------------------------------------------------------
# Canned generation responses (camelCase, as the generation service sends them)
# ---------------------------------------------------------------------------


def _analysis_payload(
    subject: str = "Photosynthesis",
    concepts: list[tuple[str, str]] | None = None,
    level: str = "intermediate",
) -> dict[str, Any]:
    concepts = concepts or [
        ("Chlorophyll", "Green pigment that absorbs light"),
        ("Calvin cycle", "Light-independent reactions that fix carbon"),
    ]
    return {
        "subject": subject,
        "level": level,
        "keyConcepts": [
            {"name": name, "definition": definition, "importance": "high"}
            for name, definition in concepts
        ],
        "structure": [
            {"title": "Light reactions", "summary": "Energy capture", "concepts": ["Chlorophyll"]}
        ],
        "formulas": [
            {
                "name": "Overall equation",
                "formula": "6CO2 + 6H2O -> C6H12O6 + 6O2",
                "description": "Net reaction",
            }
        ],
    }


def _summary_payload(title: str = "Photosynthesis in brief", conclusion: str = "Plants store light.") -> dict[str, Any]:
    return {
        "title": title,
        "overview": f"{title} overview.",
        "sections": [
            {"title": "Light reactions", "content": "Light is absorbed.", "keyPoints": ["ATP", "NADPH"]}
        ],
        "conclusion": conclusion,
    }


def _flashcards_payload(n: int = 5, prefix: str = "Q") -> dict[str, Any]:
    return {
        "flashcards": [
            {
                "question": f"{prefix}{i}: What does chlorophyll do?",
                "answer": "It absorbs light energy.",
                "category": "definition",
                "difficulty": "easy",
                "concept": "Chlorophyll",
            }
            for i in range(1, n + 1)
        ]
    }


def _quiz_payload(n: int = 5, prefix: str = "Q") -> dict[str, Any]:
    return {
        "questions": [
            {
                "question": f"{prefix}{i}: Where does the Calvin cycle occur?",
                "options": {"A": "Stroma", "B": "Thylakoid", "C": "Nucleus", "D": "Cytoplasm"},
                "correctAnswer": "A",
                "explanation": "The Calvin cycle runs in the stroma.",
                "difficulty": "medium",
                "category": "application",
            }
            for i in range(1, n + 1)
        ]
    }


def _operation_for(user_prompt: str) -> str:
    """Classify a generation request by its user prompt."""
    if user_prompt.startswith("Analyse"):
        return "analyze"
    if user_prompt.startswith("Write a study summary"):
        return "summarize"
    if "flashcards" in user_prompt.split("\n", 1)[0]:
        return "make_flashcards"
    return "make_quiz"


def _make_llm(
    overrides: dict[str, str | Exception | Callable[[str], str]] | None = None,
    available: bool = True,
) -> MagicMock:
    """Build a mock :class:`ILLMProvider` that answers each operation with canned JSON.

    ``overrides`` maps an operation name to a raw response string, an
    exception to raise, or a callable receiving the user prompt.
    """
    overrides = overrides or {}
    defaults = {
        "analyze": json.dumps(_analysis_payload()),
        "summarize": json.dumps(_summary_payload()),
        "make_flashcards": json.dumps(_flashcards_payload()),
        "make_quiz": json.dumps(_quiz_payload()),
    }

    async def _complete(system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        operation = _operation_for(user_prompt)
        response = overrides.get(operation, defaults[operation])
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(user_prompt)
        return response

    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(side_effect=_complete)
    llm.is_available.return_value = available
    llm.get_provider_name.return_value = "mock"
    llm.resolve_model.side_effect = lambda choice: {
        ModelChoice.QUALITY: "gpt-4-turbo-preview",
        ModelChoice.FAST: "gpt-3.5-turbo",
    }[choice]
    return llm


def _called_operations(llm: MagicMock) -> list[str]:
    """Return the operations a mock LLM was asked to perform, in order."""
    return [_operation_for(call.kwargs["user_prompt"]) for call in llm.complete.await_args_list]


def _make_text(length: int) -> str:
    """Build plain text of exactly *length* characters made of full sentences."""
    sentences: list[str] = []
    i = 0
    while sum(len(s) for s in sentences) < length:
        i += 1
        sentences.append(
            f"Sentence {i:04d} describes how plants convert light into chemical energy. "
        )
    return "".join(sentences)[:length]


def _make_chunk_result(
    index: int = 0,
    concepts: list[tuple[str, str]] | None = None,
    n_cards: int = 5,
    n_quiz: int = 5,
    conclusion: str = "Plants store light.",
) -> ChunkResult:
    return ChunkResult(
        chunk_index=index,
        content_length=1000,
        analysis=Analysis.model_validate(
            _analysis_payload(subject=f"Subject {index}", concepts=concepts)
        ),
        summary=Summary.model_validate(
            _summary_payload(title=f"Part {index}", conclusion=conclusion)
        ),
        flashcards=[
            Flashcard.model_validate(c)
            for c in _flashcards_payload(n_cards, prefix=f"C{index}-")["flashcards"]
        ],
        quiz=[
            QuizQuestion.model_validate(q)
            for q in _quiz_payload(n_quiz, prefix=f"C{index}-")["questions"]
        ],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a test credential and a temporary database."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        anthropic_api_key="",
        database_path=str(tmp_path / "studyhub.db"),
        chunk_size=3000,
        chunk_pause_seconds=1.0,
        generation_max_retries=0,
    )


@pytest.fixture
def mock_llm() -> MagicMock:
    return _make_llm()


@pytest.fixture
def llm_factory() -> Callable[..., MagicMock]:
    """Factory for mock providers with per-operation response overrides."""
    return _make_llm


@pytest.fixture
def called_operations() -> Callable[[MagicMock], list[str]]:
    return _called_operations


@pytest.fixture
def payloads() -> SimpleNamespace:
    """Builders for canned generation responses."""
    return SimpleNamespace(
        analysis=_analysis_payload,
        summary=_summary_payload,
        flashcards=_flashcards_payload,
        quiz=_quiz_payload,
    )


@pytest.fixture
def text_factory() -> Callable[[int], str]:
    return _make_text


@pytest.fixture
def chunk_result_factory() -> Callable[..., ChunkResult]:
    return _make_chunk_result


@pytest.fixture
def sample_text() -> str:
    return (
        "Photosynthesis is the process by which green plants convert light into "
        "chemical energy. Chlorophyll absorbs mostly blue and red light. The Calvin "
        "cycle then fixes carbon dioxide into sugars inside the stroma."
    )


@pytest.fixture
def text_file(sample_text: str) -> UploadedFile:
    return UploadedFile.from_bytes(
        sample_text.encode("utf-8"), filename="notes.txt", content_type="text/plain"
    )
