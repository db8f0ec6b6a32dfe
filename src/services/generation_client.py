"""LLM-backed generation of study material from extracted text.

Four operations, each a single system + user round trip against the
injected :class:`ILLMProvider`:

    analyze          text      -> Analysis
    summarize        Analysis  -> Summary
    make_flashcards  Analysis  -> list[Flashcard]
    make_quiz        Analysis  -> list[QuizQuestion]

Response contract
-----------------
Every response must be one JSON object and nothing else.  Responses are
parsed with a plain ``json.loads`` and validated against the Pydantic
models; there is no fence stripping, no repair and no coercion.  Anything
that does not validate raises :class:`GenerationSchemaError`.

Failure policy
--------------
- No credential: :class:`NotConfiguredError`, raised before any call.
- Provider failure: :class:`GenerationAPIError` carrying the remote message.
  When ``generation_max_retries`` is above zero these are retried with
  exponential backoff; nothing else is ever retried.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.pipeline import ModelChoice
from src.models.study import Analysis, Flashcard, QuizQuestion, Summary
from src.utils.errors import GenerationAPIError, GenerationSchemaError, NotConfiguredError
from src.utils.logging import get_logger

MIN_ITEM_COUNT = 5
MAX_ITEM_COUNT = 50

_ANALYZE_SYSTEM_PROMPT = """\
You are a teaching expert specialised in analysing educational documents.
Your job is to analyse the supplied content and extract its essential
teaching elements.

Instructions:
1. Identify the main subject and the difficulty level
2. Extract the key concepts and important definitions
3. Note the relationships between concepts
4. Identify important formulas, theorems or rules
5. Organise the information logically

Expected response format (JSON):
{
  "subject": "Main subject",
  "level": "beginner | intermediate | advanced",
  "keyConcepts": [
    {"name": "Concept name", "definition": "Clear definition", "importance": "high | medium | low"}
  ],
  "structure": [
    {"title": "Section title", "summary": "Section summary", "concepts": ["concept1", "concept2"]}
  ],
  "formulas": [
    {"name": "Formula name", "formula": "Mathematical expression", "description": "Explanation"}
  ]
}"""

_SUMMARY_SYSTEM_PROMPT = """\
You are a teaching expert who writes clear, well-structured summaries.
Write a study summary based on the analysis provided.

The summary must:
- Be organised into logical sections
- Use clear, accessible language
- Highlight the important points
- Include examples where relevant
- Match the identified level

Expected response format (JSON):
{
  "title": "Summary title",
  "overview": "General overview in 2-3 sentences",
  "sections": [
    {"title": "Section title", "content": "Section content", "keyPoints": ["Key point 1", "Key point 2"]}
  ],
  "conclusion": "Conclusion and points to remember"
}"""

_FLASHCARDS_SYSTEM_PROMPT = """\
You are an expert in writing study flashcards.
Create high-quality flashcards based on the analysis provided.

The flashcards must:
- Cover the most important concepts first
- Ask clear, precise questions
- Give complete but concise answers
- Vary in kind (definitions, applications, comparisons)
- Match the identified level

Expected response format (JSON):
{
  "flashcards": [
    {
      "question": "Clear question",
      "answer": "Complete answer",
      "category": "definition | application | comparison",
      "difficulty": "easy | medium | hard",
      "concept": "Main concept covered"
    }
  ]
}"""

_QUIZ_SYSTEM_PROMPT = """\
You are an expert in writing multiple-choice quizzes.
Create high-quality multiple-choice questions based on the analysis provided.

The questions must:
- Have exactly 4 answer options (A, B, C, D)
- Have exactly one correct answer
- Use plausible but incorrect distractors
- Cover different difficulty levels
- Be clear and unambiguous
- Include an explanation of the correct answer

Expected response format (JSON):
{
  "questions": [
    {
      "question": "Clear question",
      "options": {"A": "Option A", "B": "Option B", "C": "Option C", "D": "Option D"},
      "correctAnswer": "A",
      "explanation": "Why the correct answer is right",
      "difficulty": "easy | medium | hard",
      "category": "definition | application | analysis"
    }
  ]
}"""

_JSON_ONLY = "Respond with valid JSON only, without any additional text."


class GenerationClient:
    """Stateless facade over an :class:`ILLMProvider` for study material.

    Parameters
    ----------
    llm_provider:
        The completion backend.  Its credential is checked before every
        operation.
    settings:
        Supplies temperature, max_tokens and the retry policy.
    sleep:
        Awaitable used between retries; injectable so tests do not wait.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        settings: Settings,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._llm = llm_provider
        self._temperature = settings.generation_temperature
        self._max_tokens = settings.generation_max_tokens
        self._max_retries = settings.generation_max_retries
        self._backoff = settings.generation_retry_backoff_seconds
        self._sleep = sleep
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        return self._llm.is_available()

    def ensure_configured(self) -> None:
        """Raise :class:`NotConfiguredError` when no credential is present."""
        if not self._llm.is_available():
            raise NotConfiguredError(
                message="Generation API key is not configured",
                provider_name=self._llm.get_provider_name(),
            )

    def resolve_model(self, model: ModelChoice | None = None) -> str:
        """Return the concrete model id for a caller-facing selector."""
        return self._llm.resolve_model(model or ModelChoice.QUALITY)

    async def analyze(self, text: str, model: ModelChoice | None = None) -> Analysis:
        """Extract subject, level, concepts, structure and formulas from *text*."""
        user_prompt = (
            "Analyse this educational document and extract its essential elements:\n\n"
            f"{text}\n\n{_JSON_ONLY}"
        )
        data = await self._request("analyze", _ANALYZE_SYSTEM_PROMPT, user_prompt, model)
        return self._validate("analyze", Analysis, data)

    async def summarize(self, analysis: Analysis, model: ModelChoice | None = None) -> Summary:
        """Write a structured study summary of *analysis*."""
        user_prompt = (
            "Write a study summary based on this analysis:\n\n"
            f"{self._dump(analysis)}\n\n{_JSON_ONLY}"
        )
        data = await self._request("summarize", _SUMMARY_SYSTEM_PROMPT, user_prompt, model)
        return self._validate("summarize", Summary, data)

    async def make_flashcards(
        self,
        analysis: Analysis,
        count: int = 10,
        model: ModelChoice | None = None,
    ) -> list[Flashcard]:
        """Generate about *count* flashcards, most important concepts first.

        The count is a target passed to the model; fewer cards may come back.

        Raises
        ------
        ValueError
            If *count* is outside 5..50.
        """
        self._check_count(count)
        user_prompt = (
            f"Generate {count} high-quality flashcards based on this analysis:\n\n"
            f"{self._dump(analysis)}\n\n{_JSON_ONLY}"
        )
        data = await self._request("make_flashcards", _FLASHCARDS_SYSTEM_PROMPT, user_prompt, model)
        items = self._list_field("make_flashcards", data, "flashcards")
        return [self._validate("make_flashcards", Flashcard, item) for item in items]

    async def make_quiz(
        self,
        analysis: Analysis,
        count: int = 10,
        model: ModelChoice | None = None,
    ) -> list[QuizQuestion]:
        """Generate about *count* four-option multiple-choice questions.

        Raises
        ------
        ValueError
            If *count* is outside 5..50.
        """
        self._check_count(count)
        user_prompt = (
            f"Generate {count} high-quality multiple-choice questions based on this analysis:\n\n"
            f"{self._dump(analysis)}\n\n{_JSON_ONLY}"
        )
        data = await self._request("make_quiz", _QUIZ_SYSTEM_PROMPT, user_prompt, model)
        items = self._list_field("make_quiz", data, "questions")
        return [self._validate("make_quiz", QuizQuestion, item) for item in items]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        system_prompt: str,
        user_prompt: str,
        model: ModelChoice | None,
    ) -> dict[str, Any]:
        self.ensure_configured()
        model_id = self.resolve_model(model)
        provider_name = self._llm.get_provider_name()

        attempt = 0
        while True:
            try:
                raw = await self._llm.complete(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                    model=model_id,
                    json_output=True,
                )
                break
            except GenerationAPIError as exc:
                if attempt >= self._max_retries:
                    self._logger.error(
                        "generation_failed",
                        operation=operation,
                        provider=provider_name,
                        attempts=attempt + 1,
                        error=exc.message,
                    )
                    raise
                delay = self._backoff * (2**attempt)
                attempt += 1
                self._logger.warning(
                    "generation_retry",
                    operation=operation,
                    provider=provider_name,
                    attempt=attempt,
                    delay_seconds=delay,
                    error=exc.message,
                )
                await self._sleep(delay)

        self._logger.info(
            "generation_complete",
            operation=operation,
            provider=provider_name,
            model=model_id,
            response_chars=len(raw),
        )
        return self._parse(operation, raw, provider_name)

    @staticmethod
    def _parse(operation: str, raw: str, provider_name: str) -> dict[str, Any]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GenerationSchemaError(
                message=f"{operation}: response is not valid JSON ({exc.msg})",
                provider_name=provider_name,
            ) from exc
        if not isinstance(data, dict):
            raise GenerationSchemaError(
                message=f"{operation}: expected a JSON object, got {type(data).__name__}",
                provider_name=provider_name,
            )
        return data

    def _validate(self, operation: str, model_cls: type[BaseModel], data: Any) -> Any:
        try:
            return model_cls.model_validate(data)
        except ValidationError as exc:
            raise GenerationSchemaError(
                message=f"{operation}: {exc.error_count()} invalid field(s) in response: {exc}",
                provider_name=self._llm.get_provider_name(),
            ) from exc

    def _list_field(self, operation: str, data: dict[str, Any], key: str) -> list[Any]:
        items = data.get(key)
        if not isinstance(items, list):
            raise GenerationSchemaError(
                message=f"{operation}: response is missing the '{key}' list",
                provider_name=self._llm.get_provider_name(),
            )
        return items

    @staticmethod
    def _dump(analysis: Analysis) -> str:
        return json.dumps(analysis.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)

    @staticmethod
    def _check_count(count: int) -> None:
        if not MIN_ITEM_COUNT <= count <= MAX_ITEM_COUNT:
            raise ValueError(
                f"count must be between {MIN_ITEM_COUNT} and {MAX_ITEM_COUNT}, got {count}"
            )
