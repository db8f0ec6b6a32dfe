"""Study-material models produced by the generation client.

Defines Pydantic v2 models for the four artifacts the pipeline generates
from each chunk of text:

    1. Analysis   - subject, level, key concepts, structure, formulas
    2. Summary    - title, overview, sections, conclusion
    3. Flashcard  - one question/answer study unit
    4. QuizQuestion - one four-option multiple-choice unit

Field aliases mirror the camelCase JSON the generation service returns
(``keyConcepts``, ``keyPoints``, ``correctAnswer``), so a parsed response
can be validated directly with ``model_validate`` and dumped back with
``model_dump(by_alias=True)`` for persistence.  ``populate_by_name`` lets
Python callers and tests use the snake_case names.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_STUDY_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class Level(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Difficulty level of an analysed text."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Importance(str, Enum):  # noqa: UP042
    """Importance tier of a key concept."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Labels the prompts historically produced, mapped onto enum values.
_LEVEL_LABELS = {
    "beginner": Level.BEGINNER,
    "débutant": Level.BEGINNER,
    "debutant": Level.BEGINNER,
    "intermediate": Level.INTERMEDIATE,
    "intermédiaire": Level.INTERMEDIATE,
    "intermediaire": Level.INTERMEDIATE,
    "advanced": Level.ADVANCED,
    "avancé": Level.ADVANCED,
    "avance": Level.ADVANCED,
}

_IMPORTANCE_LABELS = {
    "high": Importance.HIGH,
    "haute": Importance.HIGH,
    "medium": Importance.MEDIUM,
    "moyenne": Importance.MEDIUM,
    "low": Importance.LOW,
    "faible": Importance.LOW,
}


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
class KeyConcept(BaseModel):
    """A named concept with its definition and importance tier."""

    model_config = _STUDY_CONFIG

    name: str = Field(min_length=1)
    definition: str
    importance: Importance = Importance.MEDIUM

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value: object) -> object:
        if isinstance(value, str):
            return _IMPORTANCE_LABELS.get(value.strip().lower(), value)
        return value


class StructureSection(BaseModel):
    """One structural section of the analysed text."""

    model_config = _STUDY_CONFIG

    title: str
    summary: str = ""
    concepts: list[str] = Field(default_factory=list)


class Formula(BaseModel):
    """A formula, theorem or rule found in the text."""

    model_config = _STUDY_CONFIG

    name: str
    formula: str
    description: str = ""


class Analysis(BaseModel):
    """Structured pedagogical extraction of a chunk of text.

    One Analysis feeds exactly one Summary, one flashcard set and one quiz
    set for the same chunk.
    """

    model_config = _STUDY_CONFIG

    subject: str
    level: Level
    key_concepts: list[KeyConcept] = Field(alias="keyConcepts")
    structure: list[StructureSection] = Field(default_factory=list)
    formulas: list[Formula] = Field(default_factory=list)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: object) -> object:
        # Unknown labels fall through unchanged and fail enum validation.
        if isinstance(value, str):
            return _LEVEL_LABELS.get(value.strip().lower(), value)
        return value


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------
class SummarySection(BaseModel):
    """A titled prose section of a summary with its key points."""

    model_config = _STUDY_CONFIG

    title: str
    content: str
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")


class Summary(BaseModel):
    """Human-readable digest derived from an Analysis."""

    model_config = _STUDY_CONFIG

    title: str
    overview: str
    sections: list[SummarySection] = Field(default_factory=list)
    conclusion: str = ""


# ---------------------------------------------------------------------------
# Flashcards and quiz questions
# ---------------------------------------------------------------------------
class Flashcard(BaseModel):
    """A single question/answer study unit.  Both sides must be non-empty."""

    model_config = _STUDY_CONFIG

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    category: str = ""
    difficulty: str = ""
    concept: str = ""

    @field_validator("question", "answer")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class QuizOptions(BaseModel):
    """Exactly four labelled answer options."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    A: str = Field(min_length=1)
    B: str = Field(min_length=1)
    C: str = Field(min_length=1)
    D: str = Field(min_length=1)


OptionLabel = Literal["A", "B", "C", "D"]


class QuizQuestion(BaseModel):
    """A multiple-choice question with a single correct option label."""

    model_config = _STUDY_CONFIG

    question: str = Field(min_length=1)
    options: QuizOptions
    correct_answer: OptionLabel = Field(alias="correctAnswer")
    explanation: str = ""
    difficulty: str = ""
    category: str = ""

    @property
    def correct_option_text(self) -> str:
        """Return the text of the option referenced by ``correct_answer``."""
        return getattr(self.options, self.correct_answer)
