"""Pipeline state and result models for document processing.

Defines Pydantic v2 models for the per-document state machine, the caller's
processing options, per-chunk results and the aggregated result.  State
models are frozen; a run advances by producing new :class:`PipelineRun`
instances via :meth:`PipelineRun.advance`, which refuses transitions the
state machine does not allow.

State machine (per document)::

    IDLE -> EXTRACTING -> GENERATING ----------------> DONE
                       -> CHUNKING -> GENERATING -> MERGING -> DONE

``FAILED`` is reachable from every non-terminal phase.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.models.study import Analysis, Flashcard, QuizQuestion, Summary
from src.utils.errors import PipelineError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# PipelinePhase - the state machine that drives one document run.
# ---------------------------------------------------------------------------
class PipelinePhase(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Phases of the document-to-study-material pipeline."""

    IDLE = "IDLE"
    EXTRACTING = "EXTRACTING"
    CHUNKING = "CHUNKING"
    GENERATING = "GENERATING"
    MERGING = "MERGING"
    DONE = "DONE"
    FAILED = "FAILED"


_TERMINAL_PHASES = frozenset({PipelinePhase.DONE, PipelinePhase.FAILED})

_ALLOWED_TRANSITIONS: dict[PipelinePhase, frozenset[PipelinePhase]] = {
    PipelinePhase.IDLE: frozenset({PipelinePhase.EXTRACTING}),
    PipelinePhase.EXTRACTING: frozenset({PipelinePhase.GENERATING, PipelinePhase.CHUNKING}),
    PipelinePhase.CHUNKING: frozenset({PipelinePhase.GENERATING}),
    PipelinePhase.GENERATING: frozenset({PipelinePhase.MERGING, PipelinePhase.DONE}),
    PipelinePhase.MERGING: frozenset({PipelinePhase.DONE}),
    PipelinePhase.DONE: frozenset(),
    PipelinePhase.FAILED: frozenset(),
}


class ModelChoice(str, Enum):  # noqa: UP042
    """Caller-facing model selector; providers map it onto concrete model ids."""

    QUALITY = "quality"
    FAST = "fast"


class ProcessingOptions(BaseModel):
    """Options for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    flashcard_count: int = Field(default=10, ge=5, le=50)
    quiz_count: int = Field(default=10, ge=5, le=50)
    model: ModelChoice = ModelChoice.QUALITY


# ---------------------------------------------------------------------------
# PipelineRun - transition history of a single document run.
# ---------------------------------------------------------------------------
class PhaseTransition(BaseModel):
    """A single recorded phase change."""

    model_config = ConfigDict(frozen=True)

    phase: PipelinePhase
    at: datetime = Field(default_factory=_utcnow)
    detail: str = ""


class PipelineRun(BaseModel):
    """Immutable snapshot of a document run's position in the state machine."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    filename: str = ""
    phase: PipelinePhase = PipelinePhase.IDLE
    history: list[PhaseTransition] = Field(default_factory=list)
    total_chunks: int = 0
    chunks_completed: int = 0
    failure_reason: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in _TERMINAL_PHASES

    def advance(self, phase: PipelinePhase, detail: str = "") -> PipelineRun:
        """Return a new run moved to *phase*.

        Raises
        ------
        PipelineError
            If the transition is not allowed from the current phase.
        """
        if phase is PipelinePhase.FAILED:
            if self.is_terminal:
                raise PipelineError(
                    message=f"Cannot fail a run that is already {self.phase.value}"
                )
        elif phase not in _ALLOWED_TRANSITIONS[self.phase]:
            raise PipelineError(
                message=f"Illegal transition {self.phase.value} -> {phase.value}"
            )
        update: dict[str, object] = {
            "phase": phase,
            "history": [*self.history, PhaseTransition(phase=phase, detail=detail)],
        }
        if phase is PipelinePhase.FAILED:
            update["failure_reason"] = detail
        return self.model_copy(update=update)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class ChunkResult(BaseModel):
    """Generation output for one chunk of text."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = 0
    content_length: int = 0
    analysis: Analysis
    summary: Summary
    flashcards: list[Flashcard] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)


class ProcessingMetadata(BaseModel):
    """How an aggregated result was produced."""

    model_config = ConfigDict(frozen=True)

    processed_at: datetime = Field(default_factory=_utcnow)
    model: str
    content_length: int = 0
    total_chunks: int = 1
    merged: bool = False
    flashcard_count: int | None = None
    quiz_count: int | None = None


class AggregatedResult(BaseModel):
    """Final output of a pipeline run.  Ephemeral; never persisted directly."""

    model_config = ConfigDict(frozen=True)

    analysis: Analysis
    summary: Summary
    flashcards: list[Flashcard] = Field(default_factory=list)
    quiz: list[QuizQuestion] = Field(default_factory=list)
    metadata: ProcessingMetadata
    # Full extracted text, kept for persistence; excluded from dumps.
    source_text: str = Field(default="", exclude=True, repr=False)
    # Final state-machine snapshot of the run that produced this result.
    run: PipelineRun | None = Field(default=None, exclude=True, repr=False)
