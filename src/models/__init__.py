"""StudyHub domain models, re-exported for convenience.

Instead of importing from the individual modules
(``from src.models.study import Flashcard``), callers may import directly
from ``src.models``.

    - study.py    - generated artifacts (Analysis, Summary, Flashcard, QuizQuestion)
    - document.py - uploads, persisted rows, save results
    - pipeline.py - run state machine, options, chunk and aggregated results

If you add a model class, add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.document import (
    Document,
    DocumentStats,
    FlashcardRecord,
    ProcessedDocument,
    QuizQuestionRecord,
    SaveResult,
    UploadedFile,
)
from src.models.pipeline import (
    AggregatedResult,
    ChunkResult,
    ModelChoice,
    PhaseTransition,
    PipelinePhase,
    PipelineRun,
    ProcessingMetadata,
    ProcessingOptions,
)
from src.models.study import (
    Analysis,
    Flashcard,
    Formula,
    Importance,
    KeyConcept,
    Level,
    QuizOptions,
    QuizQuestion,
    StructureSection,
    Summary,
    SummarySection,
)

__all__ = [
    # study
    "Analysis",
    "Flashcard",
    "Formula",
    "Importance",
    "KeyConcept",
    "Level",
    "QuizOptions",
    "QuizQuestion",
    "StructureSection",
    "Summary",
    "SummarySection",
    # document
    "Document",
    "DocumentStats",
    "FlashcardRecord",
    "ProcessedDocument",
    "QuizQuestionRecord",
    "SaveResult",
    "UploadedFile",
    # pipeline
    "AggregatedResult",
    "ChunkResult",
    "ModelChoice",
    "PhaseTransition",
    "PipelinePhase",
    "PipelineRun",
    "ProcessingMetadata",
    "ProcessingOptions",
]
