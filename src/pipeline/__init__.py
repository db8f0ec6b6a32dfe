"""Pipeline orchestration components for the StudyHub document pipeline."""

from src.pipeline.cancellation import CancellationToken
from src.pipeline.orchestrator import DocumentPipeline
from src.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "CancellationToken",
    "DocumentPipeline",
    "ProgressTracker",
]
