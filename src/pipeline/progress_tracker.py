"""Pipeline progress tracking with callback-based listener notification.

Tracks the current phase and progress percentage of each document run and
broadcasts updates to listener callbacks registered for that run id::

    DocumentPipeline --update()--> ProgressTracker --callback()--> listener

Listeners are keyed by run id so concurrent runs do not see each other's
updates.  A listener that raises is logged and skipped; it never stops the
pipeline.  Both sync and async callbacks are accepted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from src.models.pipeline import PipelinePhase
from src.utils.logging import get_logger


@dataclass
class _RunStatus:
    """Internal, mutable snapshot of one run's progress."""

    phase: PipelinePhase = PipelinePhase.IDLE
    progress: float = 0.0
    message: str = ""


class ProgressTracker:
    """Tracks and broadcasts pipeline progress via callbacks."""

    def __init__(self) -> None:
        self._statuses: dict[str, _RunStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        run_id: str,
        phase: PipelinePhase,
        progress: float,
        message: str,
    ) -> None:
        """Record a progress update and notify the run's listeners.

        Parameters
        ----------
        run_id:
            The pipeline run to update.
        phase:
            The current pipeline phase.
        progress:
            Completion percentage, clamped to 0.0-100.0.
        message:
            Human-readable status message.
        """
        progress = max(0.0, min(100.0, progress))
        self._statuses[run_id] = _RunStatus(phase=phase, progress=progress, message=message)

        self._logger.debug(
            "progress_update",
            run_id=run_id,
            phase=phase.value,
            progress=round(progress, 1),
            message=message,
        )
        await self._notify_listeners(run_id, phase, progress, message)

    def register_listener(self, run_id: str, callback: Callable) -> None:
        """Register *callback* for ``(run_id, phase, progress, message)`` updates."""
        listeners = self._listeners.setdefault(run_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                run_id=run_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                run_id=run_id,
                remaining_listeners=len(listeners),
            )

    def get_status(self, run_id: str) -> dict:
        """Return ``phase``, ``progress`` and ``message`` for a run.

        Untracked runs report the IDLE phase at 0 %.
        """
        status = self._statuses.get(run_id) or _RunStatus()
        return {
            "phase": status.phase.value,
            "progress": status.progress,
            "message": status.message,
        }

    def clear(self, run_id: str) -> None:
        """Forget a finished run's status and listeners."""
        self._statuses.pop(run_id, None)
        self._listeners.pop(run_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(
        self,
        run_id: str,
        phase: PipelinePhase,
        progress: float,
        message: str,
    ) -> None:
        for callback in list(self._listeners.get(run_id, [])):
            try:
                result = callback(run_id, phase, progress, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    run_id=run_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
