"""Cooperative cancellation for document pipeline runs."""

from __future__ import annotations

from src.utils.errors import PipelineCancelledError


class CancellationToken:
    """A flag the caller sets and the pipeline checks at stage boundaries.

    The pipeline checks the token before extraction, before every generation
    call and between chunks.  Work already in flight (one HTTP request) is
    not interrupted; the run stops at the next check.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""

    def cancel(self, reason: str = "") -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self, checkpoint: str = "") -> None:
        """Raise :class:`PipelineCancelledError` if :meth:`cancel` was called."""
        if not self._cancelled:
            return
        message = "Document processing was cancelled"
        if checkpoint:
            message += f" before {checkpoint}"
        if self._reason:
            message += f": {self._reason}"
        raise PipelineCancelledError(message=message)
