"""Custom exception hierarchy for StudyHub.

All application exceptions inherit from :class:`StudyHubError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "sqlite") caused the failure, and a
``stage`` naming the pipeline step that failed for user-facing messages.

The hierarchy is organized by pipeline stage:

    StudyHubError  (base -- catch-all for any StudyHub error)
    +-- UnsupportedFormatError   (upload precondition: content type)
    +-- FileTooLargeError        (upload precondition: size)
    +-- ExtractionError          (text could not be obtained from the file)
    +-- DocumentTooShortError    (extracted text below the minimum length)
    +-- ConfigurationError       (startup / missing config)
    |   +-- NotConfiguredError   (generation credential missing)
    +-- GenerationAPIError       (remote generation service reported an error)
    +-- GenerationSchemaError    (response violated the JSON contract)
    +-- PipelineError            (orchestration / state transitions)
    |   +-- PipelineCancelledError
    +-- PersistenceError         (storage backend failure)

Only :class:`GenerationAPIError` is considered transient.  Everything else
is surfaced to the user as-is; callers never retry it automatically.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StudyHubError(Exception):
    """Base exception for all StudyHub errors.

    Every subclass carries a human-readable ``message``, an optional
    ``provider_name`` identifying which external service triggered the
    error, and a ``stage`` label.  ``__str__`` prefixes the provider name
    in brackets for structured log output, e.g. ``[openai] Rate limit``.
    """

    stage = "processing"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Upload preconditions
# ---------------------------------------------------------------------------

class UnsupportedFormatError(StudyHubError):
    """Raised when the declared content type is not one the extractor handles."""

    stage = "validation"

    def __init__(
        self,
        message: str = "Unsupported file format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FileTooLargeError(StudyHubError):
    """Raised when an upload exceeds the configured maximum size."""

    stage = "validation"

    def __init__(
        self,
        message: str = "File is too large",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ExtractionError(StudyHubError):
    """Raised when text cannot be obtained from an uploaded file."""

    stage = "extraction"

    def __init__(
        self,
        message: str = "Unable to extract text from the file",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentTooShortError(StudyHubError):
    """Raised when the extracted text is below the minimum viable length."""

    stage = "extraction"

    def __init__(
        self,
        message: str = "Document is too short or empty",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(StudyHubError):
    """Raised when configuration is invalid or missing at startup."""

    stage = "configuration"

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotConfiguredError(ConfigurationError):
    """Raised before any generation call when no credential is present."""

    def __init__(
        self,
        message: str = "Generation service is not configured",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationAPIError(StudyHubError):
    """Raised when the remote generation service reports an error.

    The message carries the remote service's own error text.  This is the
    only error class the generation client may retry.
    """

    stage = "generation"

    def __init__(
        self,
        message: str = "Generation service call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationSchemaError(StudyHubError):
    """Raised when a generation response is not valid per the JSON contract."""

    stage = "generation"

    def __init__(
        self,
        message: str = "Generation response did not match the expected schema",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class PipelineError(StudyHubError):
    """Raised when pipeline orchestration fails (invalid state transition, etc.)."""

    stage = "pipeline"

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineCancelledError(PipelineError):
    """Raised when the caller cancels a run through its cancellation token."""

    def __init__(
        self,
        message: str = "Document processing was cancelled",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class PersistenceError(StudyHubError):
    """Raised when the storage backend rejects a read or write."""

    stage = "persistence"

    def __init__(
        self,
        message: str = "Persistence operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistencePartialFailure(BaseModel):
    """A sub-collection that failed to save after the document record succeeded.

    Not raised: collected on :class:`~src.models.document.SaveResult` and
    logged as a warning.
    """

    model_config = ConfigDict(frozen=True)

    collection: str
    attempted: int
    message: str
