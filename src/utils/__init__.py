"""Utility modules for StudyHub.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at StudyHubError;
  each pipeline stage raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- Byte decoding, markup stripping and fuzzy concept
  name matching.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentTooShortError,
    ExtractionError,
    FileTooLargeError,
    GenerationAPIError,
    GenerationSchemaError,
    NotConfiguredError,
    PersistenceError,
    PersistencePartialFailure,
    PipelineCancelledError,
    PipelineError,
    StudyHubError,
    UnsupportedFormatError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Text normalization ----------------------------------------------------
from src.utils.text_normalizer import collapse_whitespace, decode_text, fuzzy_match, strip_markup

__all__ = [
    "ConfigurationError",
    "DocumentTooShortError",
    "ExtractionError",
    "FileTooLargeError",
    "GenerationAPIError",
    "GenerationSchemaError",
    "NotConfiguredError",
    "PersistenceError",
    "PersistencePartialFailure",
    "PipelineCancelledError",
    "PipelineError",
    "StudyHubError",
    "UnsupportedFormatError",
    "collapse_whitespace",
    "configure_logging",
    "decode_text",
    "fuzzy_match",
    "get_logger",
    "strip_markup",
]
