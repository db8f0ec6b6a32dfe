"""Application settings loaded from environment variables via pydantic-settings.

Two sources, highest priority first:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. The ``.env`` file in the project root (local development only)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value.  An empty API key means "not configured":
the generation client raises :class:`~src.utils.errors.NotConfiguredError`
before it talks to the network.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Declared content types accepted by the text extractor.
SUPPORTED_CONTENT_TYPES: tuple[str, ...] = (
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/markdown",
)


class Settings(BaseSettings):
    """StudyHub application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Generation providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint override
    openai_quality_model: str = "gpt-4-turbo-preview"
    openai_fast_model: str = "gpt-3.5-turbo"
    anthropic_api_key: str = ""
    anthropic_quality_model: str = "claude-sonnet-4-20250514"
    anthropic_fast_model: str = "claude-3-5-haiku-20241022"

    # === Generation request shape ===
    generation_temperature: float = 0.7
    generation_max_tokens: int = 4000
    generation_timeout_seconds: float = 60.0
    # 0 disables retries: the first provider error fails the run.
    generation_max_retries: int = Field(default=0, ge=0, le=5)
    generation_retry_backoff_seconds: float = 2.0

    # === Pipeline ===
    chunk_size: int = Field(default=3000, gt=0)
    chunk_pause_seconds: float = Field(default=1.0, ge=0.0)
    min_text_length: int = Field(default=50, ge=50)
    max_upload_bytes: int = 10 * 1024 * 1024
    default_flashcard_count: int = Field(default=10, ge=5, le=50)
    default_quiz_count: int = Field(default=10, ge=5, le=50)
    # None keeps exact, case-sensitive key-concept dedup when merging chunks.
    concept_match_threshold: float | None = Field(default=None, gt=0.0, le=1.0)

    # === Persistence ===
    database_path: str = "data/studyhub.db"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def supported_content_types(self) -> tuple[str, ...]:
        return SUPPORTED_CONTENT_TYPES

    def get_available_llm_providers(self) -> list[str]:
        """Return the generation providers that have a credential configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.anthropic_api_key:
            providers.append("anthropic")
        return providers
