"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Differences from the OpenAI adapter:
    - Uses the Messages API; the system prompt is a top-level parameter
    - There is no JSON response mode, so ``json_output`` adds an explicit
      instruction to the system prompt instead
    - Response content is a list of blocks; text blocks are joined
"""

from __future__ import annotations

import anthropic
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.pipeline import ModelChoice
from src.utils.errors import GenerationAPIError

logger = structlog.get_logger(logger_name=__name__)

_JSON_ONLY_SUFFIX = (
    "\n\nRespond with a single valid JSON object only. "
    "Do not wrap it in markdown and do not add any text before or after it."
)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Claude API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.anthropic_api_key
        self._models = {
            ModelChoice.QUALITY: settings.anthropic_quality_model,
            ModelChoice.FAST: settings.anthropic_fast_model,
        }
        self._client: anthropic.AsyncAnthropic | None = None
        if self._api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=settings.generation_timeout_seconds,
                max_retries=0,
            )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        model: str | None = None,
        json_output: bool = False,
    ) -> str:
        """Generate a text completion via the Anthropic Messages API."""
        if self._client is None:
            raise GenerationAPIError(
                message="Anthropic API key is not configured",
                provider_name=self.get_provider_name(),
            )
        model_id = model or self._models[ModelChoice.QUALITY]
        system = system_prompt + _JSON_ONLY_SUFFIX if json_output else system_prompt
        try:
            response = await self._client.messages.create(
                model=model_id,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APIError as exc:
            raise GenerationAPIError(
                message=getattr(exc, "message", None) or str(exc),
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise GenerationAPIError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    def resolve_model(self, choice: ModelChoice) -> str:
        return self._models[choice]

    def is_available(self) -> bool:
        """Return ``True`` if an Anthropic API key is configured."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """Try a minimal completion to verify the API key works."""
        if self._client is None:
            return False
        try:
            await self._client.messages.create(
                model=self._models[ModelChoice.FAST],
                max_tokens=10,
                messages=[{"role": "user", "content": "hi"}],
            )
            return True
        except anthropic.APIError:
            return False

    def get_provider_name(self) -> str:
        return "anthropic"
