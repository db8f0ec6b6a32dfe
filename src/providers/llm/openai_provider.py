"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured (TogetherAI, Groq, a local vLLM
server...) the client points at that URL instead of the OpenAI endpoint;
many vendors expose the same chat-completions REST shape.

JSON mode is requested through ``response_format`` so the model is
constrained to emit a single JSON object.  Parsing and schema validation
stay in the generation client.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.pipeline import ModelChoice
from src.utils.errors import GenerationAPIError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat-completions API.

    ``QUALITY`` maps to ``openai_quality_model`` (gpt-4-turbo-preview by
    default) and ``FAST`` to ``openai_fast_model`` (gpt-3.5-turbo).
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key
        self._models = {
            ModelChoice.QUALITY: settings.openai_quality_model,
            ModelChoice.FAST: settings.openai_fast_model,
        }
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

        # No client without a key: the generation client checks
        # is_available() and raises NotConfiguredError first.
        self._client: openai.AsyncOpenAI | None = None
        if self._api_key:
            client_kwargs: dict = {
                "api_key": self._api_key,
                "timeout": openai.Timeout(settings.generation_timeout_seconds, connect=5.0),
                # Retries are owned by the generation client.
                "max_retries": 0,
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)

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
        """Generate a text completion via the chat-completions API."""
        if self._client is None:
            raise GenerationAPIError(
                message="OpenAI API key is not configured",
                provider_name=self.get_provider_name(),
            )
        model_id = model or self._models[ModelChoice.QUALITY]
        request: dict = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if json_output:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APITimeoutError as exc:
            raise GenerationAPIError(
                message=(
                    f"{self._provider_label} timed out after "
                    f"{self._settings.generation_timeout_seconds:g}s"
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            # Keep the remote message; it is what the user gets to see.
            raise GenerationAPIError(
                message=getattr(exc, "message", None) or str(exc),
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise GenerationAPIError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=model_id,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def resolve_model(self, choice: ModelChoice) -> str:
        return self._models[choice]

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models to verify the API key without incurring inference cost."""
        if self._client is None:
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        """Return 'openai' or 'openai-compatible' depending on configuration."""
        return self._provider_label
