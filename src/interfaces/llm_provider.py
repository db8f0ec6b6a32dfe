"""Abstract base class for LLM service providers.

Defines the contract for any large-language-model backend used by the
generation client.  Implementations wrap the OpenAI API (or any
OpenAI-compatible endpoint) and the Anthropic API.  The adapter pattern
keeps the generation client provider-agnostic: it only ever sees this
interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.pipeline import ModelChoice


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the study-material generator."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        model: str | None = None,
        json_output: bool = False,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.
        model:
            Concrete model identifier.  ``None`` selects the provider's
            quality model.
        json_output:
            Ask the backend to constrain output to a JSON object when it
            supports doing so.

        Returns
        -------
        str
            The model's raw text response.

        Raises
        ------
        src.utils.errors.GenerationAPIError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def resolve_model(self, choice: ModelChoice) -> str:
        """Map the caller-facing model selector onto a concrete model id."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider.

        Example return values: ``"openai"``, ``"anthropic"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if a credential is configured.

        Must not make a network call; the generation client relies on this
        to fail with ``NotConfiguredError`` before contacting the service.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid.

        Unlike :meth:`is_available`, this method contacts the remote
        service.  Returns ``False`` instead of raising on rejection.
        """
