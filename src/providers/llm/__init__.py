"""LLM provider adapters.

Concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - OpenAILLMProvider    - gpt-4-turbo-preview / gpt-3.5-turbo, or any
                             OpenAI-compatible endpoint
    - AnthropicLLMProvider - Claude Sonnet / Haiku

main.py picks the provider matching the configured API key and injects it
into the generation client.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "AnthropicLLMProvider"]
