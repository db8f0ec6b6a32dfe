"""Unit tests for LLM provider adapters -- OpenAI and Anthropic."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config.settings import Settings
from src.models.pipeline import ModelChoice
from src.utils.errors import GenerationAPIError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "anthropic_api_key": "test-anthropic",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _openai_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=100)
    return response


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(settings)
        assert provider.get_provider_name() == "openai"

    def test_provider_name_with_base_url(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(_settings(openai_base_url="http://localhost:8001/v1"))
        assert provider.get_provider_name() == "openai-compatible"

    def test_is_available_with_key(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(settings)
        assert provider.is_available() is True

    def test_is_available_without_key(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(_settings(openai_api_key=""))
        assert provider.is_available() is False

    def test_resolve_model(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(settings)
        assert provider.resolve_model(ModelChoice.QUALITY) == "gpt-4-turbo-preview"
        assert provider.resolve_model(ModelChoice.FAST) == "gpt-3.5-turbo"

    @pytest.mark.asyncio
    async def test_complete_success(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response("{}"))

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            result = await provider.complete("system prompt", "user prompt", json_output=True)

        assert result == "{}"
        request = mock_client.chat.completions.create.await_args.kwargs
        assert request["model"] == "gpt-4-turbo-preview"
        assert request["response_format"] == {"type": "json_object"}
        assert request["messages"][0] == {"role": "system", "content": "system prompt"}

    @pytest.mark.asyncio
    async def test_complete_without_json_mode(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response("text"))

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            await provider.complete("s", "u", model="gpt-3.5-turbo")

        request = mock_client.chat.completions.create.await_args.kwargs
        assert "response_format" not in request
        assert request["model"] == "gpt-3.5-turbo"

    @pytest.mark.asyncio
    async def test_complete_error_keeps_remote_message(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        import openai

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(
                message="Rate limit exceeded",
                request=MagicMock(),
                body=None,
            )
        )

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(GenerationAPIError, match="Rate limit exceeded") as exc_info:
                await provider.complete("system", "user")

        assert exc_info.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_complete_empty_content(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_openai_response(None))

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(GenerationAPIError, match="empty response"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_complete_without_key_makes_no_client(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI") as client_cls:
            provider = OpenAILLMProvider(_settings(openai_api_key=""))
            with pytest.raises(GenerationAPIError, match="not configured"):
                await provider.complete("system", "user")

        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_validate_credentials_success(self, settings: Settings) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=[])

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            assert await provider.validate_credentials() is True

    @pytest.mark.asyncio
    async def test_validate_credentials_without_key(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(_settings(openai_api_key=""))
        assert await provider.validate_credentials() is False


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


def _anthropic_response(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    response = MagicMock()
    response.content = [block]
    response.usage = MagicMock(input_tokens=50, output_tokens=50)
    return response


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider
        provider = AnthropicLLMProvider(settings)
        assert provider.get_provider_name() == "anthropic"

    def test_is_available_with_key(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider
        provider = AnthropicLLMProvider(settings)
        assert provider.is_available() is True

    def test_is_available_without_key(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider
        provider = AnthropicLLMProvider(_settings(anthropic_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response("Anthropic response"))

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            result = await provider.complete("system", "user")

        assert result == "Anthropic response"
        request = mock_client.messages.create.await_args.kwargs
        assert request["system"] == "system"
        assert request["model"] == settings.anthropic_quality_model

    @pytest.mark.asyncio
    async def test_json_output_extends_system_prompt(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response("{}"))

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            await provider.complete("system", "user", json_output=True)

        system = mock_client.messages.create.await_args.kwargs["system"]
        assert system.startswith("system")
        assert "JSON" in system

    @pytest.mark.asyncio
    async def test_complete_error(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider
        import anthropic

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(
                message="Overloaded",
                request=MagicMock(),
                body=None,
            )
        )

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(GenerationAPIError, match="Overloaded"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_no_text_blocks(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = _anthropic_response("")
        response.content[0].type = "tool_use"
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=response)

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(GenerationAPIError, match="no text content"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_validate_credentials_success(self, settings: Settings) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response("ok"))

        with patch("src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            result = await provider.validate_credentials()

        assert result is True
