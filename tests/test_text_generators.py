"""Tests for the OpenRouter backend and the generator factory."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pageplexbot.text_generators import (
    AnthropicTextGenerator,
    OpenRouterTextGenerator,
    get_text_generator,
)
from pageplexbot.text_generators import openrouter


def _completion(content):
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = "stop"
    resp = MagicMock()
    resp.choices = [choice]
    return resp


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("  Thread summary.  "))
    return client


class TestFactory:
    """get_text_generator picks the backend by API name."""

    def test_openrouter(self):
        gen = get_text_generator("openrouter", "openai/gpt-4o-mini")
        assert isinstance(gen, OpenRouterTextGenerator)
        assert gen.model == "openai/gpt-4o-mini"

    def test_anthropic(self):
        gen = get_text_generator("anthropic", "claude-3-5-haiku-latest")
        assert isinstance(gen, AnthropicTextGenerator)

    def test_unknown_api_raises(self):
        with pytest.raises(ValueError, match="Unknown API"):
            get_text_generator("carrier-pigeon", "x")

    def test_repr_names_provider_and_model(self):
        assert repr(OpenRouterTextGenerator("m")) == "OpenRouterTextGenerator(provider='openrouter', model='m')"


class TestOpenRouterGenerate:
    """Chat completions through OpenRouter."""

    @pytest.mark.asyncio
    async def test_string_prompt(self, mock_client):
        gen = OpenRouterTextGenerator()
        with patch.object(gen, "_get_client", return_value=mock_client):
            result = await gen.generate("Summarize")

        assert result == "Thread summary."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "Summarize"}]
        assert "max_tokens" not in kwargs

    @pytest.mark.asyncio
    async def test_max_tokens_passed_when_set(self, mock_client):
        gen = OpenRouterTextGenerator(max_tokens=200)
        with patch.object(gen, "_get_client", return_value=mock_client):
            await gen.generate("Summarize", temperature=0.2)

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == 200
        assert kwargs["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_null_content_returns_empty_string(self, mock_client):
        mock_client.chat.completions.create = AsyncMock(return_value=_completion(None))
        gen = OpenRouterTextGenerator()
        with patch.object(gen, "_get_client", return_value=mock_client):
            assert await gen.generate("Summarize") == ""

    @pytest.mark.asyncio
    async def test_no_choices_returns_empty_string(self, mock_client):
        resp = MagicMock()
        resp.choices = []
        mock_client.chat.completions.create = AsyncMock(return_value=resp)
        gen = OpenRouterTextGenerator()
        with patch.object(gen, "_get_client", return_value=mock_client):
            assert await gen.generate("Summarize") == ""

    @pytest.mark.asyncio
    async def test_invalid_message_list_raises(self):
        gen = OpenRouterTextGenerator()
        with pytest.raises(TypeError, match="'role' and 'content'"):
            await gen.generate([{"text": "hi"}])

    @pytest.mark.asyncio
    async def test_connection_error_propagates(self, mock_client):
        from openai import APIConnectionError

        mock_client.chat.completions.create = AsyncMock(
            side_effect=APIConnectionError(request=MagicMock())
        )
        gen = OpenRouterTextGenerator()
        with patch.object(gen, "_get_client", return_value=mock_client):
            with pytest.raises(APIConnectionError):
                await gen.generate("Summarize")


class TestOpenRouterClient:
    """Shared client construction."""

    def test_missing_api_key_raises(self):
        with patch.dict(openrouter._CLIENT_CACHE, {}, clear=True):
            with patch.dict("os.environ", {}, clear=True):
                with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
                    openrouter._get_openrouter_client()

    def test_client_sends_app_title(self):
        with patch.dict(openrouter._CLIENT_CACHE, {}, clear=True):
            with patch.dict("os.environ", {"OPENROUTER_API_KEY": "sk-test"}):
                with patch.object(openrouter, "AsyncOpenAI") as client_cls:
                    openrouter._get_openrouter_client()

        kwargs = client_cls.call_args.kwargs
        assert kwargs["base_url"] == "https://openrouter.ai/api/v1"
        assert kwargs["default_headers"] == {"X-Title": "PagePlex"}
