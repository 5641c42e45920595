"""Tests for the Anthropic summarization backend."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pageplexbot.text_generators.anthropic import AnthropicTextGenerator
from pageplexbot.threads import Summarizer


def _response(*texts):
    response = MagicMock()
    blocks = []
    for text in texts:
        block = MagicMock()
        block.text = text
        blocks.append(block)
    response.content = blocks
    return response


@pytest.fixture
def generator():
    return AnthropicTextGenerator(model="claude-3-5-haiku-latest")


@pytest.fixture
def mock_client():
    mock = MagicMock()
    mock.messages = MagicMock()
    return mock


class TestGenerate:
    """Tests for the generate method."""

    @pytest.mark.asyncio
    async def test_string_prompt_sent_as_user_turn(self, generator, mock_client):
        mock_client.messages.create = AsyncMock(return_value=_response("A short summary."))

        with patch.object(generator, "_get_client", return_value=mock_client):
            result = await generator.generate("Summarize this")

        assert result == "A short summary."
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-5-haiku-latest"
        assert kwargs["messages"] == [{"role": "user", "content": "Summarize this"}]
        assert "system" not in kwargs

    @pytest.mark.asyncio
    async def test_system_messages_lifted_to_top_level(self, generator, mock_client):
        mock_client.messages.create = AsyncMock(return_value=_response("ok"))
        messages = [
            {"role": "system", "content": "You write summaries."},
            {"role": "user", "content": "Hello"},
        ]

        with patch.object(generator, "_get_client", return_value=mock_client):
            await generator.generate(messages)

        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "You write summaries."
        assert [m["role"] for m in kwargs["messages"]] == ["user"]

    @pytest.mark.asyncio
    async def test_text_blocks_joined(self, generator, mock_client):
        mock_client.messages.create = AsyncMock(return_value=_response("Part 1 ", "Part 2"))

        with patch.object(generator, "_get_client", return_value=mock_client):
            assert await generator.generate("Hello") == "Part 1 Part 2"

    @pytest.mark.asyncio
    async def test_max_tokens_from_environment(self, generator, mock_client):
        mock_client.messages.create = AsyncMock(return_value=_response("ok"))

        with patch.dict("os.environ", {"ANTHROPIC_MAX_TOKENS": "256"}):
            with patch.object(generator, "_get_client", return_value=mock_client):
                await generator.generate("Hello")

        assert mock_client.messages.create.call_args.kwargs["max_tokens"] == 256

    @pytest.mark.asyncio
    async def test_invalid_prompt_type_raises(self, generator):
        with pytest.raises(TypeError, match="must be either a string or a sequence"):
            await generator.generate(12345)

    @pytest.mark.asyncio
    async def test_empty_response_becomes_summary_fallback(self, generator, mock_client):
        """No text blocks from Claude turns into the fallback summary text."""
        mock_client.messages.create = AsyncMock(return_value=_response())

        with patch.object(generator, "_get_client", return_value=mock_client):
            text = await Summarizer(generator).summarize("user: hi")

        assert text == "No summary available."


class TestErrorHandling:
    """API errors are logged and re-raised."""

    @pytest.mark.asyncio
    async def test_rate_limit_error_propagates(self, generator, mock_client):
        from anthropic import RateLimitError

        mock_client.messages.create = AsyncMock(
            side_effect=RateLimitError("Rate limit exceeded", response=MagicMock(), body=None)
        )

        with patch.object(generator, "_get_client", return_value=mock_client):
            with pytest.raises(RateLimitError):
                await generator.generate("Hello")

    @pytest.mark.asyncio
    async def test_connection_error_propagates(self, generator, mock_client):
        from anthropic import APIConnectionError

        mock_client.messages.create = AsyncMock(
            side_effect=APIConnectionError(message="Connection failed", request=MagicMock())
        )

        with patch.object(generator, "_get_client", return_value=mock_client):
            with pytest.raises(APIConnectionError):
                await generator.generate("Hello")
