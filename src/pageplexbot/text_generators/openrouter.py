# text_generators/openrouter.py
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import TypedDict, Union

from openai import APIConnectionError, APIError, AsyncOpenAI, RateLimitError

from pageplexbot import settings

from .base import TextGeneratorAPI

_CLIENT_CACHE: dict[str, AsyncOpenAI] = {}
_LOG = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class _Message(TypedDict):
    role: str
    content: str


def _get_openrouter_client() -> AsyncOpenAI:
    """Get or create the shared OpenRouter client."""
    if "openrouter" not in _CLIENT_CACHE:
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY environment variable is required for OpenRouter")
        _CLIENT_CACHE["openrouter"] = AsyncOpenAI(
            api_key=api_key,
            base_url=OPENROUTER_BASE_URL,
            default_headers={"X-Title": settings.OPENROUTER_APP_TITLE},
        )
    return _CLIENT_CACHE["openrouter"]


class OpenRouterTextGenerator(TextGeneratorAPI):
    """Chat-completions backend for models served through OpenRouter.

    Uses OpenRouter's OpenAI-compatible API and identifies the app with the
    ``X-Title`` header. Requires OPENROUTER_API_KEY in the environment.
    """

    provider = "openrouter"

    def __init__(self, model: str = "openai/gpt-4o-mini", max_tokens: int | None = None) -> None:
        super().__init__(model)
        self.max_tokens = max_tokens

    def _get_client(self) -> AsyncOpenAI:
        return _get_openrouter_client()

    async def generate(
        self,
        prompt: Union[str, Sequence[_Message]],
        *,
        temperature: float = 1.0,
    ) -> str:
        """Return the first choice's text ("" when the model sent nothing)."""
        if isinstance(prompt, str):
            messages: list[_Message] = [{"role": "user", "content": prompt}]
        elif isinstance(prompt, Sequence):
            if not all(isinstance(m, dict) and "role" in m and "content" in m for m in prompt):
                raise TypeError("Each message must be a dict with 'role' and 'content' keys")
            messages = list(prompt)  # type: ignore[arg-type]
        else:
            raise TypeError("prompt must be a string or a sequence of message dicts")

        client = self._get_client()

        _LOG.debug("OpenRouter: generating with model=%s, messages=%d", self.model, len(messages))

        kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if self.max_tokens:
            kwargs["max_tokens"] = self.max_tokens

        try:
            resp = await client.chat.completions.create(**kwargs)
        except RateLimitError as e:
            _LOG.warning("OpenRouter rate limit hit for model %s: %s", self.model, e)
            raise
        except APIConnectionError as e:
            _LOG.error("OpenRouter connection error for model %s: %s", self.model, e)
            raise
        except APIError as e:
            _LOG.error("OpenRouter API error for model %s (status %s): %s", self.model, getattr(e, 'status_code', 'unknown'), e)
            raise

        if not resp.choices:
            _LOG.warning("OpenRouter returned no choices for model %s", self.model)
            return ""

        choice = resp.choices[0]
        content = choice.message.content if choice.message else None

        _LOG.info("OpenRouter result: model=%s, finish_reason=%s, content_len=%d",
                  self.model, getattr(choice, 'finish_reason', None), len(content) if content else 0)

        return (content or "").strip()
