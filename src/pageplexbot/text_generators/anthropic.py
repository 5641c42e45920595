"""Text-generation backend that calls Anthropic's Claude models."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Sequence, TypedDict, Union

from anthropic import APIConnectionError, APIError, AsyncAnthropic, RateLimitError

from .base import TextGeneratorAPI

_log = logging.getLogger(__name__)

# A single shared client is reused across all requests
_CLIENT_CACHE: Dict[str, AsyncAnthropic] = {}


class _Message(TypedDict):
    role: str
    content: str


class AnthropicTextGenerator(TextGeneratorAPI):
    """Generate text using Anthropic's Claude models.

    Relies on an ``ANTHROPIC_API_KEY`` environment variable. ``prompt`` may be
    a single string (sent as one user turn) or a list of role/content dicts;
    ``system`` entries are lifted into the top-level ``system`` parameter as
    the Messages API requires. Output length is capped by
    ``ANTHROPIC_MAX_TOKENS`` (1024 by default, plenty for thread summaries).
    """

    provider = "anthropic"

    def __init__(self, model: str = "claude-3-5-haiku-latest") -> None:
        super().__init__(model)

    def _get_client(self) -> AsyncAnthropic:
        """Return (and cache) a shared ``AsyncAnthropic`` client instance."""
        if "default" not in _CLIENT_CACHE:
            _CLIENT_CACHE["default"] = AsyncAnthropic()  # picks up API key
        return _CLIENT_CACHE["default"]

    async def generate(
        self,
        prompt: Union[str, Sequence[_Message]],
        temperature: float = 1.0,
    ) -> str:
        """Return Claude's reply for *prompt* as a plain string."""
        if isinstance(prompt, str):
            messages: List[_Message] = [{"role": "user", "content": prompt}]
        elif isinstance(prompt, Sequence):
            if not all(isinstance(m, dict) and "role" in m and "content" in m for m in prompt):
                raise TypeError("Each message must be a dict with 'role' and 'content' keys")
            messages = list(prompt)  # type: ignore[arg-type]
        else:
            raise TypeError("prompt must be either a string or a sequence of message dicts")

        system_parts: List[str] = []
        turns: List[Dict[str, Any]] = []
        for m in messages:
            role = (m.get("role") or "").lower()
            if role == "system":
                system_parts.append(str(m.get("content") or ""))
            else:
                turns.append({"role": role, "content": m.get("content")})
        system_text = "\n\n".join(p for p in system_parts if p).strip() or None

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": int(os.getenv("ANTHROPIC_MAX_TOKENS", "1024")),
            "messages": turns,
            "temperature": temperature,
        }
        if system_text:
            kwargs["system"] = system_text

        client = self._get_client()
        try:
            response = await client.messages.create(**kwargs)
        except RateLimitError as e:
            _log.warning("Anthropic rate limit hit for model %s: %s", self.model, e)
            raise
        except APIConnectionError as e:
            _log.error("Anthropic connection error for model %s: %s", self.model, e)
            raise
        except APIError as e:
            _log.error("Anthropic API error for model %s: %s", self.model, e)
            raise

        # SDK returns a list of content blocks; aggregate text blocks.
        parts: List[str] = []
        for block in getattr(response, "content", []) or []:
            text = getattr(block, "text", None)
            if text:
                parts.append(text)
        return "".join(parts).strip()
