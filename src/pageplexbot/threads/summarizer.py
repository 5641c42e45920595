"""Summary generation for conversation threads."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from .models import Message

_LOG = logging.getLogger(__name__)

NO_SUMMARY_TEXT = "No summary available."


class LLMProtocol(Protocol):
    """Protocol for LLM interface."""

    async def generate(self, prompt: str) -> str:
        """Generate text from a prompt."""
        ...


def format_transcript(messages: Sequence[Message]) -> str:
    """Render messages as ``role: content`` lines, oldest first."""
    return "\n".join(f"{msg.role}: {msg.content}" for msg in messages)


def build_thread_prompt(transcript: str) -> str:
    """
    Build the summarization prompt for a thread transcript.

    Args:
        transcript: Output of format_transcript()

    Returns:
        Formatted prompt for LLM
    """
    return f"""Please summarize the following conversation thread concisely (max 100 words).
Focus on the key points and any decisions or actions taken.

Thread:
{transcript}"""


class Summarizer:
    """Turns a thread transcript into a short summary using an LLM."""

    def __init__(self, llm: LLMProtocol):
        """
        Initialize summarizer.

        Args:
            llm: LLM instance that implements generate() method
        """
        self.llm = llm

    async def summarize(self, transcript: str) -> str:
        """
        Summarize a transcript.

        A blank transcript (an empty or fully pruned thread) short-circuits to
        NO_SUMMARY_TEXT without calling the provider at all. An empty provider
        response also yields NO_SUMMARY_TEXT. Provider errors propagate
        unchanged.
        """
        if not transcript.strip():
            return NO_SUMMARY_TEXT

        text = await self.llm.generate(build_thread_prompt(transcript))
        text = (text or "").strip()
        if not text:
            _LOG.warning("Summarization returned no content; using fallback text")
            return NO_SUMMARY_TEXT
        return text

    async def summarize_messages(self, messages: Sequence[Message]) -> str:
        return await self.summarize(format_transcript(messages))
