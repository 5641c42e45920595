"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from pageplexbot.threads import Message, MessageHistoryService

DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 10_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class DummyLLM:
    """Dummy LLM that records prompts and returns predictable summaries."""

    def __init__(self, reply: str | None = None):
        self.call_count = 0
        self.prompts: list[str] = []
        self.reply = reply

    async def generate(self, prompt: str) -> str:
        self.call_count += 1
        self.prompts.append(prompt)
        if self.reply is not None:
            return self.reply
        return f"Generated summary #{self.call_count}"


def make_message(
    msg_id: str,
    parent_id: str | None = None,
    timestamp: int = 1000,
    role: str = "user",
    content: str | None = None,
) -> Message:
    return Message(
        id=msg_id,
        parent_id=parent_id,
        timestamp=timestamp,
        role=role,
        content=content if content is not None else f"message {msg_id}",
    )


@pytest.fixture
def clock():
    """Clock at 10s after the epoch, so small timestamps are well inside retention."""
    return FakeClock()


@pytest.fixture
def dummy_llm():
    return DummyLLM()


@pytest.fixture
def history(dummy_llm, clock):
    """A MessageHistoryService with a 7-day window and a fake clock."""
    return MessageHistoryService(dummy_llm, retention_ms=7 * DAY_MS, clock=clock, drop_empty=False)
