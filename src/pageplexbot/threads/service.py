"""Message history service used by the reply layer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pageplexbot import settings
from pageplexbot.text_generators import get_text_generator

from .aggregator import ContextAggregator
from .models import Message, Summary, now_ms
from .registry import ThreadRegistry
from .summarizer import LLMProtocol, Summarizer
from .summary_cache import SummaryCache

_LOG = logging.getLogger(__name__)


class MessageHistoryService:
    """One independent thread history: registry, summary cache and aggregator.

    Args:
        llm: Summarization backend implementing ``generate(prompt)``.
        retention_ms: Retention window; defaults to settings.RETENTION_WINDOW_MS.
        clock: Millisecond clock, injectable for tests.
        drop_empty: Delete threads emptied by retention.
        summary_timeout: Seconds allowed per summarization call.
    """

    def __init__(
        self,
        llm: LLMProtocol,
        *,
        retention_ms: int | None = None,
        clock: Callable[[], int] = now_ms,
        drop_empty: bool | None = None,
        summary_timeout: float | None = None,
    ) -> None:
        self.registry = ThreadRegistry(retention_ms=retention_ms, clock=clock, drop_empty=drop_empty)
        self.summaries = SummaryCache(self.registry, Summarizer(llm), timeout=summary_timeout)
        self.aggregator = ContextAggregator(self.registry, self.summaries)

    def add_message(self, message: Message | Mapping[str, Any]) -> None:
        self.registry.add_message(message)

    def get_thread(self, root_id: str) -> list[Message]:
        return self.registry.get_thread(root_id)

    def sweep(self) -> int:
        return self.registry.sweep()

    def get_related_threads(self, message_id: str) -> list[str]:
        return self.aggregator.get_related_threads(message_id)

    async def get_thread_summary(self, root_id: str) -> Summary | None:
        return await self.summaries.get_thread_summary(root_id)

    async def get_context_from_related_threads(self, message_id: str, max_threads: int | None = None) -> str:
        return await self.aggregator.get_context_from_related_threads(message_id, max_threads)


def create_history_service(api: str | None = None, model: str | None = None) -> MessageHistoryService:
    """Build a service whose summaries come from the configured text generator."""
    api = api or settings.SUMMARY_API
    model = model or settings.SUMMARY_MODEL
    _LOG.info("Creating message history service (summaries via %s/%s)", api, model)
    return MessageHistoryService(get_text_generator(api, model))
