"""Lazily computed, invalidation-aware summaries per thread.

A summary is computed outside the registry lock. When the provider returns,
the result is cached only if the thread has not changed in the meantime;
otherwise it is handed to the caller but left uncached so the next lookup
recomputes it from the newer messages.
"""

from __future__ import annotations

import asyncio
import logging

from pageplexbot import settings

from .models import Summary
from .registry import ThreadRegistry
from .summarizer import Summarizer, format_transcript

_LOG = logging.getLogger(__name__)


class SummaryCache:
    """Summary lookups backed by a ThreadRegistry and a Summarizer."""

    def __init__(
        self,
        registry: ThreadRegistry,
        summarizer: Summarizer,
        timeout: float | None = None,
    ) -> None:
        self.registry = registry
        self.summarizer = summarizer
        self.timeout = settings.SUMMARY_TIMEOUT if timeout is None else timeout

    async def get_thread_summary(self, root_id: str) -> Summary | None:
        """Return the thread's summary, computing it if missing or stale.

        Returns:
            None if the thread is unknown.

        Raises:
            Whatever the summarization provider raises, and
            asyncio.TimeoutError if it takes longer than ``timeout``.
        """
        snapshot = self.registry.snapshot(root_id)
        if snapshot is None:
            return None
        if snapshot.summary is not None:
            _LOG.debug("Summary cache hit for thread %s", root_id)
            return snapshot.summary

        _LOG.info("Summarizing thread %s (%d messages)", root_id, len(snapshot.messages))
        text = await asyncio.wait_for(
            self.summarizer.summarize(format_transcript(snapshot.messages)),
            timeout=self.timeout,
        )
        summary = Summary(
            text=text,
            computed_at=self.registry.now(),
            message_count=len(snapshot.messages),
        )
        if not self.registry.install_summary(snapshot, summary):
            _LOG.debug("Thread %s changed during summarization; not caching", root_id)
        return summary
