"""Related-thread lookup and prompt context assembly."""

from __future__ import annotations

import logging

from pageplexbot import settings

from .models import Message
from .registry import ThreadRegistry
from .summary_cache import SummaryCache

_LOG = logging.getLogger(__name__)

CONTEXT_HEADER = "Related discussions:"


def _references(messages: tuple[Message, ...], message_id: str) -> bool:
    return any(
        msg.id == message_id or msg.parent_id == message_id or message_id in msg.content
        for msg in messages
    )


def _link_ids(messages: tuple[Message, ...]) -> set[str]:
    ids = {msg.id for msg in messages}
    ids.update(msg.parent_id for msg in messages if msg.parent_id)
    return ids


class ContextAggregator:
    """Finds threads related to a message and joins their summaries."""

    def __init__(self, registry: ThreadRegistry, summaries: SummaryCache) -> None:
        self.registry = registry
        self.summaries = summaries

    def get_related_threads(self, message_id: str) -> list[str]:
        """Root ids of threads related to ``message_id``, in registry order.

        A thread matches directly when one of its messages has that id,
        replies to it, or mentions it in its content. Threads sharing a
        message id or parent link with a direct match are added once; the
        expansion is not repeated from the added threads.
        """
        if not message_id:
            return []

        items = self.registry.items()
        direct = {root for root, messages in items if _references(messages, message_id)}
        if not direct:
            return []

        seed_links: set[str] = set()
        for root, messages in items:
            if root in direct:
                seed_links |= _link_ids(messages)

        related = [
            root
            for root, messages in items
            if root in direct or not seed_links.isdisjoint(_link_ids(messages))
        ]
        _LOG.debug(
            "Related threads for %s: %d direct, %d total", message_id, len(direct), len(related)
        )
        return related

    async def get_context_from_related_threads(
        self,
        message_id: str,
        max_threads: int | None = None,
    ) -> str:
        """Build a "Related discussions:" block from related thread summaries.

        Threads are taken in registry order (not by relevance) and summarized
        one at a time. Summarization errors propagate to the caller.

        Returns:
            "" when no related thread produced a summary.
        """
        if max_threads is None:
            max_threads = settings.RELATED_THREADS_MAX

        lines: list[str] = []
        for root_id in self.get_related_threads(message_id)[:max_threads]:
            summary = await self.summaries.get_thread_summary(root_id)
            if summary:
                lines.append(f"Thread {root_id[:8]}: {summary.text}")

        if not lines:
            return ""
        return "\n".join([CONTEXT_HEADER, *lines])
