"""In-memory thread registry: message store, thread resolver and retention sweeper.

Messages arrive with an optional parent id, possibly before their parent is
known. The registry files each message into the thread holding its parent,
merges threads when a late parent links them, keeps every thread keyed by its
earliest known message, and drops messages older than the retention window.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pageplexbot import settings

from .models import Message, Summary, Thread, now_ms

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThreadSnapshot:
    """Consistent copy of a thread taken under the registry lock."""

    root_id: str
    messages: tuple[Message, ...]
    version: int
    summary: Summary | None  # only set when still valid
    thread: Thread


class ThreadRegistry:
    """Owns every thread plus the indexes used to resolve and merge them.

    All mutation and every read snapshot happens under a single re-entrant
    lock. The lock is never held while awaiting.
    """

    def __init__(
        self,
        retention_ms: int | None = None,
        clock: Callable[[], int] = now_ms,
        drop_empty: bool | None = None,
    ) -> None:
        self.retention_ms = settings.RETENTION_WINDOW_MS if retention_ms is None else retention_ms
        self.drop_empty = settings.THREAD_DROP_EMPTY if drop_empty is None else drop_empty
        self._clock = clock
        self._lock = threading.RLock()
        self._threads: dict[str, Thread] = {}
        self._owner: dict[str, str] = {}  # message id -> root id
        self._children: dict[str, set[str]] = {}  # parent id -> child message ids

    def now(self) -> int:
        return self._clock()

    # ==================== Writes ====================

    def add_message(self, message: Message | Mapping[str, Any]) -> None:
        """File a message into its thread, merging and re-keying as needed.

        Raises:
            MessageValidationError: if ``message`` is malformed. Nothing is
                changed in that case.
        """
        if not isinstance(message, Message):
            message = Message.from_dict(message)

        with self._lock:
            if message.id in self._owner:
                _LOG.debug("Ignoring duplicate message %s", message.id)
                return

            now = self._clock()
            parent_key = self._owner.get(message.parent_id) if message.parent_id else None
            if parent_key is None:
                thread = self._threads.get(message.id)
                if thread is None:
                    thread = Thread(root_id=message.id, last_updated=now)
                    self._threads[message.id] = thread
            else:
                thread = self._threads[parent_key]
                # An emptied thread still keyed by this id would shadow its new home
                stale = self._threads.get(message.id)
                if stale is not None and stale is not thread and not stale.messages:
                    del self._threads[message.id]
            self._file(thread, message)

            # Threads started by replies that arrived before this message
            for child_id in sorted(self._children.get(message.id, ())):
                child_key = self._owner.get(child_id)
                if child_key is not None and child_key != thread.root_id:
                    self._absorb(thread, child_key)

            self._prune(thread, now)
            self._rekey(thread)
            self._touch(thread, now)
            self._discard_if_empty(thread)

    def sweep(self, now: int | None = None) -> int:
        """Prune expired messages from every thread.

        Returns:
            Number of messages removed.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            removed = 0
            for thread in list(self._threads.values()):
                if self._threads.get(thread.root_id) is not thread:
                    continue
                count = self._prune(thread, now)
                if count:
                    removed += count
                    self._rekey(thread)
                    self._touch(thread, now)
                self._discard_if_empty(thread)
            if removed:
                _LOG.info("Retention sweep removed %d message(s)", removed)
            return removed

    def install_summary(self, snapshot: ThreadSnapshot, summary: Summary) -> bool:
        """Cache ``summary`` unless the thread changed since ``snapshot``."""
        with self._lock:
            thread = snapshot.thread
            if self._threads.get(thread.root_id) is not thread or thread.version != snapshot.version:
                return False
            thread.cached_summary = summary
            return True

    # ==================== Reads ====================

    def get_thread(self, root_id: str) -> list[Message]:
        """Return the thread's messages ordered by timestamp ([] if unknown)."""
        with self._lock:
            thread = self._threads.get(root_id)
            return list(thread.messages) if thread else []

    def snapshot(self, root_id: str) -> ThreadSnapshot | None:
        with self._lock:
            thread = self._threads.get(root_id)
            if thread is None:
                return None
            return ThreadSnapshot(
                root_id=thread.root_id,
                messages=tuple(thread.messages),
                version=thread.version,
                summary=thread.cached_summary if thread.summary_is_valid() else None,
                thread=thread,
            )

    def items(self) -> list[tuple[str, tuple[Message, ...]]]:
        """(root id, messages) for every thread, in registry iteration order."""
        with self._lock:
            return [(key, tuple(thread.messages)) for key, thread in self._threads.items()]

    def root_for(self, message_id: str) -> str | None:
        with self._lock:
            return self._owner.get(message_id)

    def thread_ids(self) -> list[str]:
        with self._lock:
            return list(self._threads)

    def __len__(self) -> int:
        with self._lock:
            return len(self._threads)

    def __contains__(self, root_id: object) -> bool:
        with self._lock:
            return root_id in self._threads

    # ==================== Internals (lock held) ====================

    def _file(self, thread: Thread, message: Message) -> None:
        thread.messages.append(message)
        self._owner[message.id] = thread.root_id
        if message.parent_id:
            self._children.setdefault(message.parent_id, set()).add(message.id)

    def _absorb(self, target: Thread, other_key: str) -> None:
        """Move every message of thread ``other_key`` into ``target``."""
        other = self._threads.pop(other_key)
        for message in other.messages:
            target.messages.append(message)
            self._owner[message.id] = target.root_id
        _LOG.info("Merged thread %s (%d messages) into %s", other_key, len(other.messages), target.root_id)

    def _prune(self, thread: Thread, now: int) -> int:
        kept: list[Message] = []
        expired: list[Message] = []
        for message in thread.messages:
            if now - message.timestamp < self.retention_ms:
                kept.append(message)
            else:
                expired.append(message)
        if not expired:
            return 0
        thread.messages = kept
        for message in expired:
            self._owner.pop(message.id, None)
            if message.parent_id:
                siblings = self._children.get(message.parent_id)
                if siblings is not None:
                    siblings.discard(message.id)
                    if not siblings:
                        del self._children[message.parent_id]
        _LOG.debug("Pruned %d expired message(s) from thread %s", len(expired), thread.root_id)
        return len(expired)

    def _rekey(self, thread: Thread) -> None:
        """Sort by timestamp and keep the registry key on the earliest message."""
        thread.messages.sort(key=lambda m: m.timestamp)
        while thread.messages and thread.messages[0].id != thread.root_id:
            old_key = thread.root_id
            new_key = thread.messages[0].id
            del self._threads[old_key]
            # Only an emptied thread can still hold a key whose message it lost
            occupant = self._threads.pop(new_key, None)
            thread.root_id = new_key
            self._threads[new_key] = thread
            if occupant is not None:
                thread.messages.extend(occupant.messages)
                thread.messages.sort(key=lambda m: m.timestamp)
            for message in thread.messages:
                self._owner[message.id] = thread.root_id
            _LOG.info("Re-keyed thread %s -> %s", old_key, thread.root_id)

    def _touch(self, thread: Thread, now: int) -> None:
        thread.cached_summary = None
        thread.version += 1
        thread.last_updated = now

    def _discard_if_empty(self, thread: Thread) -> None:
        if self.drop_empty and not thread.messages and self._threads.get(thread.root_id) is thread:
            del self._threads[thread.root_id]
            _LOG.debug("Dropped empty thread %s", thread.root_id)
