"""Data types for the thread history cache."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "assistant"]
ROLES: tuple[str, ...] = ("user", "assistant")


class MessageValidationError(ValueError):
    """Raised when a message is missing required fields or has the wrong types."""


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """A single conversation message (a cast or a bot reply).

    ``parent_id`` is the id of the message this one replies to, if any.
    ``timestamp`` is in milliseconds since the epoch.
    """

    id: str
    parent_id: str | None
    timestamp: int
    role: Role
    content: str

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise MessageValidationError("message id must be a non-empty string")
        if self.parent_id == "":
            object.__setattr__(self, "parent_id", None)
        if self.parent_id is not None and not isinstance(self.parent_id, str):
            raise MessageValidationError(f"parent_id of {self.id} must be a string or None")
        # bool is an int subclass; reject it explicitly
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise MessageValidationError(f"timestamp of {self.id} must be an integer (ms epoch)")
        if self.role not in ROLES:
            raise MessageValidationError(f"role of {self.id} must be one of {ROLES}, got {self.role!r}")
        if not isinstance(self.content, str):
            raise MessageValidationError(f"content of {self.id} must be a string")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        """Build a message from a mapping, accepting snake_case or camelCase keys.

        Raises:
            MessageValidationError: if a required key is missing or invalid.
        """
        if not isinstance(data, Mapping):
            raise MessageValidationError("message must be a mapping")
        missing = [key for key in ("id", "timestamp", "role", "content") if key not in data]
        if missing:
            raise MessageValidationError(f"message is missing required fields: {', '.join(missing)}")
        parent_id = data.get("parent_id", data.get("parentId"))
        return cls(
            id=data["id"],
            parent_id=parent_id,
            timestamp=data["timestamp"],
            role=data["role"],
            content=data["content"],
        )


@dataclass(frozen=True)
class Summary:
    """A cached natural-language summary of a thread."""

    text: str
    computed_at: int
    message_count: int


@dataclass
class Thread:
    """Messages believed to belong to one conversation.

    ``root_id`` is the id of the earliest message currently known, which is
    not necessarily the true conversational root.
    """

    root_id: str
    messages: list[Message] = field(default_factory=list)
    last_updated: int = 0
    cached_summary: Summary | None = None
    version: int = 0

    def summary_is_valid(self) -> bool:
        summary = self.cached_summary
        return summary is not None and summary.computed_at >= self.last_updated
