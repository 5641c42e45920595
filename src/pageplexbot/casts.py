"""Conversion of Farcaster casts (webhook payloads or API lookups) into messages."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pageplexbot.threads.models import Message, MessageValidationError

_LOG = logging.getLogger(__name__)


def _unwrap_cast(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the cast object from a webhook event, an API lookup, or a bare cast."""
    if isinstance(payload.get("data"), dict):
        return payload["data"]
    if isinstance(payload.get("cast"), dict):
        return payload["cast"]
    return payload


def parse_cast_timestamp(value: Any) -> int:
    """Convert an ISO-8601 cast timestamp (or epoch seconds) to epoch milliseconds."""
    if isinstance(value, bool):
        raise MessageValidationError(f"invalid cast timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value * 1000)
    if not isinstance(value, str) or not value:
        raise MessageValidationError(f"invalid cast timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as exc:
        raise MessageValidationError(f"invalid cast timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def message_from_cast(payload: dict[str, Any], bot_fid: int | None = None) -> Message:
    """Build a Message from a cast.

    Args:
        payload: A ``cast.created`` webhook event, a ``{"cast": ...}`` lookup
            response, or the cast object itself.
        bot_fid: The bot's own Farcaster id; casts it authored get the
            ``assistant`` role.

    Raises:
        MessageValidationError: if the cast lacks a hash, text or timestamp.
    """
    if not isinstance(payload, dict):
        raise MessageValidationError("cast payload must be a dict")
    cast = _unwrap_cast(payload)

    cast_hash = cast.get("hash")
    if not cast_hash:
        raise MessageValidationError("cast is missing its hash")
    if "text" not in cast or "timestamp" not in cast:
        raise MessageValidationError(f"cast {cast_hash} is missing text or timestamp")

    author_fid = (cast.get("author") or {}).get("fid")
    role = "assistant" if bot_fid is not None and author_fid == bot_fid else "user"

    message = Message(
        id=cast_hash,
        parent_id=cast.get("parent_hash") or None,
        timestamp=parse_cast_timestamp(cast["timestamp"]),
        role=role,
        content=cast.get("text") or "",
    )
    _LOG.debug("Converted cast %s (parent=%s, role=%s)", message.id, message.parent_id, role)
    return message


def reply_message(cast_hash: str, parent_hash: str, text: str, timestamp: int) -> Message:
    """Message for a reply the bot just published under ``parent_hash``."""
    return Message(id=cast_hash, parent_id=parent_hash, timestamp=timestamp, role="assistant", content=text)
