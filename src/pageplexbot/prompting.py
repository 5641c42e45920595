"""Reply prompt construction for the bot."""

from __future__ import annotations

import logging
from typing import Optional

from pageplexbot import settings
from pageplexbot.threads import MessageHistoryService

_LOG = logging.getLogger(__name__)

MAX_REPLY_CHARS = 280


async def get_thread_context(history: MessageHistoryService, cast_hash: str) -> str:
    """Related-thread context for a cast, or "" if it cannot be produced.

    Summarization failures are logged and swallowed here so a slow or broken
    provider never blocks a reply.
    """
    try:
        return await history.get_context_from_related_threads(cast_hash)
    except Exception as exc:  # noqa: BLE001
        _LOG.warning("Could not build thread context for %s: %s", cast_hash, exc)
        return ""


async def build_contextual_prompt(
    history: MessageHistoryService,
    user_message: str,
    required_info: str,
    cast_hash: str,
    character: Optional[dict[str, str]] = None,
) -> str:
    """Build the prompt used to generate a reply to ``user_message``."""
    character = character or settings.get_character()
    thread_context = await get_thread_context(history, cast_hash)

    lines = [
        f"Generate a response (max {MAX_REPLY_CHARS} characters) for a user taking into account the following information:",
        f"- The user message is: {user_message}",
        f"- You are a helpful bot named {character['name']}",
        f"- Your bio is: {character['bio']}",
        f"- Your lore is: {character['lore']}",
        f"- Your personality is: {character['personality']}",
        f"- The response must include the following information: {required_info}",
    ]
    if thread_context:
        lines.extend(["", thread_context])
    return "\n".join(lines)
