"""Centralized settings for the bot's conversation history and prompts.

Non-secret, stable values have defaults here and may be overridden from the
environment. Secrets (API keys) must remain in .env.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

_LOG = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# --------------------- Thread history ---------------------

THREAD_RETENTION_DAYS: int = int(os.getenv("THREAD_RETENTION_DAYS", "7"))
RETENTION_WINDOW_MS: int = THREAD_RETENTION_DAYS * 24 * 60 * 60 * 1000

# Delete threads whose messages have all aged out (kept by default)
THREAD_DROP_EMPTY: bool = _env_flag("THREAD_DROP_EMPTY")

RELATED_THREADS_MAX: int = max(1, int(os.getenv("RELATED_THREADS_MAX", "3")))


# --------------------- Summarization provider ---------------------

SUMMARY_API: str = os.getenv("SUMMARY_API", "openrouter").strip().lower() or "openrouter"
SUMMARY_MODEL: str = os.getenv("SUMMARY_MODEL", "openai/gpt-4o-mini").strip() or "openai/gpt-4o-mini"
SUMMARY_TIMEOUT: float = float(os.getenv("SUMMARY_TIMEOUT", "30"))

OPENROUTER_APP_TITLE: str = os.getenv("OPENROUTER_APP_TITLE", "PagePlex")


# --------------------- Token metadata and market data ---------------------

TOKEN_METADATA_TTL: int = int(os.getenv("TOKEN_METADATA_TTL", str(24 * 60 * 60)))

# Failed lookups are cached too, so a broken query does not burn API credits
MARKET_DATA_TTL: int = int(os.getenv("MARKET_DATA_TTL", str(6 * 60 * 60)))


# --------------------- Bot character ---------------------

_FALLBACK_CHARACTER: dict[str, str] = {
    "name": "PagePlex",
    "bio": "A bot that spins up community sites for tokens people mention.",
    "lore": "Lives in the replies and keeps track of who asked for what.",
    "personality": "Upbeat, concise, and a little nerdy about onchain projects.",
}

_CHARACTER_CACHE: Optional[dict[str, str]] = None
_CHARACTER_MTIME: Optional[float] = None
_CHARACTER_PATH: Optional[Path] = None


def _project_root() -> Path:
    """Return the repository root (settings.py lives at src/pageplexbot/settings.py)."""
    return Path(__file__).resolve().parents[2]


def _candidate_character_paths() -> list[Path]:
    """Return possible paths for the character file.

    Priority order:
    1) CHARACTER_FILE (as-is); if relative, also try as repo-root-relative.
    2) config/character.json (repo-root-relative).
    """
    env_val = os.getenv("CHARACTER_FILE", "").strip()
    candidates: list[Path] = []
    if env_val:
        p = Path(env_val).expanduser()
        candidates.append(p)
        if not p.is_absolute():
            candidates.append(_project_root() / p)
    candidates.append(_project_root() / "config" / "character.json")
    return candidates


def _normalize_character(data: Any) -> dict[str, str]:
    character = dict(_FALLBACK_CHARACTER)
    if isinstance(data, dict):
        for key in character:
            value = data.get(key)
            if isinstance(value, list):
                value = " ".join(str(v) for v in value)
            if value:
                character[key] = str(value)
    return character


def get_character() -> dict[str, str]:
    """Load the bot persona (name, bio, lore, personality).

    Uses a simple mtime cache to avoid re-reading unchanged files and falls
    back to the built-in persona when no file is readable.
    """
    global _CHARACTER_CACHE, _CHARACTER_MTIME, _CHARACTER_PATH  # noqa: PLW0603

    for path in _candidate_character_paths():
        try:
            if not (path.exists() and path.is_file()):
                continue
            mtime = path.stat().st_mtime
            if _CHARACTER_PATH == path and _CHARACTER_CACHE is not None and _CHARACTER_MTIME == mtime:
                return _CHARACTER_CACHE
            character = _normalize_character(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            _LOG.warning("Could not read character file %s: %s", path, exc)
            continue
        _CHARACTER_CACHE = character
        _CHARACTER_MTIME = mtime
        _CHARACTER_PATH = path
        return character
    return dict(_FALLBACK_CHARACTER)
