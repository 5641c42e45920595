"""Token metadata lookups from GeckoTerminal, cached for a day."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from pageplexbot import settings
from pageplexbot.ttl_cache import TTLCache

_LOG = logging.getLogger(__name__)

_GECKO_URL = "https://api.geckoterminal.com/api/v2/networks/{network}/tokens/{address}/info"
_REQUEST_TIMEOUT = 10  # seconds

# Chain id -> GeckoTerminal network slug
NETWORKS: dict[int | str, str] = {
    1: "eth",
    10: "optimism",
    8453: "base",
    42161: "arbitrum",
    "solana": "solana",
}


def token_cache_key(address: str, chain_id: int | str) -> tuple[str, int | str]:
    """Cache key for a token. EVM hex addresses are case-insensitive; others (Solana base58) are not."""
    if isinstance(chain_id, int):
        return address.lower(), chain_id
    return address, chain_id


@dataclass
class TokenMetadata:
    """Descriptive token info shown to users and fed into prompts."""
    description: str = ""
    image_url: str = ""
    websites: list[str] = field(default_factory=list)
    discord: str = ""
    telegram: str = ""
    twitter: str = ""


def parse_token_metadata(payload: Any) -> TokenMetadata | None:
    """Extract TokenMetadata from a GeckoTerminal ``/info`` response body."""
    try:
        attributes = payload["data"]["attributes"]
    except (KeyError, TypeError):
        _LOG.info("No attributes found in token info response")
        return None
    if not isinstance(attributes, dict):
        return None
    return TokenMetadata(
        description=attributes.get("description") or "",
        image_url=attributes.get("image_url") or "",
        websites=list(attributes.get("websites") or []),
        discord=attributes.get("discord_url") or attributes.get("discord") or "",
        telegram=attributes.get("telegram_handle") or attributes.get("telegram") or "",
        twitter=attributes.get("twitter_handle") or attributes.get("twitter") or "",
    )


class TokenMetadataService:
    """Fetches token metadata, caching successful lookups per (address, chain)."""

    def __init__(self, ttl: float | None = None) -> None:
        self.cache: TTLCache[TokenMetadata] = TTLCache(settings.TOKEN_METADATA_TTL if ttl is None else ttl)

    async def get_token_metadata(self, address: str, chain_id: int | str) -> TokenMetadata | None:
        key = token_cache_key(address, chain_id)
        cached = self.cache.get(key)
        if cached is not None:
            _LOG.debug("Returning cached metadata for %s-%s", address, chain_id)
            return cached

        metadata = await self._fetch(address, chain_id)
        if metadata is not None:
            self.cache.set(key, metadata)
        return metadata

    async def _fetch(self, address: str, chain_id: int | str) -> TokenMetadata | None:
        network = NETWORKS.get(chain_id)
        if network is None:
            _LOG.warning("Unsupported chain for token metadata: %s", chain_id)
            return None

        url = _GECKO_URL.format(network=network, address=address)
        try:
            timeout = aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers={"Accept": "application/json"}) as response:
                    if response.status != 200:
                        _LOG.warning("Token metadata request for %s returned HTTP %s", address, response.status)
                        return None
                    payload = await response.json()
        except asyncio.TimeoutError:
            _LOG.warning("Timeout fetching token metadata: %s", url)
            return None
        except aiohttp.ClientError as exc:
            _LOG.warning("Failed to fetch token metadata %s: %s", url, exc)
            return None

        return parse_token_metadata(payload)
