"""Token market data (holders, DEX trades) from Bitquery, cached for six hours."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import aiohttp

from pageplexbot import settings
from pageplexbot.metadata_service import NETWORKS, token_cache_key
from pageplexbot.ttl_cache import TTLCache

_LOG = logging.getLogger(__name__)

_BITQUERY_URL = "https://streaming.bitquery.io/graphql"
_REQUEST_TIMEOUT = 20  # seconds

_HOLDERS_QUERY = """
{
  EVM(dataset: archive, network: %(network)s) {
    TokenHolders(
      date: "%(date)s"
      tokenSmartContract: "%(address)s"
      where: {Balance: {Amount: {gt: "0"}}}
    ) {
      uniq(of: Holder_Address)
    }
  }
}"""


@dataclass
class TokenMarketMetadata:
    """Market figures for a token; all zero when nothing could be fetched."""
    price: float = 0
    holders: str = "0"
    total_trade_volume: str = "0"
    total_trades: str = "0"
    total_buy_volume: str = "0"
    total_sell_volume: str = "0"
    total_buys: str = "0"
    total_sells: str = "0"


# Bitquery DEXTradeByTokens field -> TokenMarketMetadata attribute
_DEX_FIELDS = {
    "price": "price",
    "total_traded_volume": "total_trade_volume",
    "total_trades": "total_trades",
    "total_buy_volume": "total_buy_volume",
    "total_sell_volume": "total_sell_volume",
    "totalbuys": "total_buys",
    "totalsells": "total_sells",
}


def parse_market_data(payload: Any) -> TokenMarketMetadata:
    """Extract whatever market figures a Bitquery response carries.

    Missing sections leave their fields at zero.
    """
    market = TokenMarketMetadata()
    try:
        evm = payload["data"]["EVM"]
    except (KeyError, TypeError):
        _LOG.warning("No EVM data returned from Bitquery")
        return market
    if not isinstance(evm, dict):
        return market

    holders = evm.get("TokenHolders") or []
    if holders and isinstance(holders[0], dict) and holders[0].get("uniq"):
        market.holders = str(holders[0]["uniq"])

    trades = evm.get("DEXTradeByTokens") or []
    if trades and isinstance(trades[0], dict):
        for source, attr in _DEX_FIELDS.items():
            value = trades[0].get(source)
            if value is not None:
                setattr(market, attr, value)
    return market


class MarketDataService:
    """Market data lookups cached per (address, chain).

    Failed fetches are cached as zeroed data for the full TTL so a failing
    query is not retried on every mention.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self.cache: TTLCache[TokenMarketMetadata] = TTLCache(settings.MARKET_DATA_TTL if ttl is None else ttl)

    async def get_market_data(self, address: str, chain_id: int | str) -> TokenMarketMetadata:
        key = token_cache_key(address, chain_id)
        cached = self.cache.get(key)
        if cached is not None:
            _LOG.debug("Returning cached market data for %s-%s", address, chain_id)
            return cached

        market = await self._fetch(address, chain_id)
        self.cache.set(key, market)
        return market

    async def _fetch(self, address: str, chain_id: int | str) -> TokenMarketMetadata:
        network = NETWORKS.get(chain_id)
        # TODO: query Bitquery's Solana dataset instead of returning zeroes
        if network is None or network == "solana":
            _LOG.info("No market data source for chain %s", chain_id)
            return TokenMarketMetadata()

        query = _HOLDERS_QUERY % {
            "network": network,
            "date": datetime.now(timezone.utc).strftime("%Y-%m-%d"),
            "address": address,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": os.getenv("BITQUERY_API_KEY", ""),
        }

        _LOG.info("Fetching fresh market data for %s-%s", address, chain_id)
        try:
            timeout = aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(_BITQUERY_URL, json={"query": query}, headers=headers) as response:
                    if response.status != 200:
                        _LOG.warning("Bitquery returned HTTP %s for %s", response.status, address)
                        return TokenMarketMetadata()
                    payload = await response.json()
        except asyncio.TimeoutError:
            _LOG.warning("Timeout fetching market data for %s", address)
            return TokenMarketMetadata()
        except aiohttp.ClientError as exc:
            _LOG.warning("Failed to fetch market data for %s: %s", address, exc)
            return TokenMarketMetadata()

        return parse_market_data(payload)
