"""
Price Oracle
Live price with a bounded wait, falling back to the last cached quote
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional

from predictarena.domain.errors import PriceUnavailableError
from predictarena.infrastructure.cache.redis_cache import RedisCache
from predictarena.infrastructure.market_data.provider_chain import ChainedPriceProvider
from predictarena.infrastructure.market_data.quote_store import QuoteStore
from predictarena.infrastructure.market_data.types import PriceProvider, PriceQuote, Quote
from predictarena.utils.time import now_utc

logger = logging.getLogger(__name__)

CACHE_SOURCE = "cache"


class PriceOracle:
    """
    Answers "what is the current price of asset X?"

    Live quotes win; a successful live quote refreshes the cache so the
    next outage can fall back to it.
    """

    def __init__(
        self,
        provider: PriceProvider,
        quote_store: Optional[QuoteStore] = None,
        timeout_seconds: float = 10.0,
        redis_cache: Optional[RedisCache] = None,
        redis_ttl_seconds: Optional[int] = None,
    ):
        self.provider = provider
        self.quote_store = quote_store or QuoteStore()
        self.timeout_seconds = timeout_seconds
        self.redis_cache = redis_cache
        self.redis_ttl_seconds = redis_ttl_seconds

    def _source_name(self, symbol: str) -> str:
        if isinstance(self.provider, ChainedPriceProvider):
            return self.provider.last_source(symbol) or "live"
        return "live"

    async def get_live_price(self, symbol: str) -> Optional[Decimal]:
        try:
            price = await asyncio.wait_for(
                self.provider.get_current_price(symbol), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("Live price for %s timed out after %ss", symbol, self.timeout_seconds)
            return None
        except Exception as exc:
            logger.warning("Live price for %s failed: %s", symbol, exc)
            return None

        if price is None or price <= 0:
            return None

        await self._store(symbol, price)
        return price

    async def get_cached_price(self, symbol: str) -> Optional[Decimal]:
        quote = await self._cached_quote(symbol)
        return quote.price if quote else None

    async def get_price(self, symbol: str) -> PriceQuote:
        """
        Raises:
            PriceUnavailableError: neither a live nor a cached price exists
        """
        live = await self.get_live_price(symbol)
        if live is not None:
            return PriceQuote(symbol=symbol, price=live, source=self._source_name(symbol), ts=now_utc())

        cached = await self._cached_quote(symbol)
        if cached is not None:
            logger.info("Using cached price for %s from %s", symbol, cached.ts.isoformat())
            return PriceQuote(symbol=symbol, price=cached.price, source=CACHE_SOURCE, ts=cached.ts)

        raise PriceUnavailableError(f"Unable to get current price for {symbol}")

    async def refresh(self, symbols: Iterable[str]) -> Dict[str, Decimal]:
        """Warm the cache; returns the symbols that got a live price"""
        refreshed: Dict[str, Decimal] = {}
        for symbol in symbols:
            price = await self.get_live_price(symbol)
            if price is not None:
                refreshed[symbol] = price
        return refreshed

    async def close(self) -> None:
        if self.redis_cache is not None:
            await self.redis_cache.close()

    async def _store(self, symbol: str, price: Decimal) -> None:
        quote = self.quote_store.ingest(symbol, price)
        if self.redis_cache is not None:
            await self.redis_cache.set_json(
                symbol,
                {"price": str(quote.price), "ts": quote.ts.isoformat()},
                ttl_seconds=self.redis_ttl_seconds,
            )

    async def _cached_quote(self, symbol: str) -> Optional[Quote]:
        quote = self.quote_store.get_last_quote(symbol)
        if quote is not None or self.redis_cache is None:
            return quote

        data = await self.redis_cache.get_json(symbol)
        if not data:
            return None
        try:
            price = Decimal(data["price"])
            ts = datetime.fromisoformat(data["ts"])
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.debug("Ignoring malformed cached quote for %s: %s", symbol, exc)
            return None

        # Age limit of the in-memory store applies to mirrored quotes too
        self.quote_store.ingest(symbol, price, ts)
        return self.quote_store.get_last_quote(symbol)
