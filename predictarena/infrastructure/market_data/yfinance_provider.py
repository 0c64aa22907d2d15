"""
YFinance Price Provider
Async-safe Yahoo Finance quotes for crypto, equities, indices and forex
"""

import asyncio
import logging
import os
import random
import time
from decimal import Decimal
from typing import Dict, Optional

import yfinance as yf

logger = logging.getLogger(__name__)

PRICE_QUANTUM = Decimal("0.00000001")


class YFinanceProvider:
    """
    Yahoo Finance price provider
    Async-safe via thread offloading
    """

    def __init__(self, cache_ttl_seconds: int = 15, retries: int = 2):
        # Asset symbols are Yahoo tickers unless remapped here
        self.symbol_mapping: Dict[str, str] = {
            "BTC": "BTC-USD",
            "ETH": "ETH-USD",
            "SPX": "^GSPC",
            "GOLD": "GC=F",
        }
        self.cache_ttl_seconds = cache_ttl_seconds
        self.retries = retries
        self._cache: Dict[str, tuple[float, Decimal]] = {}
        self._apply_symbol_overrides()

    def _apply_symbol_overrides(self) -> None:
        """
        Apply Yahoo symbol mapping overrides from env.

        Format: YF_SYMBOL_OVERRIDES="SOL=SOL-USD,DAX=^GDAXI"
        """
        raw = os.getenv("YF_SYMBOL_OVERRIDES", "").strip()
        if not raw:
            return
        overrides: Dict[str, str] = {}
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                overrides[key] = value
        if overrides:
            self.symbol_mapping.update(overrides)

    def yahoo_symbol(self, symbol: str) -> str:
        return self.symbol_mapping.get(symbol.upper(), symbol)

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs):
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def _history_with_retry(self, ticker: yf.Ticker, **kwargs):
        """
        Retry wrapper around history() to handle transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._history(ticker, **kwargs)
            except Exception as exc:
                last_exc = exc
                if attempt < self.retries:
                    await asyncio.sleep(0.4 * (2 ** attempt) + random.random() * 0.2)
        raise last_exc

    def _quantize(self, value: float) -> Decimal:
        return Decimal(str(value)).quantize(PRICE_QUANTUM)

    def _cache_get(self, key: str) -> Optional[Decimal]:
        if self.cache_ttl_seconds <= 0:
            return None
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if time.time() - ts > self.cache_ttl_seconds:
            return None
        return value

    def _cache_set(self, key: str, value: Decimal) -> None:
        self._cache[key] = (time.time(), value)

    # ------------------------------------------------------------------
    # CURRENT PRICE
    # ------------------------------------------------------------------

    async def get_current_price(self, symbol: str) -> Optional[Decimal]:
        """
        Latest traded price; intraday minute bars first, daily closes when
        the market has no intraday data (weekends for equities)
        """
        cached = self._cache_get(symbol)
        if cached is not None:
            return cached

        ticker = yf.Ticker(self.yahoo_symbol(symbol))

        for period, interval in (("1d", "1m"), ("5d", "1d")):
            try:
                hist = await self._history_with_retry(
                    ticker, period=period, interval=interval, auto_adjust=False
                )
            except Exception as e:
                logger.error(f"Error fetching {interval} history for {symbol}: {e}")
                continue

            if hist.empty or "Close" not in hist:
                continue

            closes = hist["Close"].dropna()
            if closes.empty:
                continue

            close = float(closes.iloc[-1])
            if close > 0:
                price = self._quantize(close)
                self._cache_set(symbol, price)
                return price

        logger.warning(f"No price data for {symbol}")
        return None
