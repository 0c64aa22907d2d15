"""
In-memory store of the last known quote per symbol.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional

from predictarena.infrastructure.market_data.types import Quote
from predictarena.utils.time import now_utc, to_utc


class QuoteStore:
    def __init__(self, max_age_seconds: int = 0):
        # 0 = quotes never go stale
        self._last_quotes: Dict[str, Quote] = {}
        self._max_age = timedelta(seconds=max_age_seconds) if max_age_seconds > 0 else None

    def ingest(self, symbol: str, price: Decimal, ts: Optional[datetime] = None) -> Quote:
        ts = to_utc(ts) if ts is not None else now_utc()
        quote = Quote(symbol=symbol, price=price, ts=ts)
        current = self._last_quotes.get(symbol)
        # Late arrivals never overwrite a newer quote
        if current is None or current.ts <= ts:
            self._last_quotes[symbol] = quote
        return self._last_quotes[symbol]

    def get_last_quote(self, symbol: str, now: Optional[datetime] = None) -> Optional[Quote]:
        quote = self._last_quotes.get(symbol)
        if quote is None:
            return None
        if self._max_age is not None:
            now = now or now_utc()
            if now - quote.ts > self._max_age:
                return None
        return quote
