"""
Price provider protocol and quote value types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol


class PriceProvider(Protocol):
    async def get_current_price(self, symbol: str) -> Optional[Decimal]:
        ...


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: Decimal
    ts: datetime


@dataclass(frozen=True)
class PriceQuote:
    """Price handed to the engine together with where it came from"""
    symbol: str
    price: Decimal
    source: str
    ts: datetime
