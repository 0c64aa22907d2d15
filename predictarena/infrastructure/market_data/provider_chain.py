"""
Provider chain - try primary, then fallbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from predictarena.infrastructure.market_data.types import PriceProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedProvider:
    name: str
    provider: PriceProvider


class ChainedPriceProvider:
    def __init__(self, providers: List[NamedProvider]):
        if not providers:
            raise ValueError("At least one price provider is required")
        self.providers = providers
        self.last_price_sources: Dict[str, str] = {}

    @property
    def names(self) -> List[str]:
        return [named.name for named in self.providers]

    def last_source(self, symbol: str) -> Optional[str]:
        return self.last_price_sources.get(symbol)

    async def get_current_price(self, symbol: str) -> Optional[Decimal]:
        for named in self.providers:
            try:
                value = await named.provider.get_current_price(symbol)
            except Exception as exc:
                logger.warning("Provider %s failed for %s: %s", named.name, symbol, exc)
                continue
            if value is not None and value > 0:
                self.last_price_sources[symbol] = named.name
                return value
        return None
