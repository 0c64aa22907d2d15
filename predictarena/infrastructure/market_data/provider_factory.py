"""
Price provider factory (config-driven).
"""

from __future__ import annotations

from typing import List, Optional

from predictarena.config import settings
from predictarena.infrastructure.cache.redis_cache import RedisCache
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.infrastructure.market_data.provider_chain import (
    ChainedPriceProvider,
    NamedProvider,
)
from predictarena.infrastructure.market_data.quote_store import QuoteStore
from predictarena.infrastructure.market_data.types import PriceProvider
from predictarena.infrastructure.market_data.yfinance_provider import YFinanceProvider


def _build_provider(name: str) -> PriceProvider:
    name = (name or "").strip().lower()
    if name == "yfinance":
        # The oracle keeps its own last-quote fallback; live reads must be fresh
        return YFinanceProvider(cache_ttl_seconds=0)
    raise ValueError(f"Unknown market data provider: {name!r}")


def get_price_provider(provider_names: Optional[str] = None) -> ChainedPriceProvider:
    """
    Build the provider chain from a comma separated list, primary first.

    Defaults to settings.MARKET_DATA_PROVIDER.
    """
    raw = provider_names if provider_names is not None else settings.MARKET_DATA_PROVIDER
    names = [n.strip().lower() for n in raw.split(",") if n.strip()]

    providers: List[NamedProvider] = []
    for name in names:
        if name in {p.name for p in providers}:
            continue
        providers.append(NamedProvider(name, _build_provider(name)))

    if not providers:
        raise RuntimeError("No valid market data providers configured")
    return ChainedPriceProvider(providers)


def build_price_oracle() -> PriceOracle:
    redis_cache = None
    if settings.REDIS_ENABLED:
        redis_cache = RedisCache(settings.REDIS_URL)

    max_age = settings.PRICE_CACHE_MAX_AGE_SECONDS
    return PriceOracle(
        provider=get_price_provider(),
        quote_store=QuoteStore(max_age_seconds=max_age),
        timeout_seconds=settings.PRICE_FETCH_TIMEOUT_SECONDS,
        redis_cache=redis_cache,
        redis_ttl_seconds=max_age or None,
    )


_oracle: Optional[PriceOracle] = None


def get_price_oracle() -> PriceOracle:
    """Process-wide oracle shared by routes and scheduled jobs"""
    global _oracle
    if _oracle is None:
        _oracle = build_price_oracle()
    return _oracle
