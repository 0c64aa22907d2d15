import os

# Settings are read on import; keep tests off Postgres and the scheduler
os.environ.setdefault("DATABASE_URL", "sqlite:///./predictarena-test.db")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("SEED_ON_STARTUP", "false")

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional
from zoneinfo import ZoneInfo

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from predictarena.api.dependencies import get_clock, get_price_oracle
from predictarena.api.routes import admin, cron, health, predictions, slots
from predictarena.infrastructure.db.database import Base, get_db
from predictarena.infrastructure.db.models import AssetModel, UserModel
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.infrastructure.market_data.provider_chain import ChainedPriceProvider, NamedProvider
from predictarena.infrastructure.market_data.quote_store import QuoteStore

BERLIN = ZoneInfo("Europe/Berlin")


def berlin(*args) -> datetime:
    """Aware instant from a Berlin wall-clock reading"""
    return datetime(*args, tzinfo=BERLIN)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class StubPriceProvider:
    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self.prices: Dict[str, Decimal] = dict(prices or {})
        self.fail = False
        self.calls = 0

    async def get_current_price(self, symbol: str) -> Optional[Decimal]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("price feed down")
        return self.prices.get(symbol)


@dataclass
class Arena:
    verified_user: str = "alice"
    second_user: str = "carol"
    unverified_user: str = "bob"
    admin_user: str = "admin"
    asset: str = "BTC-USD"
    inactive_asset: str = "DOGE-USD"


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def arena(db_session) -> Arena:
    names = Arena()
    db_session.add_all(
        [
            UserModel(id=names.verified_user, email="alice@example.com", email_verified=True),
            UserModel(id=names.second_user, email="carol@example.com", email_verified=True),
            UserModel(id=names.unverified_user, email="bob@example.com", email_verified=False),
            UserModel(
                id=names.admin_user, email="admin@example.com", email_verified=True, is_admin=True
            ),
            AssetModel(symbol=names.asset, name="Bitcoin", asset_type="crypto", is_active=True),
            AssetModel(symbol=names.inactive_asset, name="Dogecoin", asset_type="crypto", is_active=False),
        ]
    )
    await db_session.commit()
    return names


@pytest.fixture()
def clock() -> FakeClock:
    # Monday, CEST; 1h slot 2 runs 10:15-10:30
    return FakeClock(berlin(2026, 6, 15, 10, 20))


@pytest.fixture()
def price_provider() -> StubPriceProvider:
    return StubPriceProvider({"BTC-USD": Decimal("100")})


@pytest.fixture()
def price_oracle(price_provider) -> PriceOracle:
    chain = ChainedPriceProvider([NamedProvider("stub", price_provider)])
    return PriceOracle(chain, quote_store=QuoteStore(), timeout_seconds=1.0)


@pytest.fixture()
async def app(db_session, clock, price_oracle) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(predictions.router, prefix="/predictions", tags=["Predictions"])
    app.include_router(slots.router, prefix="/slots", tags=["Slots"])
    app.include_router(cron.router, prefix="/cron", tags=["Cron"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_price_oracle] = lambda: price_oracle
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
