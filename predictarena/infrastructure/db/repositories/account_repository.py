"""
User and Asset Repositories
Read access to records owned by the auth and catalog collaborators
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Iterable, List, Optional

from predictarena.infrastructure.db.models import AssetModel, UserModel
from predictarena.domain.models import Asset, User


class UserRepository:
    """Repository for User"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        model = await self.session.get(UserModel, user_id)
        return self._to_domain(model) if model else None

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        return User(
            id=model.id,
            email=model.email,
            email_verified=bool(model.email_verified),
            is_admin=bool(model.is_admin),
        )


class AssetRepository:
    """Repository for Asset"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get(self, asset_id: int) -> Optional[Asset]:
        model = await self.session.get(AssetModel, asset_id)
        return self._to_domain(model) if model else None

    async def get_by_symbol(self, symbol: str) -> Optional[Asset]:
        result = await self.session.execute(
            select(AssetModel).where(AssetModel.symbol == symbol)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def list_active(self) -> List[Asset]:
        result = await self.session.execute(
            select(AssetModel).where(AssetModel.is_active.is_(True)).order_by(AssetModel.symbol)
        )
        return [self._to_domain(model) for model in result.scalars().all()]

    async def seed_defaults(self, symbols: Iterable[str]) -> int:
        """
        Insert missing default assets; existing rows are left alone

        Returns:
            Number of assets inserted
        """
        result = await self.session.execute(select(AssetModel.symbol))
        existing = set(result.scalars().all())

        inserted = 0
        for symbol in symbols:
            if symbol in existing:
                continue
            self.session.add(
                AssetModel(
                    symbol=symbol,
                    name=symbol,
                    asset_type=_guess_asset_type(symbol),
                    is_active=True,
                )
            )
            existing.add(symbol)
            inserted += 1

        if inserted:
            await self.session.flush()
        return inserted

    @staticmethod
    def _to_domain(model: AssetModel) -> Asset:
        return Asset(
            id=model.id,
            symbol=model.symbol,
            name=model.name,
            asset_type=model.asset_type,
            is_active=bool(model.is_active),
        )


def _guess_asset_type(symbol: str) -> str:
    # Yahoo conventions: BTC-USD crypto pairs, EURUSD=X forex, ^GSPC indices
    if symbol.endswith("=X"):
        return "forex"
    if symbol.startswith("^"):
        return "index"
    if "-" in symbol:
        return "crypto"
    return "stock"
