"""
Slot Config Repository
CRUD operations for persisted slot configuration rows
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Iterable, List, Optional

from predictarena.infrastructure.db.models import SlotConfigModel
from predictarena.domain.models import SlotConfig


class SlotConfigRepository:
    """Repository for SlotConfig data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(SlotConfigModel.id)))
        return int(result.scalar() or 0)

    async def seed(self, configs: Iterable[SlotConfig]) -> int:
        """
        Insert configuration rows only if the table is empty

        Returns:
            Number of rows inserted (0 when already seeded)
        """
        if await self.count() > 0:
            return 0

        models = [self._to_model(config) for config in configs]
        self.session.add_all(models)
        await self.session.flush()
        return len(models)

    async def list(self, duration: Optional[str] = None) -> List[SlotConfig]:
        query = select(SlotConfigModel)
        if duration:
            query = query.where(SlotConfigModel.duration == duration)
        query = query.order_by(SlotConfigModel.duration, SlotConfigModel.slot_number)
        result = await self.session.execute(query)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def get(self, duration: str, slot_number: int) -> Optional[SlotConfig]:
        result = await self.session.execute(
            select(SlotConfigModel).where(
                SlotConfigModel.duration == duration,
                SlotConfigModel.slot_number == slot_number,
            )
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_id(self, config_id: int) -> Optional[SlotConfig]:
        model = await self.session.get(SlotConfigModel, config_id)
        return self._to_domain(model) if model else None

    async def create(self, config: SlotConfig) -> SlotConfig:
        model = self._to_model(config)
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def update(self, config_id: int, **fields) -> Optional[SlotConfig]:
        """
        Update labels and/or point values of one row

        Args:
            config_id: Row id
            fields: Any of start_time, end_time, points_if_correct, penalty_if_wrong
        """
        model = await self.session.get(SlotConfigModel, config_id)
        if model is None:
            return None

        for name in ("start_time", "end_time", "points_if_correct", "penalty_if_wrong"):
            value = fields.get(name)
            if value is not None:
                setattr(model, name, value)

        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_model(config: SlotConfig) -> SlotConfigModel:
        return SlotConfigModel(
            duration=config.duration,
            slot_number=config.slot_number,
            start_time=config.start_time,
            end_time=config.end_time,
            points_if_correct=config.points_if_correct,
            penalty_if_wrong=config.penalty_if_wrong,
        )

    @staticmethod
    def _to_domain(model: SlotConfigModel) -> SlotConfig:
        """Convert database model to domain entity"""
        return SlotConfig(
            id=model.id,
            duration=model.duration,
            slot_number=model.slot_number,
            start_time=model.start_time,
            end_time=model.end_time,
            points_if_correct=model.points_if_correct,
            penalty_if_wrong=model.penalty_if_wrong,
        )
