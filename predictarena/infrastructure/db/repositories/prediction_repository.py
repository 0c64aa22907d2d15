"""
Prediction Repository
Persistence of prediction records and their one-way evaluation
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from predictarena.infrastructure.db.models import (
    AssetModel,
    DirectionEnum,
    PredictionModel,
    PredictionResultEnum,
    PredictionStatusEnum,
)
from predictarena.domain.models import (
    Direction,
    Prediction,
    PredictionResult,
    PredictionStatus,
    SentimentBucket,
)
from predictarena.utils.time import from_db, to_db


class PredictionRepository:
    """Repository for Prediction"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    def _select(self):
        # Evaluation writes bypass the identity map; always reload rows
        return (
            select(PredictionModel, AssetModel.symbol)
            .join(AssetModel, AssetModel.id == PredictionModel.asset_id)
            .execution_options(populate_existing=True)
        )

    async def create(self, prediction: Prediction) -> Prediction:
        """
        Insert a new active prediction

        The (user, asset, duration, slot, slot_start) unique constraint
        raises IntegrityError on a duplicate; callers translate it.

        Returns:
            The prediction with its generated id
        """
        model = PredictionModel(
            user_id=prediction.user_id,
            asset_id=prediction.asset_id,
            direction=DirectionEnum(prediction.direction.value),
            duration=prediction.duration,
            slot_number=prediction.slot_number,
            slot_start=to_db(prediction.slot_start),
            slot_end=to_db(prediction.slot_end),
            created_at=to_db(prediction.created_at),
            expires_at=to_db(prediction.expires_at),
            status=PredictionStatusEnum.ACTIVE,
            result=PredictionResultEnum.PENDING,
            price_start=prediction.price_start,
        )

        self.session.add(model)
        await self.session.flush()

        return self._to_domain(model, prediction.asset_symbol)

    async def get(self, prediction_id: int) -> Optional[Prediction]:
        result = await self.session.execute(
            self._select().where(PredictionModel.id == prediction_id)
        )
        row = result.first()
        return self._to_domain(row[0], row[1]) if row else None

    async def find_by_slot_key(
        self,
        user_id: str,
        asset_id: int,
        duration: str,
        slot_number: int,
        slot_start: datetime,
    ) -> Optional[Prediction]:
        """Look up a prediction by its idempotency key"""
        result = await self.session.execute(
            self._select()
            .where(
                PredictionModel.user_id == user_id,
                PredictionModel.asset_id == asset_id,
                PredictionModel.duration == duration,
                PredictionModel.slot_number == slot_number,
                PredictionModel.slot_start == to_db(slot_start),
            )
            .limit(1)
        )
        row = result.first()
        return self._to_domain(row[0], row[1]) if row else None

    async def list_expired_active(self, now: datetime, limit: int = 500) -> List[Prediction]:
        """Active predictions whose expiry is strictly before `now`"""
        result = await self.session.execute(
            self._select()
            .where(
                PredictionModel.status == PredictionStatusEnum.ACTIVE,
                PredictionModel.expires_at < to_db(now),
            )
            .order_by(PredictionModel.expires_at.asc(), PredictionModel.id.asc())
            .limit(limit)
        )
        return [self._to_domain(model, symbol) for model, symbol in result.all()]

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[PredictionStatus] = None,
        asset_symbol: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Prediction]:
        query = self._select().where(PredictionModel.user_id == user_id)
        if status is not None:
            query = query.where(PredictionModel.status == PredictionStatusEnum(status.value))
        if asset_symbol:
            query = query.where(AssetModel.symbol == asset_symbol)
        query = (
            query.order_by(PredictionModel.created_at.desc(), PredictionModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return [self._to_domain(model, symbol) for model, symbol in result.all()]

    async def count_active_for_user(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count(PredictionModel.id)).where(
                PredictionModel.user_id == user_id,
                PredictionModel.status == PredictionStatusEnum.ACTIVE,
            )
        )
        return int(result.scalar() or 0)

    async def mark_evaluated(
        self,
        prediction_id: int,
        result: PredictionResult,
        points_awarded: int,
        price_end: Optional[Decimal],
        evaluated_at: datetime,
    ) -> bool:
        """
        Conditional active -> evaluated transition

        Returns:
            True if this call performed the transition, False if the
            prediction was no longer active
        """
        values = {
            "status": PredictionStatusEnum.EVALUATED,
            "result": PredictionResultEnum(result.value),
            "points_awarded": points_awarded,
            "evaluated_at": to_db(evaluated_at),
        }
        if price_end is not None:
            values["price_end"] = price_end

        outcome = await self.session.execute(
            update(PredictionModel)
            .where(
                PredictionModel.id == prediction_id,
                PredictionModel.status == PredictionStatusEnum.ACTIVE,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return outcome.rowcount == 1

    async def sentiment(self, asset_id: int, duration: str) -> List[SentimentBucket]:
        """Up/down counts per slot number"""
        result = await self.session.execute(
            select(
                PredictionModel.slot_number,
                PredictionModel.direction,
                func.count(PredictionModel.id),
            )
            .where(
                PredictionModel.asset_id == asset_id,
                PredictionModel.duration == duration,
            )
            .group_by(PredictionModel.slot_number, PredictionModel.direction)
        )

        counts: dict[int, dict[str, int]] = {}
        for slot_number, direction, count in result.all():
            bucket = counts.setdefault(slot_number, {"up": 0, "down": 0})
            bucket[DirectionEnum(direction).value] = int(count)

        return [
            SentimentBucket(slot_number=slot, up_count=c["up"], down_count=c["down"])
            for slot, c in sorted(counts.items())
        ]

    @staticmethod
    def _to_domain(model: PredictionModel, asset_symbol: Optional[str] = None) -> Prediction:
        """Convert database model to domain entity"""
        return Prediction(
            id=model.id,
            user_id=model.user_id,
            asset_id=model.asset_id,
            direction=Direction(DirectionEnum(model.direction).value),
            duration=model.duration,
            slot_number=model.slot_number,
            slot_start=from_db(model.slot_start),
            slot_end=from_db(model.slot_end),
            created_at=from_db(model.created_at),
            expires_at=from_db(model.expires_at),
            price_start=Decimal(str(model.price_start)),
            status=PredictionStatus(PredictionStatusEnum(model.status).value),
            result=PredictionResult(PredictionResultEnum(model.result).value),
            points_awarded=model.points_awarded,
            price_end=Decimal(str(model.price_end)) if model.price_end is not None else None,
            evaluated_at=from_db(model.evaluated_at),
            asset_symbol=asset_symbol,
        )
