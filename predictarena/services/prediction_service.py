"""
SERVICE - PREDICTION LIFECYCLE

• Checks run in a fixed order, each with its own error
• Idempotent per (user, asset, duration, slot, slot start)
• The storage constraint settles concurrent duplicates
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.domain.errors import (
    AssetUnavailableError,
    DuplicatePredictionError,
    InvalidSlotError,
    SlotLockedError,
    UnverifiedUserError,
    UserNotFoundError,
)
from predictarena.domain.models import (
    Direction,
    Prediction,
    PredictionStatus,
    SentimentBucket,
    UserScore,
)
from predictarena.domain.services import slot_clock
from predictarena.domain.services.duration_catalog import get_spec
from predictarena.domain.services.lock_gate import lock_status_for_window
from predictarena.infrastructure.db.repositories.account_repository import (
    AssetRepository,
    UserRepository,
)
from predictarena.infrastructure.db.repositories.prediction_repository import PredictionRepository
from predictarena.infrastructure.db.repositories.user_score_repository import UserScoreRepository
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.utils.time import now_utc

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class PredictionService:
    def __init__(
        self,
        session: AsyncSession,
        price_oracle: PriceOracle,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.session = session
        self.price_oracle = price_oracle
        self.clock = clock
        self.users = UserRepository(session)
        self.assets = AssetRepository(session)
        self.predictions = PredictionRepository(session)
        self.scores = UserScoreRepository(session)

    async def create(
        self,
        user_id: str,
        asset_symbol: str,
        direction: Direction,
        duration: str,
    ) -> Prediction:
        """
        Place a prediction on the current slot of `duration`.

        Raises:
            UnknownDurationError, UnverifiedUserError, AssetUnavailableError,
            InvalidSlotError, DuplicatePredictionError, SlotLockedError,
            PriceUnavailableError
        """
        now = self.clock()
        direction = Direction(direction)

        # Resolves the duration first so an unknown one fails before any I/O
        slot_number = slot_clock.slot_number_at(now, duration)

        # ----------------------------
        # User
        # ----------------------------
        user = await self.users.get(user_id)
        if user is None:
            raise UserNotFoundError()
        if not user.email_verified:
            raise UnverifiedUserError()

        # ----------------------------
        # Asset
        # ----------------------------
        asset = await self.assets.get_by_symbol(asset_symbol)
        if asset is None or not asset.is_active:
            raise AssetUnavailableError(f"Asset {asset_symbol} is not available for predictions")

        # ----------------------------
        # Slot
        # ----------------------------
        window = slot_clock.slot_boundaries(duration, slot_number, now)
        # Unreachable while slot_number_at and slot_boundaries agree; guards against drift between them
        if now >= window.end_exclusive:
            raise InvalidSlotError()

        # ----------------------------
        # Idempotency
        # ----------------------------
        existing = await self.predictions.find_by_slot_key(
            user_id, asset.id, duration, slot_number, window.start
        )
        if existing is not None:
            raise DuplicatePredictionError()

        # ----------------------------
        # Lock window
        # ----------------------------
        lock = lock_status_for_window(window, now)
        if lock.is_locked:
            minutes = int(lock.time_until_unlock.total_seconds() // 60)
            raise SlotLockedError(
                f"Slot {slot_number} is locked. Wait {minutes} minutes for the next slot."
            )

        # ----------------------------
        # Entry price
        # ----------------------------
        quote = await self.price_oracle.get_price(asset.symbol)

        # ----------------------------
        # Persist
        # ----------------------------
        try:
            prediction = await self.predictions.create(
                Prediction(
                    id=None,
                    user_id=user_id,
                    asset_id=asset.id,
                    direction=direction,
                    duration=duration,
                    slot_number=slot_number,
                    slot_start=window.start,
                    slot_end=window.end,
                    created_at=now,
                    expires_at=window.end,
                    price_start=quote.price,
                    asset_symbol=asset.symbol,
                )
            )
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise DuplicatePredictionError()

        logger.info(
            "Prediction created | id=%s | user=%s | asset=%s | %s %s slot %s | price=%s (%s)",
            prediction.id,
            user_id,
            asset.symbol,
            direction.value,
            duration,
            slot_number,
            quote.price,
            quote.source,
        )

        await self._count_prediction(user_id)
        return prediction

    async def _count_prediction(self, user_id: str) -> None:
        # Scores are eventually consistent; the prediction row is the source of truth
        try:
            if not await self.scores.increment_total_predictions(user_id):
                await self.scores.create(user_id, total_predictions=1)
            await self.session.commit()
        except IntegrityError:
            # A concurrent request created the row first; count on top of it
            await self.session.rollback()
            try:
                await self.scores.increment_total_predictions(user_id)
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                logger.exception("Failed to increment total predictions | user=%s", user_id)
        except Exception:
            await self.session.rollback()
            logger.exception("Failed to increment total predictions | user=%s", user_id)

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[PredictionStatus] = None,
        asset_symbol: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Prediction]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        return await self.predictions.list_for_user(
            user_id, status=status, asset_symbol=asset_symbol, limit=limit, offset=offset
        )

    async def user_stats(self, user_id: str) -> UserScore:
        score = await self.scores.get(user_id)
        if score is None:
            return UserScore(
                user_id=user_id,
                total_predictions=0,
                correct_predictions=0,
                monthly_score=0,
                total_score=0,
            )
        return score

    async def active_count(self, user_id: str) -> int:
        return await self.predictions.count_active_for_user(user_id)

    async def sentiment(self, asset_symbol: str, duration: str) -> List[SentimentBucket]:
        """
        Up/down split per slot for one asset and duration

        Raises:
            UnknownDurationError, AssetUnavailableError
        """
        get_spec(duration)
        asset = await self.assets.get_by_symbol(asset_symbol)
        if asset is None:
            raise AssetUnavailableError(f"Asset {asset_symbol} not found")
        return await self.predictions.sentiment(asset.id, duration)
