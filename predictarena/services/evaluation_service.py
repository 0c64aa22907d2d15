"""
SERVICE - EVALUATION

• active -> evaluated happens at most once per prediction
• The score delta is applied in the same transaction as the transition
• One failing record never blocks the rest of a sweep
"""

import dataclasses
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.domain.errors import (
    NotActiveError,
    NotMaturedError,
    PredictionNotFoundError,
    PriceUnavailableError,
)
from predictarena.domain.models import (
    Prediction,
    PredictionResult,
    PredictionStatus,
    SweepSummary,
)
from predictarena.domain.services.scoring_engine import ScoringEngine
from predictarena.infrastructure.db.repositories.prediction_repository import PredictionRepository
from predictarena.infrastructure.db.repositories.user_score_repository import UserScoreRepository
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.services.slot_service import SlotService
from predictarena.utils.time import now_utc

logger = logging.getLogger(__name__)

SWEEP_BATCH_SIZE = 500


class EvaluationService:
    def __init__(
        self,
        session: AsyncSession,
        price_oracle: PriceOracle,
        clock: Callable[[], datetime] = now_utc,
        scoring: Optional[ScoringEngine] = None,
    ):
        self.session = session
        self.price_oracle = price_oracle
        self.clock = clock
        self.scoring = scoring or ScoringEngine()
        self.predictions = PredictionRepository(session)
        self.scores = UserScoreRepository(session)
        self.slots = SlotService(session, clock=clock)

    async def _base_points(self, prediction: Prediction) -> int:
        # Same source as the slot views, so the advertised penalty is the one charged
        return await self.slots.points_for(prediction.duration, prediction.slot_number)

    async def _load_active(self, prediction_id: int) -> Prediction:
        prediction = await self.predictions.get(prediction_id)
        if prediction is None:
            raise PredictionNotFoundError(f"Prediction {prediction_id} not found")
        if not prediction.is_active:
            raise NotActiveError(f"Prediction {prediction_id} is already evaluated")
        return prediction

    async def _transition(
        self,
        prediction: Prediction,
        result: PredictionResult,
        points_awarded: int,
        price_end: Optional[Decimal],
        now: datetime,
    ) -> Prediction:
        """
        Conditional status transition plus aggregate delta, committed together.

        Raises:
            NotActiveError: someone else evaluated the prediction first
        """
        applied = await self.predictions.mark_evaluated(
            prediction.id, result, points_awarded, price_end, now
        )
        if not applied:
            await self.session.rollback()
            raise NotActiveError(f"Prediction {prediction.id} is already evaluated")

        is_correct = result == PredictionResult.CORRECT
        if not await self.scores.apply_evaluation(prediction.user_id, is_correct, points_awarded):
            logger.error(
                "Score aggregate missing for user %s while evaluating prediction %s; creating it",
                prediction.user_id,
                prediction.id,
            )
            await self.scores.create(
                prediction.user_id,
                total_predictions=1,
                correct_predictions=1 if is_correct else 0,
                score_delta=points_awarded,
            )

        await self.session.commit()

        return dataclasses.replace(
            prediction,
            status=PredictionStatus.EVALUATED,
            result=result,
            points_awarded=points_awarded,
            price_end=price_end if price_end is not None else prediction.price_end,
            evaluated_at=now,
        )

    async def _evaluate(self, prediction: Prediction, now: datetime) -> Prediction:
        quote = await self.price_oracle.get_price(prediction.asset_symbol)
        outcome = self.scoring.score(
            prediction.direction,
            prediction.price_start,
            quote.price,
            await self._base_points(prediction),
        )

        evaluated = await self._transition(
            prediction, outcome.result, outcome.points_awarded, quote.price, now
        )

        logger.info(
            "Prediction evaluated | id=%s | %s | %s -> %s (%s) | points=%s",
            prediction.id,
            outcome.result.value,
            prediction.price_start,
            quote.price,
            quote.source,
            outcome.points_awarded,
        )
        return evaluated

    # ------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------

    async def evaluate_one(self, prediction_id: int) -> Prediction:
        """
        Settle one matured prediction against the current price

        Raises:
            PredictionNotFoundError, NotActiveError, NotMaturedError,
            PriceUnavailableError
        """
        now = self.clock()
        prediction = await self._load_active(prediction_id)
        if now < prediction.expires_at:
            raise NotMaturedError(
                f"Prediction {prediction_id} expires at {prediction.expires_at.isoformat()}"
            )
        return await self._evaluate(prediction, now)

    async def evaluate_expired(self, limit: int = SWEEP_BATCH_SIZE) -> SweepSummary:
        """Evaluate every expired active prediction; failures stay active for the next run"""
        now = self.clock()
        expired = await self.predictions.list_expired_active(now, limit=limit)
        summary = SweepSummary()

        if not expired:
            return summary

        logger.info("Evaluating %s expired predictions", len(expired))

        for prediction in expired:
            try:
                await self._evaluate(prediction, now)
                summary.evaluated += 1
            except NotActiveError:
                # Evaluated concurrently by another sweep or an admin
                summary.skipped += 1
            except PriceUnavailableError as exc:
                await self.session.rollback()
                summary.failed += 1
                summary.failed_ids.append(prediction.id)
                logger.warning("Prediction %s left active: %s", prediction.id, exc.message)
            except Exception:
                await self.session.rollback()
                summary.failed += 1
                summary.failed_ids.append(prediction.id)
                logger.exception("Failed to evaluate prediction %s", prediction.id)

        logger.info(
            "Evaluation sweep finished | evaluated=%s | skipped=%s | failed=%s",
            summary.evaluated,
            summary.skipped,
            summary.failed,
        )
        return summary

    async def apply_manual_result(
        self,
        prediction_id: int,
        result: PredictionResult,
        points_awarded: int,
        price_end: Optional[Decimal] = None,
    ) -> Prediction:
        """
        Administrative override: the caller decides result and points.

        Raises:
            ValueError: result is pending
            PredictionNotFoundError, NotActiveError
        """
        result = PredictionResult(result)
        if result == PredictionResult.PENDING:
            raise ValueError("Manual result must be correct or incorrect")

        now = self.clock()
        prediction = await self._load_active(prediction_id)
        evaluated = await self._transition(prediction, result, points_awarded, price_end, now)

        logger.info(
            "Prediction evaluated manually | id=%s | %s | points=%s",
            prediction_id,
            result.value,
            points_awarded,
        )
        return evaluated
