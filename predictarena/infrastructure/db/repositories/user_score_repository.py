"""
User Score Repository
Running totals per user, always changed with in-database increments
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from typing import Optional

from predictarena.infrastructure.db.models import UserProfileModel
from predictarena.domain.models import UserScore


class UserScoreRepository:
    """Repository for UserScore aggregates"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def get(self, user_id: str) -> Optional[UserScore]:
        result = await self.session.execute(
            select(UserProfileModel)
            .where(UserProfileModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def create(
        self,
        user_id: str,
        total_predictions: int = 0,
        correct_predictions: int = 0,
        score_delta: int = 0,
    ) -> UserScore:
        model = UserProfileModel(
            user_id=user_id,
            total_predictions=total_predictions,
            correct_predictions=correct_predictions,
            monthly_score=score_delta,
            total_score=score_delta,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def increment_total_predictions(self, user_id: str) -> bool:
        """
        totalPredictions += 1

        Returns:
            False if the user has no aggregate row
        """
        outcome = await self.session.execute(
            update(UserProfileModel)
            .where(UserProfileModel.user_id == user_id)
            .values(total_predictions=UserProfileModel.total_predictions + 1)
            .execution_options(synchronize_session=False)
        )
        return outcome.rowcount == 1

    async def apply_evaluation(self, user_id: str, is_correct: bool, points_awarded: int) -> bool:
        """
        Apply one evaluation's delta as a single atomic UPDATE

        Returns:
            False if the user has no aggregate row
        """
        outcome = await self.session.execute(
            update(UserProfileModel)
            .where(UserProfileModel.user_id == user_id)
            .values(
                correct_predictions=UserProfileModel.correct_predictions + (1 if is_correct else 0),
                total_predictions=UserProfileModel.total_predictions + 1,
                monthly_score=UserProfileModel.monthly_score + points_awarded,
                total_score=UserProfileModel.total_score + points_awarded,
            )
            .execution_options(synchronize_session=False)
        )
        return outcome.rowcount == 1

    @staticmethod
    def _to_domain(model: UserProfileModel) -> UserScore:
        """Convert database model to domain entity"""
        return UserScore(
            user_id=model.user_id,
            total_predictions=model.total_predictions or 0,
            correct_predictions=model.correct_predictions or 0,
            monthly_score=model.monthly_score or 0,
            total_score=model.total_score or 0,
        )
