"""
SCORING ENGINE
Correctness and points for a matured prediction.

RULES:
- UP is correct only if end > start, DOWN only if end < start
- An unchanged price is wrong for both directions (no draws)
- Correct: slot points + accuracy bonus (tightest matching band only)
- Wrong: -max(1, floor(slot points / 2))
"""

from decimal import Decimal
from typing import Tuple

from predictarena.domain.models import Direction, ScoreOutcome
from predictarena.domain.services.duration_catalog import penalty_for_points

# (max absolute change %, bonus points), upper bound inclusive
ACCURACY_BONUS_BANDS: Tuple[Tuple[Decimal, int], ...] = (
    (Decimal("0.1"), 10),
    (Decimal("0.5"), 5),
    (Decimal("1.0"), 2),
)


class ScoringEngine:
    """Pure scoring rules; no I/O"""

    def is_correct(self, direction: Direction, start_price: Decimal, end_price: Decimal) -> bool:
        if direction == Direction.UP:
            return end_price > start_price
        return end_price < start_price

    def change_pct(self, start_price: Decimal, end_price: Decimal) -> Decimal:
        if start_price <= 0:
            raise ValueError("start price must be positive")
        return abs(end_price - start_price) / start_price * Decimal("100")

    def accuracy_bonus(self, start_price: Decimal, end_price: Decimal) -> int:
        change = self.change_pct(start_price, end_price)
        for ceiling, bonus in ACCURACY_BONUS_BANDS:
            if change <= ceiling:
                return bonus
        return 0

    def score(
        self,
        direction: Direction,
        start_price: Decimal,
        end_price: Decimal,
        base_points: int,
    ) -> ScoreOutcome:
        """
        Score a prediction

        Args:
            direction: Predicted direction
            start_price: Entry price fixed at creation
            end_price: Settlement price
            base_points: Points of the prediction's slot

        Returns:
            ScoreOutcome with signed points_awarded
        """
        start_price = Decimal(start_price)
        end_price = Decimal(end_price)
        change = self.change_pct(start_price, end_price)
        correct = self.is_correct(direction, start_price, end_price)

        if correct:
            bonus = self.accuracy_bonus(start_price, end_price)
            awarded = base_points + bonus
        else:
            bonus = 0
            awarded = -penalty_for_points(base_points)

        return ScoreOutcome(
            is_correct=correct,
            base_points=base_points,
            bonus=bonus,
            points_awarded=awarded,
            change_pct=change,
        )
