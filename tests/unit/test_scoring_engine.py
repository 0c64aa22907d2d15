from decimal import Decimal

import pytest

from predictarena.domain.models import Direction, PredictionResult
from predictarena.domain.services.scoring_engine import ScoringEngine


@pytest.fixture()
def engine():
    return ScoringEngine()


def test_correct_up_call_with_tight_move_gets_top_bonus(engine):
    outcome = engine.score(Direction.UP, Decimal("100"), Decimal("100.05"), base_points=10)
    assert outcome.is_correct
    assert outcome.bonus == 10
    assert outcome.points_awarded == 20
    assert outcome.result == PredictionResult.CORRECT


def test_wrong_call_costs_half_the_points(engine):
    outcome = engine.score(Direction.UP, Decimal("100"), Decimal("99"), base_points=10)
    assert not outcome.is_correct
    assert outcome.bonus == 0
    assert outcome.points_awarded == -5
    assert outcome.result == PredictionResult.INCORRECT


def test_lowest_slot_penalty_is_never_zero(engine):
    outcome = engine.score(Direction.DOWN, Decimal("100"), Decimal("101"), base_points=1)
    assert outcome.points_awarded == -1


def test_unchanged_price_is_wrong_both_ways(engine):
    assert not engine.is_correct(Direction.UP, Decimal("50"), Decimal("50"))
    assert not engine.is_correct(Direction.DOWN, Decimal("50"), Decimal("50"))
    assert engine.score(Direction.DOWN, Decimal("50"), Decimal("50"), 30).points_awarded == -15


@pytest.mark.parametrize(
    "end_price,bonus",
    [
        (Decimal("100.1"), 10),   # 0.1% inclusive
        (Decimal("100.11"), 5),
        (Decimal("100.5"), 5),    # 0.5% inclusive
        (Decimal("100.51"), 2),
        (Decimal("101"), 2),      # 1.0% inclusive
        (Decimal("101.01"), 0),
    ],
)
def test_bonus_bands_are_inclusive_at_the_upper_bound(engine, end_price, bonus):
    assert engine.accuracy_bonus(Decimal("100"), end_price) == bonus


def test_down_call(engine):
    outcome = engine.score(Direction.DOWN, Decimal("200"), Decimal("190"), base_points=40)
    assert outcome.is_correct
    assert outcome.change_pct == Decimal("5")
    assert outcome.points_awarded == 40


def test_non_positive_start_price_is_rejected(engine):
    with pytest.raises(ValueError):
        engine.change_pct(Decimal("0"), Decimal("1"))
