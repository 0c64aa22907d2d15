from decimal import Decimal

import pytest
from sqlalchemy import delete

from predictarena.domain.errors import NotActiveError, NotMaturedError, PredictionNotFoundError
from predictarena.domain.models import Direction, PredictionResult, PredictionStatus
from predictarena.infrastructure.db.models import AssetModel, UserProfileModel
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.infrastructure.market_data.provider_chain import ChainedPriceProvider, NamedProvider
from predictarena.services.evaluation_service import EvaluationService
from predictarena.services.prediction_service import PredictionService
from predictarena.services.slot_service import SlotService

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


@pytest.fixture()
def predictions(db_session, price_oracle, clock) -> PredictionService:
    return PredictionService(db_session, price_oracle, clock=clock)


@pytest.fixture()
def evaluator(db_session, price_oracle, clock) -> EvaluationService:
    return EvaluationService(db_session, price_oracle, clock=clock)


async def test_correct_prediction_earns_slot_points_and_bonus(
    predictions, evaluator, arena, clock, price_provider
):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    clock.advance(minutes=11)
    price_provider.prices[arena.asset] = Decimal("100.05")

    evaluated = await evaluator.evaluate_one(created.id)

    assert evaluated.status == PredictionStatus.EVALUATED
    assert evaluated.result == PredictionResult.CORRECT
    assert evaluated.points_awarded == 15
    assert evaluated.price_end == Decimal("100.05")

    stats = await predictions.user_stats(arena.verified_user)
    assert stats.total_predictions == 2
    assert stats.correct_predictions == 1
    assert stats.total_score == 15
    assert stats.monthly_score == 15


async def test_wrong_prediction_costs_half_the_slot_points(
    predictions, evaluator, arena, clock, price_provider
):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    clock.advance(minutes=11)
    price_provider.prices[arena.asset] = Decimal("100")

    evaluated = await evaluator.evaluate_one(created.id)

    assert evaluated.result == PredictionResult.INCORRECT
    assert evaluated.points_awarded == -2
    assert (await predictions.user_stats(arena.verified_user)).total_score == -2


async def test_evaluation_happens_once(predictions, evaluator, arena, clock):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    clock.advance(minutes=11)
    await evaluator.evaluate_one(created.id)
    before = await predictions.user_stats(arena.verified_user)

    with pytest.raises(NotActiveError):
        await evaluator.evaluate_one(created.id)

    assert await predictions.user_stats(arena.verified_user) == before


async def test_configured_points_override_catalog(
    db_session, predictions, evaluator, arena, clock, price_provider
):
    slots = SlotService(db_session, clock=clock)
    await slots.seed_slot_configs()
    config = next(c for c in await slots.list_configs("1h") if c.slot_number == 2)
    await slots.update_config(config.id, points_if_correct=8)

    created = await predictions.create(arena.verified_user, arena.asset, Direction.DOWN, "1h")
    clock.advance(minutes=11)
    price_provider.prices[arena.asset] = Decimal("90")

    evaluated = await evaluator.evaluate_one(created.id)

    assert evaluated.points_awarded == 8


async def test_not_matured(predictions, evaluator, arena):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    with pytest.raises(NotMaturedError):
        await evaluator.evaluate_one(created.id)


async def test_unknown_prediction(evaluator, arena):
    with pytest.raises(PredictionNotFoundError):
        await evaluator.evaluate_one(4242)


async def test_sweep_isolates_failures(db_session, predictions, arena, clock, price_provider):
    db_session.add(AssetModel(symbol="ETH-USD", name="Ethereum", asset_type="crypto", is_active=True))
    await db_session.commit()
    price_provider.prices["ETH-USD"] = Decimal("2000")

    btc = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    eth = await predictions.create(arena.verified_user, "ETH-USD", Direction.UP, "1h")
    clock.advance(minutes=11)

    # Fresh oracle: no cached quotes, and no ETH price at all
    sweep_oracle = PriceOracle(
        ChainedPriceProvider([NamedProvider("stub", price_provider)]), timeout_seconds=1.0
    )
    del price_provider.prices["ETH-USD"]
    price_provider.prices[arena.asset] = Decimal("101")
    evaluator = EvaluationService(db_session, sweep_oracle, clock=clock)

    summary = await evaluator.evaluate_expired()

    assert (summary.evaluated, summary.skipped, summary.failed) == (1, 0, 1)
    assert summary.failed_ids == [eth.id]
    assert summary.processed == 2

    remaining = await predictions.list_for_user(
        arena.verified_user, status=PredictionStatus.ACTIVE
    )
    assert [p.id for p in remaining] == [eth.id]
    assert (await predictions.list_for_user(
        arena.verified_user, status=PredictionStatus.EVALUATED
    ))[0].id == btc.id

    # Nothing left for a second sweep once the price is back
    price_provider.prices["ETH-USD"] = Decimal("1990")
    retry = await evaluator.evaluate_expired()
    assert (retry.evaluated, retry.failed) == (1, 0)
    assert (await evaluator.evaluate_expired()).processed == 0


async def test_sweep_ignores_unexpired(predictions, evaluator, arena):
    await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    summary = await evaluator.evaluate_expired()

    assert summary.processed == 0


async def test_manual_result(predictions, evaluator, arena):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1w")

    evaluated = await evaluator.apply_manual_result(created.id, PredictionResult.CORRECT, 25)

    assert evaluated.result == PredictionResult.CORRECT
    assert evaluated.points_awarded == 25
    assert evaluated.price_end is None
    stats = await predictions.user_stats(arena.verified_user)
    assert (stats.correct_predictions, stats.total_score) == (1, 25)

    with pytest.raises(NotActiveError):
        await evaluator.apply_manual_result(created.id, PredictionResult.INCORRECT, -5)


async def test_manual_result_must_be_final(predictions, evaluator, arena):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    with pytest.raises(ValueError):
        await evaluator.apply_manual_result(created.id, PredictionResult.PENDING, 0)


async def test_missing_score_row_is_recreated(db_session, predictions, evaluator, arena, clock):
    created = await predictions.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    await db_session.execute(delete(UserProfileModel))
    await db_session.commit()
    clock.advance(minutes=11)

    await evaluator.evaluate_one(created.id)

    stats = await predictions.user_stats(arena.verified_user)
    assert stats.total_predictions == 1
