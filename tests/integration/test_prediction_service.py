from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from predictarena.domain.errors import (
    AssetUnavailableError,
    DuplicatePredictionError,
    InvalidSlotError,
    PriceUnavailableError,
    SlotLockedError,
    UnknownDurationError,
    UnverifiedUserError,
    UserNotFoundError,
)
from predictarena.domain.models import Direction, PredictionStatus
from predictarena.domain.services import slot_clock
from predictarena.infrastructure.db.repositories.prediction_repository import PredictionRepository
from predictarena.infrastructure.db.repositories.user_score_repository import UserScoreRepository
from predictarena.services.prediction_service import PredictionService

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


@pytest.fixture()
def service(db_session, price_oracle, clock) -> PredictionService:
    return PredictionService(db_session, price_oracle, clock=clock)


async def test_create_places_prediction_in_current_slot(service, arena):
    prediction = await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert prediction.id is not None
    assert prediction.slot_number == 2
    assert prediction.status == PredictionStatus.ACTIVE
    assert prediction.price_start == Decimal("100")
    assert prediction.slot_start == datetime(2026, 6, 15, 8, 15, tzinfo=timezone.utc)
    assert prediction.expires_at == datetime(2026, 6, 15, 8, 29, 59, 999000, tzinfo=timezone.utc)
    assert prediction.expires_at == prediction.slot_end

    stats = await service.user_stats(arena.verified_user)
    assert stats.total_predictions == 1
    assert await service.active_count(arena.verified_user) == 1


async def test_create_accepts_plain_direction_strings(service, arena):
    prediction = await service.create(arena.verified_user, arena.asset, "down", "24h")
    assert prediction.direction == Direction.DOWN
    assert prediction.slot_number == 4


async def test_unverified_user_is_rejected(service, arena):
    with pytest.raises(UnverifiedUserError):
        await service.create(arena.unverified_user, arena.asset, Direction.UP, "1h")


async def test_unknown_user_is_rejected(service, arena):
    with pytest.raises(UserNotFoundError):
        await service.create("ghost", arena.asset, Direction.UP, "1h")


@pytest.mark.parametrize("symbol", ["DOGE-USD", "XRP-USD"])
async def test_unavailable_asset_is_rejected(service, arena, symbol):
    with pytest.raises(AssetUnavailableError):
        await service.create(arena.verified_user, symbol, Direction.UP, "1h")


async def test_unknown_duration_fails_before_any_lookup(service, arena, price_provider):
    with pytest.raises(UnknownDurationError):
        await service.create(arena.verified_user, arena.asset, Direction.UP, "90m")
    assert price_provider.calls == 0


async def test_second_prediction_in_slot_is_duplicate(service, arena):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    with pytest.raises(DuplicatePredictionError):
        await service.create(arena.verified_user, arena.asset, Direction.DOWN, "1h")

    assert len(await service.list_for_user(arena.verified_user)) == 1


async def test_other_durations_and_users_are_independent(service, arena):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    await service.create(arena.verified_user, arena.asset, Direction.UP, "6h")
    await service.create(arena.second_user, arena.asset, Direction.DOWN, "1h")

    assert len(await service.list_for_user(arena.verified_user)) == 2
    assert len(await service.list_for_user(arena.second_user)) == 1


async def test_storage_constraint_settles_concurrent_duplicates(service, arena, monkeypatch):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    # Simulates a racing request that passed the lookup before the first insert
    monkeypatch.setattr(PredictionRepository, "find_by_slot_key", AsyncMock(return_value=None))

    with pytest.raises(DuplicatePredictionError):
        await service.create(arena.verified_user, arena.asset, Direction.DOWN, "1h")

    stats = await service.user_stats(arena.verified_user)
    assert stats.total_predictions == 1


async def test_score_row_created_concurrently_still_counts(service, arena, db_session, monkeypatch):
    await UserScoreRepository(db_session).create(arena.verified_user, total_predictions=1)
    await db_session.commit()

    original = UserScoreRepository.increment_total_predictions
    calls = []

    async def increment(self, user_id):
        calls.append(user_id)
        if len(calls) == 1:
            return False  # row inserted by another request right after this check
        return await original(self, user_id)

    monkeypatch.setattr(UserScoreRepository, "increment_total_predictions", increment)

    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert len(calls) == 2
    stats = await service.user_stats(arena.verified_user)
    assert stats.total_predictions == 2


async def test_window_already_over_is_rejected(service, arena, monkeypatch):
    original = slot_clock.slot_boundaries

    def stale_boundaries(duration, slot_number, at=None):
        return original(duration, slot_number - 1, at)

    monkeypatch.setattr(slot_clock, "slot_boundaries", stale_boundaries)

    with pytest.raises(InvalidSlotError):
        await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert await service.list_for_user(arena.verified_user) == []


async def test_slot_close_to_its_end_is_locked(service, arena, clock):
    clock.advance(minutes=6)  # 10:26, slot 2 closes at 10:30

    with pytest.raises(SlotLockedError) as exc_info:
        await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert exc_info.value.message == "Slot 2 is locked. Wait 4 minutes for the next slot."
    assert await service.list_for_user(arena.verified_user) == []


async def test_next_slot_opens_after_lock(service, arena, clock):
    clock.advance(minutes=10)  # 10:30, slot 3 just started

    prediction = await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert prediction.slot_number == 3


async def test_missing_price_fails_without_persisting(service, arena, price_provider):
    price_provider.prices.clear()

    with pytest.raises(PriceUnavailableError):
        await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")

    assert await service.list_for_user(arena.verified_user) == []
    assert (await service.user_stats(arena.verified_user)).total_predictions == 0


async def test_cached_price_is_used_when_feed_is_down(service, arena, price_provider):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    price_provider.fail = True

    prediction = await service.create(arena.second_user, arena.asset, Direction.UP, "1h")

    assert prediction.price_start == Decimal("100")


async def test_history_filters_and_paging(service, arena, clock):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    await service.create(arena.verified_user, arena.asset, Direction.DOWN, "24h")

    assert len(await service.list_for_user(arena.verified_user, limit=1)) == 1
    assert len(await service.list_for_user(arena.verified_user, offset=1)) == 1
    assert len(await service.list_for_user(arena.verified_user, asset_symbol="ETH-USD")) == 0
    evaluated = await service.list_for_user(
        arena.verified_user, status=PredictionStatus.EVALUATED
    )
    assert evaluated == []


async def test_sentiment(service, arena):
    await service.create(arena.verified_user, arena.asset, Direction.UP, "1h")
    await service.create(arena.second_user, arena.asset, Direction.DOWN, "1h")

    buckets = await service.sentiment(arena.asset, "1h")

    assert [(b.slot_number, b.up_count, b.down_count) for b in buckets] == [(2, 1, 1)]
    with pytest.raises(AssetUnavailableError):
        await service.sentiment("XRP-USD", "1h")
    with pytest.raises(UnknownDurationError):
        await service.sentiment(arena.asset, "2h")
