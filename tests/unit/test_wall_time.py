from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from predictarena.domain.calendar.wall_time import WallTime
from predictarena.domain.models import PeriodKind

BERLIN = ZoneInfo("Europe/Berlin")


def test_round_trip_in_summer_and_winter():
    summer = datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)
    winter = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert WallTime.from_instant(summer).local == datetime(2026, 7, 1, 12, 0)
    assert WallTime.from_instant(winter).local == datetime(2026, 1, 1, 11, 0)
    assert WallTime.from_instant(summer).to_instant() == summer


def test_gap_reading_resolves_to_transition():
    gap = WallTime(datetime(2026, 3, 29, 2, 30), BERLIN)
    assert gap.to_instant() == datetime(2026, 3, 29, 1, 0, tzinfo=timezone.utc)


def test_ambiguous_reading_resolves_to_first_occurrence():
    repeated = WallTime(datetime(2026, 10, 25, 2, 30), BERLIN)
    assert repeated.to_instant() == datetime(2026, 10, 25, 0, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "kind,expected",
    [
        (PeriodKind.HOUR, datetime(2026, 8, 19, 14, 0)),
        (PeriodKind.THREE_HOURS, datetime(2026, 8, 19, 12, 0)),
        (PeriodKind.SIX_HOURS, datetime(2026, 8, 19, 12, 0)),
        (PeriodKind.DAY, datetime(2026, 8, 19)),
        (PeriodKind.WEEK, datetime(2026, 8, 17)),
        (PeriodKind.MONTH, datetime(2026, 8, 1)),
        (PeriodKind.QUARTER, datetime(2026, 7, 1)),
        (PeriodKind.HALF_YEAR, datetime(2026, 7, 1)),
        (PeriodKind.YEAR, datetime(2026, 1, 1)),
    ],
)
def test_period_start(kind, expected):
    reading = WallTime(datetime(2026, 8, 19, 14, 37), BERLIN)
    assert reading.period_start(kind).local == expected


def test_month_arithmetic_clamps_to_month_end():
    jan_31 = WallTime(datetime(2026, 1, 31), BERLIN)
    assert jan_31.plus(months=1).local == datetime(2026, 2, 28)
    assert jan_31.plus(months=13).local == datetime(2027, 2, 28)


def test_differences():
    start = WallTime(datetime(2026, 11, 1), BERLIN)
    later = WallTime(datetime(2027, 2, 1, 0, 30), BERLIN)
    assert later.months_since(start) == 3
    assert WallTime(datetime(2026, 11, 1, 1, 30), BERLIN).minutes_since(start) == 90


def test_naive_instant_is_rejected():
    with pytest.raises(ValueError):
        WallTime.from_instant(datetime(2026, 1, 1))
    with pytest.raises(ValueError):
        WallTime(datetime(2026, 1, 1, tzinfo=timezone.utc))
