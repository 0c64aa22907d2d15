"""
SLOT CLOCK
Instant <-> slot number conversion for every duration.

Every duration tiles a recurring period (hour, day, ISO week, month,
quarter, ...) in the reference zone with slot_count contiguous slots.
The slot containing an instant is found arithmetically from the
elapsed wall-clock time and then checked against the real boundaries,
so DST days and the last-slot clamp never disagree with
slot_boundaries().
"""

import math
from datetime import datetime
from typing import List, Optional, Tuple

from predictarena.domain.calendar.wall_time import WallTime
from predictarena.domain.models import DurationSpec, SlotWindow
from predictarena.domain.services.duration_catalog import check_slot_number, get_spec
from predictarena.utils.time import now_utc


def _slot_start(spec: DurationSpec, period_start: WallTime, slot_number: int) -> WallTime:
    offset = slot_number - 1
    if spec.is_calendar_based:
        return period_start.plus(months=offset * spec.slot_length_months)
    return period_start.plus(minutes=offset * spec.slot_length_minutes)


def _boundaries(spec: DurationSpec, period_start: WallTime) -> List[datetime]:
    """
    Instants [start of slot 1, ..., start of slot N, end of period].

    The period end closes the last slot, which is what stretches the
    final week of a month over days 29-31.
    """
    starts = [
        _slot_start(spec, period_start, n).to_instant()
        for n in range(1, spec.slot_count + 1)
    ]
    period_end = period_start.period_end(spec.period).to_instant()
    return starts + [period_end]


def _period_start(spec: DurationSpec, instant: datetime) -> WallTime:
    return WallTime.from_instant(instant).period_start(spec.period)


def _arithmetic_slot(spec: DurationSpec, wall: WallTime, period_start: WallTime) -> int:
    if spec.is_calendar_based:
        index = wall.months_since(period_start) // spec.slot_length_months
    else:
        index = math.floor(wall.minutes_since(period_start) / spec.slot_length_minutes)
    return min(max(index + 1, 1), spec.slot_count)


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None:
        raise ValueError("instant must be timezone-aware")


# ------------------------------------------------------------------
# PUBLIC API
# ------------------------------------------------------------------

def slot_number_at(instant: datetime, duration: str) -> int:
    """Slot number (1-indexed) of the slot containing `instant`."""
    _require_aware(instant)
    spec = get_spec(duration)
    wall = WallTime.from_instant(instant)
    period_start = wall.period_start(spec.period)
    candidate = _arithmetic_slot(spec, wall, period_start)

    # bounds[n] is the start of slot n + 1 (or the period end)
    bounds = _boundaries(spec, period_start)
    while candidate < spec.slot_count and instant >= bounds[candidate]:
        candidate += 1
    while candidate > 1 and instant < bounds[candidate - 1]:
        candidate -= 1
    return candidate


def period_bounds(duration: str, at: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[start, end) of the period containing `at`."""
    at = at or now_utc()
    _require_aware(at)
    spec = get_spec(duration)
    period_start = _period_start(spec, at)
    return period_start.to_instant(), period_start.period_end(spec.period).to_instant()


def slot_boundaries(duration: str, slot_number: int, at: Optional[datetime] = None) -> SlotWindow:
    """Boundaries of `slot_number` within the period containing `at`."""
    at = at or now_utc()
    _require_aware(at)
    spec = get_spec(duration)
    check_slot_number(spec, slot_number)
    bounds = _boundaries(spec, _period_start(spec, at))
    return SlotWindow(
        duration=duration,
        slot_number=slot_number,
        start=bounds[slot_number - 1],
        end_exclusive=bounds[slot_number],
    )


def slots_in_period(duration: str, at: Optional[datetime] = None) -> List[SlotWindow]:
    at = at or now_utc()
    _require_aware(at)
    spec = get_spec(duration)
    bounds = _boundaries(spec, _period_start(spec, at))
    return [
        SlotWindow(duration, n, bounds[n - 1], bounds[n])
        for n in range(1, spec.slot_count + 1)
    ]


def current_slot(duration: str, at: Optional[datetime] = None) -> SlotWindow:
    at = at or now_utc()
    return slot_boundaries(duration, slot_number_at(at, duration), at)


def next_slot(duration: str, at: Optional[datetime] = None) -> SlotWindow:
    """The slot after the current one, rolling into the next period."""
    at = at or now_utc()
    spec = get_spec(duration)
    current = current_slot(duration, at)
    if current.slot_number < spec.slot_count:
        return slot_boundaries(duration, current.slot_number + 1, at)
    _, period_end = period_bounds(duration, at)
    return slot_boundaries(duration, 1, period_end)
