"""
Wall-clock time in the reference zone.

Slot boundaries follow the calendar a person in Central Europe sees
(midnight, Monday, the 1st of the month), so all period arithmetic is
done on wall-clock readings and only converted to instants at the end.
DST is handled by zoneinfo; there is no fixed-offset arithmetic here.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from predictarena.domain.models import PeriodKind
from predictarena.utils.time import REFERENCE_TZ

# Anchor for two-day blocks: blocks start on days an even number of days after it
TWO_DAY_EPOCH = date(1970, 1, 1)

# Upper bound for walking out of a DST gap, one minute at a time
_MAX_GAP_MINUTES = 24 * 60

PERIOD_LENGTH = {
    PeriodKind.HOUR: {"minutes": 60},
    PeriodKind.THREE_HOURS: {"minutes": 180},
    PeriodKind.SIX_HOURS: {"minutes": 360},
    PeriodKind.DAY: {"days": 1},
    PeriodKind.TWO_DAYS: {"days": 2},
    PeriodKind.WEEK: {"days": 7},
    PeriodKind.MONTH: {"months": 1},
    PeriodKind.QUARTER: {"months": 3},
    PeriodKind.HALF_YEAR: {"months": 6},
    PeriodKind.YEAR: {"months": 12},
}


def _exists(local: datetime, tz: ZoneInfo) -> bool:
    roundtrip = (
        local.replace(tzinfo=tz)
        .astimezone(timezone.utc)
        .astimezone(tz)
        .replace(tzinfo=None, fold=0)
    )
    return roundtrip == local


def _add_months(local: datetime, months: int) -> datetime:
    index = local.year * 12 + (local.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(local.day, calendar.monthrange(year, month)[1])
    return local.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class WallTime:
    """Immutable wall-clock reading (naive) in a named zone."""

    local: datetime
    tz: ZoneInfo = field(default=REFERENCE_TZ, compare=False)

    def __post_init__(self):
        if self.local.tzinfo is not None:
            raise ValueError("WallTime holds a naive wall-clock reading")

    @classmethod
    def from_instant(cls, instant: datetime, tz: ZoneInfo = REFERENCE_TZ) -> "WallTime":
        if instant.tzinfo is None:
            raise ValueError("instant must be timezone-aware")
        return cls(instant.astimezone(tz).replace(tzinfo=None, fold=0), tz)

    def to_instant(self) -> datetime:
        """
        Resolve the reading to an aware UTC instant.

        Ambiguous readings (autumn) resolve to their first occurrence.
        Readings inside a spring-forward gap resolve to the transition
        instant, so boundaries stay ordered across the gap.
        """
        local = self.local
        steps = 0
        while not _exists(local, self.tz):
            local = local.replace(second=0, microsecond=0) + timedelta(minutes=1)
            steps += 1
            if steps > _MAX_GAP_MINUTES:
                raise ValueError(f"{self.local} does not resolve in {self.tz}")
        return local.replace(tzinfo=self.tz, fold=0).astimezone(timezone.utc)

    # ------------------------------------------------------------------
    # PERIOD ANCHORS
    # ------------------------------------------------------------------

    def period_start(self, kind: PeriodKind) -> "WallTime":
        local = self.local
        midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)

        if kind == PeriodKind.HOUR:
            start = local.replace(minute=0, second=0, microsecond=0)
        elif kind == PeriodKind.THREE_HOURS:
            start = midnight.replace(hour=local.hour - local.hour % 3)
        elif kind == PeriodKind.SIX_HOURS:
            start = midnight.replace(hour=local.hour - local.hour % 6)
        elif kind == PeriodKind.DAY:
            start = midnight
        elif kind == PeriodKind.TWO_DAYS:
            offset = (local.date() - TWO_DAY_EPOCH).days % 2
            start = midnight - timedelta(days=offset)
        elif kind == PeriodKind.WEEK:
            start = midnight - timedelta(days=local.weekday())
        elif kind == PeriodKind.MONTH:
            start = midnight.replace(day=1)
        elif kind == PeriodKind.QUARTER:
            start = midnight.replace(month=local.month - (local.month - 1) % 3, day=1)
        elif kind == PeriodKind.HALF_YEAR:
            start = midnight.replace(month=1 if local.month <= 6 else 7, day=1)
        elif kind == PeriodKind.YEAR:
            start = midnight.replace(month=1, day=1)
        else:
            raise ValueError(f"Unsupported period kind: {kind}")

        return WallTime(start, self.tz)

    def period_end(self, kind: PeriodKind) -> "WallTime":
        """Start of the period following the one containing this reading."""
        return self.period_start(kind).plus(**PERIOD_LENGTH[kind])

    # ------------------------------------------------------------------
    # ARITHMETIC
    # ------------------------------------------------------------------

    def plus(self, *, minutes: int = 0, days: int = 0, months: int = 0) -> "WallTime":
        local = self.local
        if months:
            local = _add_months(local, months)
        if days or minutes:
            local = local + timedelta(days=days, minutes=minutes)
        return WallTime(local, self.tz)

    def minutes_since(self, other: "WallTime") -> float:
        return (self.local - other.local).total_seconds() / 60

    def months_since(self, other: "WallTime") -> int:
        return (self.local.year - other.local.year) * 12 + (self.local.month - other.local.month)
