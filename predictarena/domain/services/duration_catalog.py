"""
DURATION CATALOG
Static slot layout of every supported prediction duration.

Points run from the earliest (highest value) slot to the latest.
A wrong call costs half the slot's points, never less than one.
"""

from typing import Dict, List, Tuple

from predictarena.domain.errors import InvalidSlotError, UnknownDurationError
from predictarena.domain.models import DurationSpec, PeriodKind

DURATIONS: Tuple[str, ...] = ("1h", "3h", "6h", "24h", "48h", "1w", "1m", "3m", "6m", "1y")

_CATALOG: Dict[str, DurationSpec] = {
    spec.key: spec
    for spec in (
        DurationSpec("1h", 4, PeriodKind.HOUR, (10, 5, 2, 1), slot_length_minutes=15),
        DurationSpec("3h", 6, PeriodKind.THREE_HOURS, (20, 15, 10, 5, 2, 1), slot_length_minutes=30),
        DurationSpec("6h", 6, PeriodKind.SIX_HOURS, (30, 20, 15, 10, 5, 1), slot_length_minutes=60),
        DurationSpec("24h", 8, PeriodKind.DAY, (40, 30, 20, 15, 10, 5, 2, 1), slot_length_minutes=180),
        DurationSpec("48h", 8, PeriodKind.TWO_DAYS, (50, 40, 30, 20, 15, 10, 5, 1), slot_length_minutes=360),
        DurationSpec("1w", 7, PeriodKind.WEEK, (60, 50, 40, 30, 20, 10, 5), slot_length_minutes=1440),
        # Weeks of the month; the last slot absorbs days 29-31
        DurationSpec("1m", 4, PeriodKind.MONTH, (80, 60, 40, 20), slot_length_minutes=10080),
        DurationSpec("3m", 3, PeriodKind.QUARTER, (100, 60, 30), slot_length_months=1),
        DurationSpec("6m", 6, PeriodKind.HALF_YEAR, (120, 100, 80, 60, 40, 20), slot_length_months=1),
        DurationSpec("1y", 4, PeriodKind.YEAR, (150, 100, 50, 20), slot_length_months=3),
    )
}

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def get_spec(duration: str) -> DurationSpec:
    spec = _CATALOG.get(duration)
    if spec is None:
        raise UnknownDurationError(duration)
    return spec


def all_specs() -> List[DurationSpec]:
    return [_CATALOG[key] for key in DURATIONS]


def check_slot_number(spec: DurationSpec, slot_number: int) -> None:
    if not 1 <= slot_number <= spec.slot_count:
        raise InvalidSlotError(
            f"Invalid slot number {slot_number} for duration {spec.key}"
        )


def penalty_for_points(points: int) -> int:
    return max(1, points // 2)


def points_for_slot(duration: str, slot_number: int) -> int:
    spec = get_spec(duration)
    check_slot_number(spec, slot_number)
    return spec.points[slot_number - 1]



def _clock_label(total_minutes: int) -> str:
    return f"{total_minutes // 60 % 24:02d}:{total_minutes % 60:02d}"


def slot_labels(duration: str, slot_number: int) -> Tuple[str, str]:
    """
    Calendar labels stored with the slot configuration row.

    Sub-daily durations get the HH:MM span within their first period,
    the rest get weekday, week, month or quarter names.
    """
    spec = get_spec(duration)
    check_slot_number(spec, slot_number)
    index = slot_number - 1

    if spec.period in (PeriodKind.HOUR, PeriodKind.THREE_HOURS, PeriodKind.SIX_HOURS,
                       PeriodKind.DAY, PeriodKind.TWO_DAYS):
        start = index * spec.slot_length_minutes
        end = (index + 1) * spec.slot_length_minutes - 1
        if spec.period == PeriodKind.TWO_DAYS:
            day = f"Day {start // 1440 + 1} "
            return day + _clock_label(start), day + _clock_label(end)
        return _clock_label(start), _clock_label(end)
    if spec.period == PeriodKind.WEEK:
        return _WEEKDAYS[index], _WEEKDAYS[index]
    if spec.period == PeriodKind.MONTH:
        return f"Week {slot_number}", f"Week {slot_number}"
    if spec.key == "1y":
        return f"Q{slot_number}", f"Q{slot_number}"
    return f"Month {slot_number}", f"Month {slot_number}"
