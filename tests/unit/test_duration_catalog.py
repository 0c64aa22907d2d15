import pytest

from predictarena.domain.errors import InvalidSlotError, UnknownDurationError
from predictarena.domain.services.duration_catalog import (
    DURATIONS,
    all_specs,
    check_slot_number,
    get_spec,
    penalty_for_points,
    points_for_slot,
    slot_labels,
)


def test_catalog_has_ten_durations_in_order():
    assert [spec.key for spec in all_specs()] == list(DURATIONS)
    assert len(DURATIONS) == 10


@pytest.mark.parametrize(
    "duration,slot_count,points",
    [
        ("1h", 4, (10, 5, 2, 1)),
        ("24h", 8, (40, 30, 20, 15, 10, 5, 2, 1)),
        ("1w", 7, (60, 50, 40, 30, 20, 10, 5)),
        ("1y", 4, (150, 100, 50, 20)),
    ],
)
def test_slot_layout(duration, slot_count, points):
    spec = get_spec(duration)
    assert spec.slot_count == slot_count
    assert spec.points == points


def test_points_decrease_from_first_to_last_slot():
    for spec in all_specs():
        assert list(spec.points) == sorted(spec.points, reverse=True)


def test_unknown_duration_is_rejected():
    with pytest.raises(UnknownDurationError) as exc_info:
        get_spec("2h")
    assert "2h" in exc_info.value.message


def test_penalty_is_half_the_points_but_never_zero():
    assert penalty_for_points(points_for_slot("1h", 1)) == 5
    assert penalty_for_points(points_for_slot("24h", 8)) == 1
    assert penalty_for_points(1) == 1
    assert penalty_for_points(15) == 7
    for spec in all_specs():
        for slot in range(1, spec.slot_count + 1):
            assert penalty_for_points(points_for_slot(spec.key, slot)) >= 1


def test_slot_number_out_of_range():
    spec = get_spec("1h")
    with pytest.raises(InvalidSlotError):
        check_slot_number(spec, 0)
    with pytest.raises(InvalidSlotError):
        check_slot_number(spec, 5)
    with pytest.raises(InvalidSlotError):
        points_for_slot("1y", 5)


def test_slot_labels():
    assert slot_labels("1h", 2) == ("00:15", "00:29")
    assert slot_labels("24h", 8) == ("21:00", "23:59")
    assert slot_labels("48h", 5) == ("Day 2 00:00", "Day 2 05:59")
    assert slot_labels("1w", 1) == ("Monday", "Monday")
    assert slot_labels("1m", 4) == ("Week 4", "Week 4")
    assert slot_labels("3m", 2) == ("Month 2", "Month 2")
    assert slot_labels("1y", 4) == ("Q4", "Q4")
