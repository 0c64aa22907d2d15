from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from predictarena.domain.models import SlotWindow
from predictarena.domain.services.lock_gate import (
    LOCK_WINDOW,
    is_locked,
    lock_status,
    lock_status_for_window,
)

BERLIN = ZoneInfo("Europe/Berlin")


def berlin(*args) -> datetime:
    return datetime(*args, tzinfo=BERLIN)


@pytest.fixture()
def window():
    return SlotWindow("1h", 3, berlin(2026, 6, 15, 10, 30), berlin(2026, 6, 15, 10, 45))


def test_upcoming_slot_far_from_start_is_open(window):
    status = lock_status_for_window(window, window.start - timedelta(minutes=20))
    assert not status.is_locked
    assert status.time_until_start == timedelta(minutes=20)
    assert status.time_until_unlock == timedelta(0)


@pytest.mark.parametrize("minutes_before", [5, 4, 1, 0.01])
def test_upcoming_slot_locks_within_five_minutes_of_start(window, minutes_before):
    now = window.start - timedelta(minutes=minutes_before)
    status = lock_status_for_window(window, now)
    assert status.is_locked
    assert status.time_until_unlock == window.start - now


def test_running_slot_is_open_until_close_to_its_end(window):
    assert not lock_status_for_window(window, window.end_exclusive - timedelta(minutes=10)).is_locked
    assert not lock_status_for_window(
        window, window.end_exclusive - LOCK_WINDOW - timedelta(seconds=1)
    ).is_locked


def test_running_slot_locks_in_its_last_five_minutes(window):
    now = window.end_exclusive - timedelta(minutes=4)
    status = lock_status_for_window(window, now)
    assert status.is_locked
    assert status.time_until_start == timedelta(0)
    assert status.time_until_unlock == timedelta(minutes=4)


def test_finished_slot_stays_locked(window):
    status = lock_status_for_window(window, window.end_exclusive + timedelta(minutes=1))
    assert status.is_locked
    assert status.time_until_unlock == timedelta(0)


def test_lock_status_resolves_the_slot_from_the_clock():
    now = berlin(2026, 6, 15, 10, 26)
    assert is_locked("1h", 2, now)
    assert not is_locked("1h", 4, now)
    status = lock_status("1h", 3, now)
    assert status.is_locked
    assert status.time_until_start == timedelta(minutes=4)
