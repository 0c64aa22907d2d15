"""
LOCK GATE
Refuses submissions close to a slot boundary.

A bet placed seconds before a boundary would be scored on an entry
price almost equal to the settlement price. Submissions are therefore
refused once the slot's start, or for the running slot its closing
boundary, is LOCK_WINDOW away or less.
"""

from datetime import datetime, timedelta
from typing import Optional

from predictarena.domain.models import LockStatus, SlotWindow
from predictarena.domain.services.slot_clock import slot_boundaries
from predictarena.utils.time import now_utc

LOCK_WINDOW = timedelta(minutes=5)

_ZERO = timedelta(0)


def lock_status_for_window(window: SlotWindow, now: datetime) -> LockStatus:
    """
    Lock state of a concrete slot window at `now`.

    - Not started: locked when the start is within LOCK_WINDOW; the lock
      lifts when the slot opens.
    - Running: locked when the closing boundary is within LOCK_WINDOW;
      the lock lifts when the next slot opens.
    - Ended: locked; nothing left to unlock in this period.
    """
    if now < window.start:
        until_start = window.start - now
        locked = until_start <= LOCK_WINDOW
        return LockStatus(
            is_locked=locked,
            time_until_start=until_start,
            time_until_unlock=until_start if locked else _ZERO,
        )

    if now < window.end_exclusive:
        until_close = window.end_exclusive - now
        locked = until_close <= LOCK_WINDOW
        return LockStatus(
            is_locked=locked,
            time_until_start=_ZERO,
            time_until_unlock=max(until_close, _ZERO) if locked else _ZERO,
        )

    return LockStatus(is_locked=True, time_until_start=_ZERO, time_until_unlock=_ZERO)


def lock_status(duration: str, slot_number: int, now: Optional[datetime] = None) -> LockStatus:
    now = now or now_utc()
    return lock_status_for_window(slot_boundaries(duration, slot_number, now), now)


def is_locked(duration: str, slot_number: int, now: Optional[datetime] = None) -> bool:
    return lock_status(duration, slot_number, now).is_locked
