"""
DOMAIN MODELS - READ VIEWS

Immutable results handed from the services to the API layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from .entities import LockStatus


@dataclass(frozen=True)
class SlotView:
    """
    A slot as shown to users: reference-zone labels, UTC instants,
    the points it is worth and whether it currently accepts bets.
    """
    duration: str
    slot_number: int
    start_time: str
    end_time: str
    start: datetime
    end: datetime
    points_if_correct: int
    penalty_if_wrong: int
    is_active: bool
    time_remaining: timedelta
    lock: LockStatus

    @property
    def is_locked(self) -> bool:
        return self.lock.is_locked


@dataclass(frozen=True)
class SlotValidation:
    is_valid: bool
    reason: Optional[str] = None
    slot: Optional[SlotView] = None


@dataclass
class SweepSummary:
    """Outcome counts of one evaluation sweep"""
    evaluated: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: List[int] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.evaluated + self.skipped + self.failed
