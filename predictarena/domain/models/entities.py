"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class Direction(str, Enum):
    """Predicted price direction"""
    UP = "up"
    DOWN = "down"


class PredictionStatus(str, Enum):
    """Prediction lifecycle (active -> evaluated, one-way)"""
    ACTIVE = "active"
    EVALUATED = "evaluated"


class PredictionResult(str, Enum):
    """Outcome of a prediction"""
    PENDING = "pending"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class PeriodKind(str, Enum):
    """Recurring calendar period a duration's slots tile"""
    HOUR = "hour"
    THREE_HOURS = "3h_block"
    SIX_HOURS = "6h_block"
    DAY = "day"
    TWO_DAYS = "2d_block"
    WEEK = "iso_week"
    MONTH = "month"
    QUARTER = "quarter"
    HALF_YEAR = "half_year"
    YEAR = "year"


@dataclass(frozen=True)
class DurationSpec:
    """Slot layout of one prediction duration - Immutable"""
    key: str
    slot_count: int
    period: PeriodKind
    points: Tuple[int, ...]
    slot_length_minutes: Optional[int] = None
    slot_length_months: Optional[int] = None

    def __post_init__(self):
        if self.slot_count < 1:
            raise ValueError("Slot count must be at least 1")
        if len(self.points) != self.slot_count:
            raise ValueError(f"{self.key}: points must have one entry per slot")
        if any(p <= 0 for p in self.points):
            raise ValueError(f"{self.key}: points must be positive")
        if (self.slot_length_minutes is None) == (self.slot_length_months is None):
            raise ValueError(f"{self.key}: exactly one slot length unit is required")

    @property
    def is_calendar_based(self) -> bool:
        return self.slot_length_months is not None


@dataclass(frozen=True)
class SlotWindow:
    """
    One slot of a concrete period.

    `end` is the last millisecond of the slot; `end_exclusive` is the
    start of the following slot.
    """
    duration: str
    slot_number: int
    start: datetime
    end_exclusive: datetime

    @property
    def end(self) -> datetime:
        return self.end_exclusive - timedelta(milliseconds=1)

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end_exclusive


@dataclass(frozen=True)
class LockStatus:
    """Submission lock state of a slot at a given instant"""
    is_locked: bool
    time_until_start: timedelta
    time_until_unlock: timedelta


@dataclass(frozen=True)
class User:
    id: str
    email: str
    email_verified: bool
    is_admin: bool = False


@dataclass(frozen=True)
class Asset:
    id: int
    symbol: str
    name: str
    asset_type: str
    is_active: bool


@dataclass(frozen=True)
class SlotConfig:
    """Persisted configuration row for one (duration, slot)"""
    id: Optional[int]
    duration: str
    slot_number: int
    start_time: str
    end_time: str
    points_if_correct: int
    penalty_if_wrong: int


@dataclass
class Prediction:
    """One user's directional bet on one slot"""
    id: Optional[int]
    user_id: str
    asset_id: int
    direction: Direction
    duration: str
    slot_number: int
    slot_start: datetime
    slot_end: datetime
    created_at: datetime
    expires_at: datetime
    price_start: Decimal
    status: PredictionStatus = PredictionStatus.ACTIVE
    result: PredictionResult = PredictionResult.PENDING
    points_awarded: Optional[int] = None
    price_end: Optional[Decimal] = None
    evaluated_at: Optional[datetime] = None
    asset_symbol: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == PredictionStatus.ACTIVE


@dataclass(frozen=True)
class UserScore:
    """Per-user running totals"""
    user_id: str
    total_predictions: int
    correct_predictions: int
    monthly_score: int
    total_score: int

    @property
    def accuracy_percentage(self) -> float:
        if self.total_predictions <= 0:
            return 0.0
        return round(self.correct_predictions / self.total_predictions * 100, 2)


@dataclass(frozen=True)
class ScoreOutcome:
    """Result of scoring a matured prediction"""
    is_correct: bool
    base_points: int
    bonus: int
    points_awarded: int
    change_pct: Decimal

    @property
    def result(self) -> PredictionResult:
        return PredictionResult.CORRECT if self.is_correct else PredictionResult.INCORRECT


@dataclass(frozen=True)
class SentimentBucket:
    slot_number: int
    up_count: int
    down_count: int

    @property
    def total_count(self) -> int:
        return self.up_count + self.down_count
