"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    Direction,
    PeriodKind,
    PredictionResult,
    PredictionStatus,

    # Entities
    Asset,
    DurationSpec,
    LockStatus,
    Prediction,
    ScoreOutcome,
    SentimentBucket,
    SlotConfig,
    SlotWindow,
    User,
    UserScore,
)
from .views import SlotValidation, SlotView, SweepSummary

__all__ = [
    # Enums
    "Direction",
    "PeriodKind",
    "PredictionResult",
    "PredictionStatus",

    # Entities
    "Asset",
    "DurationSpec",
    "LockStatus",
    "Prediction",
    "ScoreOutcome",
    "SentimentBucket",
    "SlotConfig",
    "SlotWindow",
    "User",
    "UserScore",

    # Views
    "SlotValidation",
    "SlotView",
    "SweepSummary",
]
