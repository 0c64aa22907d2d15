"""
Domain Errors
Every rule violation the slot engine can report, with a human-readable reason.
"""

from typing import Optional


class PredictionEngineError(Exception):
    """Base class for all slot engine errors"""

    default_message = "Prediction request rejected"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ------------------------------------------------------------------
# Bad input
# ------------------------------------------------------------------

class UnknownDurationError(PredictionEngineError):
    default_message = "Unknown duration"

    def __init__(self, duration: str):
        self.duration = duration
        super().__init__(f"Unknown duration: {duration!r}")


# ------------------------------------------------------------------
# Business rules
# ------------------------------------------------------------------

class UnverifiedUserError(PredictionEngineError):
    default_message = (
        "Email verification required. Please verify your email before making predictions."
    )


class UserNotFoundError(UnverifiedUserError):
    default_message = "User not found"


class AssetUnavailableError(PredictionEngineError):
    default_message = "Asset is not available for predictions"


class InvalidSlotError(PredictionEngineError):
    default_message = (
        "Slot is not valid for predictions - only current and future slots are allowed"
    )


class DuplicatePredictionError(PredictionEngineError):
    default_message = "You already have a prediction for this asset in the current slot"


class SlotLockedError(PredictionEngineError):
    default_message = "Slot is locked for new predictions"


# ------------------------------------------------------------------
# Upstream dependency
# ------------------------------------------------------------------

class PriceUnavailableError(PredictionEngineError):
    default_message = "Unable to get current asset price"


# ------------------------------------------------------------------
# Evaluation
# ------------------------------------------------------------------

class PredictionNotFoundError(PredictionEngineError):
    default_message = "Prediction not found"


class NotActiveError(PredictionEngineError):
    default_message = "Prediction is not active"


class NotMaturedError(PredictionEngineError):
    default_message = "Prediction has not expired yet"
