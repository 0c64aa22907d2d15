"""PredictArena slot prediction engine."""

__version__ = "1.0.0"
