"""Custom exception hierarchy for the workout engine."""

from __future__ import annotations


class WorkoutEngineError(Exception):
    """Base exception for all workout_engine errors."""


class InvalidWorkoutDefinition(WorkoutEngineError, ValueError):
    """A workout definition cannot be executed; the run never starts."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("Invalid workout definition: " + "; ".join(problems))
        self.problems = problems


class CalibrationError(WorkoutEngineError):
    """Base exception for speed calibration fitting."""


class InsufficientCalibrationData(CalibrationError):
    """Too few samples (or too narrow a speed range) for a regression."""


class CalibrationFitRejected(CalibrationError):
    """Every candidate fit failed its monotonicity or sanity checks."""
