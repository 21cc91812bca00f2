"""Serialization module — workout definitions to and from JSON-style dicts."""

from workout_engine.serialization.workout_json import (
    workout_from_dict,
    workout_from_json,
    workout_to_dict,
    workout_to_json,
)

__all__ = ["workout_from_dict", "workout_from_json", "workout_to_dict", "workout_to_json"]
