"""Replay driver — runs a workout against recorded treadmill telemetry.

Usage:
    python -m replay.run --workout intervals.json --telemetry run_42.json
    python -m replay.run --workout intervals.json --telemetry run_42.json --mode polynomial

The telemetry file holds ``{"run_id": 42, "ticks": [{...}, ...]}`` where each
tick has the TelemetryTick fields plus an optional ``reference_speed_kph``
(foot pod). When reference speeds are present the run's speed pairs are fed
to the regression engine and the calibration is refitted.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from workout_engine.calibration.model import SpeedCalibrator
from workout_engine.calibration.regression_engine import RegressionEngine, RegressionOutcome
from workout_engine.config import AdjustmentConfig, CalibrationConfig, EngineConfig
from workout_engine.engine import ExecutionEngine
from workout_engine.models.enums import CalibrationMode, InBandPolicy
from workout_engine.models.events import WorkoutCompleted, WorkoutEvent, WorkoutSummary
from workout_engine.models.execution_state import Running
from workout_engine.models.telemetry import TelemetryTick
from workout_engine.models.workout import WorkoutDefinition
from workout_engine.serialization import workout_from_dict

from replay.config import (
    CALIBRATION_DEGREE,
    CALIBRATION_MAX_RUNS,
    FTP_WATTS,
    IN_BAND_POLICY,
    LTHR_BPM,
)

logger = logging.getLogger(__name__)

_TICK_FIELDS = (
    "elapsed_delta_ms",
    "distance_delta_m",
    "raw_speed_kph",
    "raw_incline_percent",
    "heart_rate_bpm",
    "power_watts",
)


@dataclass
class ReplayResult:
    """Everything a replay produced."""

    summary: WorkoutSummary | None
    events: list[WorkoutEvent] = field(default_factory=list)
    speed_pairs: list[tuple[float, float]] = field(default_factory=list)
    calibration: RegressionOutcome | None = None


def build_engine_config() -> EngineConfig:
    """EngineConfig from the environment (see replay.config)."""
    policy = InBandPolicy[IN_BAND_POLICY]
    return EngineConfig(
        lthr_bpm=LTHR_BPM,
        ftp_watts=FTP_WATTS,
        hr_adjustment=AdjustmentConfig.for_hr(in_band_policy=policy),
        power_adjustment=AdjustmentConfig.for_power(in_band_policy=policy),
    )


def parse_tick(data: dict[str, Any]) -> tuple[TelemetryTick, float | None]:
    """Split a recorded tick into a TelemetryTick and its reference speed."""
    values = {key: data[key] for key in _TICK_FIELDS if data.get(key) is not None}
    return TelemetryTick(**values), data.get("reference_speed_kph")


def replay(
    workout: WorkoutDefinition,
    ticks: list[dict[str, Any]],
    engine: ExecutionEngine,
    regression: RegressionEngine | None = None,
    run_id: int = 0,
) -> ReplayResult:
    """Drive ``engine`` through ``workout`` with recorded ticks.

    A run still in progress after the last tick is stopped. Speed pairs are
    only collected while the engine is running.
    """
    result = ReplayResult(summary=None)
    result.events.extend(engine.start(workout))

    for data in ticks:
        tick, reference = parse_tick(data)
        if isinstance(engine.state, Running) and reference is not None:
            result.speed_pairs.append((tick.raw_speed_kph, float(reference)))
        result.events.extend(engine.tick(tick))

    if not any(isinstance(e, WorkoutCompleted) for e in result.events):
        logger.info("Telemetry ended before the workout; stopping")
        result.events.extend(engine.stop())

    for event in result.events:
        if isinstance(event, WorkoutCompleted):
            result.summary = event.summary

    if regression is not None and result.speed_pairs:
        result.calibration = regression.on_run_completed(run_id, result.speed_pairs)
    return result


def _log_event(event: WorkoutEvent) -> None:
    logger.info("%s", event)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Replay recorded telemetry through a workout")
    parser.add_argument("--workout", type=Path, required=True, help="Workout definition JSON")
    parser.add_argument("--telemetry", type=Path, required=True, help="Recorded telemetry JSON")
    parser.add_argument(
        "--mode",
        choices=["linear", "polynomial"],
        default="linear",
        help="Calibration model used for speed conversion",
    )
    parser.add_argument("--linear-a", type=float, default=1.0, help="Manual calibration slope")
    parser.add_argument("--linear-b", type=float, default=0.0, help="Manual calibration intercept")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log per-step detail")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    with open(args.workout) as f:
        workout = workout_from_dict(json.load(f))
    with open(args.telemetry) as f:
        telemetry = json.load(f)

    calibrator = SpeedCalibrator()
    calibrator.set_linear(args.linear_a, args.linear_b)
    calibrator.set_mode(CalibrationMode[args.mode.upper()])
    regression = RegressionEngine(
        calibrator,
        CalibrationConfig(max_runs=CALIBRATION_MAX_RUNS, degree=CALIBRATION_DEGREE),
    )

    engine = ExecutionEngine(calibrator=calibrator, config=build_engine_config())
    engine.subscribe(_log_event)

    result = replay(
        workout,
        telemetry.get("ticks", []),
        engine,
        regression=regression,
        run_id=int(telemetry.get("run_id", 0)),
    )

    summary = result.summary
    if summary is not None:
        print(
            f"{summary.workout_name}: {summary.steps_completed}/{summary.total_steps} steps, "
            f"{summary.total_duration_ms / 60_000:.1f} min, {summary.total_distance_m:.0f} m"
        )
    if result.calibration is not None:
        outcome = result.calibration
        print(f"Calibration: {outcome.status.name} ({outcome.sample_count} samples)")
        if outcome.polynomial is not None:
            coefficients = ", ".join(f"{c:.6f}" for c in outcome.polynomial.coefficients)
            print(f"  degree {outcome.polynomial.degree}: [{coefficients}]")
        if outcome.linear_suggestion is not None:
            line = outcome.linear_suggestion
            print(f"  linear suggestion: a={line.a:.4f} b={line.b:.4f} (R²={line.r_squared:.3f})")


if __name__ == "__main__":
    main()
