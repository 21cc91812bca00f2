"""ExecutionEngine — runs a structured treadmill workout tick by tick.

The engine is a single-threaded state machine. Callers feed it decoded
telemetry and manual commands one at a time; it answers with events and
exposes the speed/incline command to send back to the treadmill.

Usage:
    engine = ExecutionEngine()
    engine.subscribe(print)
    engine.start(workout)
    for tick in telemetry:
        engine.tick(tick)
        send(engine.command)
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections import deque
from typing import Callable

from workout_engine.calibration.model import SpeedCalibrator
from workout_engine.config import AdjustmentConfig, EngineConfig
from workout_engine.execution.adjustment import AdjustmentController, direction_from_neutral
from workout_engine.execution.coefficients import CoefficientStore
from workout_engine.execution.flattener import flatten_steps
from workout_engine.execution.progression import (
    is_duration_reached,
    planned_pace,
    step_end_countdown,
)
from workout_engine.execution.validation import validate_workout
from workout_engine.models.coefficients import CoefficientSet, clamp_coefficient
from workout_engine.models.enums import (
    DEVICE_CHANGE_THRESHOLD,
    AdjustmentDirection,
    AdjustmentType,
    MetricKind,
    WorkoutPhase,
)
from workout_engine.models.events import (
    CountdownTick,
    InclineAdjusted,
    MetricBackInRange,
    MetricOutOfRange,
    SpeedAdjusted,
    StepEnded,
    StepEndReason,
    StepStarted,
    WorkoutCompleted,
    WorkoutEvent,
    WorkoutPaused,
    WorkoutResumed,
    WorkoutSummary,
)
from workout_engine.models.execution_state import (
    Completed,
    Countdown,
    CountdownKind,
    ExecutionState,
    Idle,
    Paused,
    PauseInterval,
    Running,
)
from workout_engine.models.execution_step import ExecutionStep, TargetBand
from workout_engine.models.telemetry import DeviceCommand, MetricSample, TelemetryTick
from workout_engine.models.workout import WorkoutDefinition

logger = logging.getLogger(__name__)

Listener = Callable[[WorkoutEvent], None]

# Reasons that count a step as done in the summary
_COMPLETING_REASONS = frozenset({
    StepEndReason.DURATION_REACHED,
    StepEndReason.HR_RANGE_REACHED,
    StepEndReason.SKIPPED_FORWARD,
})


class ExecutionEngine:
    """Orchestrates step timing, navigation, auto-adjustment and calibration.

    All mutations must be serialized by the caller. Every mutating method
    returns the events it produced; the same events are also delivered to
    subscribed listeners, in order.
    """

    def __init__(
        self,
        calibrator: SpeedCalibrator | None = None,
        config: EngineConfig | None = None,
        controller: AdjustmentController | None = None,
    ) -> None:
        self.calibrator = calibrator or SpeedCalibrator()
        self.config = config or EngineConfig()
        self.controller = controller or AdjustmentController()
        self._listeners: list[Listener] = []
        self._clear_run()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def steps(self) -> tuple[ExecutionStep, ...]:
        return self._steps

    @property
    def workout(self) -> WorkoutDefinition | None:
        return self._workout

    @property
    def pauses(self) -> tuple[PauseInterval, ...]:
        return tuple(self._pauses)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def phase_of(self, index: int) -> WorkoutPhase:
        return self._steps[index].phase

    def coefficient_snapshot(self) -> dict[str, CoefficientSet]:
        """Learned coefficients by identity key, including the live pair."""
        current = self._current_step()
        return self._coefficients.snapshot(current.identity_key if current else None)

    @property
    def command(self) -> DeviceCommand | None:
        """Speed/incline to send to the treadmill, or None when no run is active.

        The raw speed is always obtained through the calibrator's inverse and
        both values are clamped to the device limits. A target of 0 kph (a
        standing rest) is sent as 0.
        """
        if not isinstance(self._state, (Running, Paused)):
            return None
        limits = self.config.device_limits
        effective_pace, effective_incline = self._effective_targets()
        if effective_pace <= 0:
            adjusted = raw = 0.0
        else:
            adjusted = limits.clamp_speed(effective_pace)
            raw = limits.clamp_speed(self.calibrator.adjusted_to_raw(adjusted))
        return DeviceCommand(
            adjusted_speed_kph=adjusted,
            raw_speed_kph=raw,
            incline_percent=limits.clamp_incline(effective_incline),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, workout: WorkoutDefinition) -> list[WorkoutEvent]:
        """Begin a run from step 0.

        Allowed from Idle or Completed. Starting while a run is active is
        ignored.

        Raises:
            InvalidWorkoutDefinition: If the definition cannot be executed.
                The engine is left exactly as it was.
        """
        if isinstance(self._state, (Running, Paused)):
            logger.warning("start() ignored: a workout is already in progress")
            return []

        validate_workout(workout)
        warmup = flatten_steps(workout.warmup_steps, WorkoutPhase.WARMUP, 0)
        main = flatten_steps(workout.steps, WorkoutPhase.MAIN, len(warmup))
        cooldown = flatten_steps(workout.cooldown_steps, WorkoutPhase.COOLDOWN, len(warmup) + len(main))

        self._clear_run()
        self._workout = workout
        self._steps = tuple(warmup + main + cooldown)
        self._coefficients = CoefficientStore(workout.adjustment_scope)
        logger.info(
            "Starting workout %r: %d steps (%d warmup, %d main, %d cooldown)",
            workout.name, len(self._steps), len(warmup), len(main), len(cooldown),
        )

        events: list[WorkoutEvent] = []
        self._enter_step(0, events, paused=False)
        return self._dispatch(events)

    def pause(self) -> list[WorkoutEvent]:
        if not isinstance(self._state, Running):
            logger.warning("pause() ignored in state %s", type(self._state).__name__)
            return []
        self._pauses.append(PauseInterval(started_at_ms=self._wall_clock_ms()))
        self._countdown = None
        self._refresh_state(paused=True)
        logger.info("Workout paused at step %d", self._index)
        return self._dispatch([WorkoutPaused(self._steps[self._index])])

    def resume(self) -> list[WorkoutEvent]:
        if not isinstance(self._state, Paused):
            logger.warning("resume() ignored in state %s", type(self._state).__name__)
            return []
        self._close_pause()
        self.controller.on_resumed(self._workout_elapsed_ms)
        self._rearm_device_tracking()
        self._refresh_state(paused=False)
        pace, incline = self._effective_targets()
        logger.info("Workout resumed at step %d", self._index)
        return self._dispatch([WorkoutResumed(self._steps[self._index], pace, incline)])

    def stop(self) -> list[WorkoutEvent]:
        """End the run early. Terminal: no further ticks are accepted."""
        if not isinstance(self._state, (Running, Paused)):
            logger.warning("stop() ignored in state %s", type(self._state).__name__)
            return []
        events: list[WorkoutEvent] = []
        self._end_step(StepEndReason.WORKOUT_STOPPED, events)
        self._complete(events)
        return self._dispatch(events)

    def complete(self) -> list[WorkoutEvent]:
        return self.stop()

    def reset(self) -> None:
        """Discard the run and return to Idle."""
        self._clear_run()
        self.controller.reset()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_step(self) -> list[WorkoutEvent]:
        """Skip to the next step; on the last step the workout completes."""
        if not isinstance(self._state, (Running, Paused)):
            logger.warning("next_step() ignored in state %s", type(self._state).__name__)
            return []
        events: list[WorkoutEvent] = []
        self._advance(StepEndReason.SKIPPED_FORWARD, events)
        return self._dispatch(events)

    def previous_step(self) -> list[WorkoutEvent]:
        """Go back one step, or restart the step at the start of a phase."""
        if not isinstance(self._state, (Running, Paused)):
            logger.warning("previous_step() ignored in state %s", type(self._state).__name__)
            return []
        events: list[WorkoutEvent] = []
        index = self._index
        current = self._steps[index]
        if index == 0 or self._steps[index - 1].phase != current.phase:
            logger.debug("previous_step() at first %s step; restarting it", current.phase.name)
            self._end_step(StepEndReason.RESTARTED, events)
            self._enter_step(index, events)
        else:
            self._end_step(StepEndReason.SKIPPED_BACKWARD, events)
            self._enter_step(index - 1, events)
        return self._dispatch(events)

    def reset_to_step(self, index: int) -> list[WorkoutEvent]:
        """Jump to ``index``; out-of-range indices are clamped."""
        if not isinstance(self._state, (Running, Paused)):
            logger.warning("reset_to_step() ignored in state %s", type(self._state).__name__)
            return []
        target = max(0, min(len(self._steps) - 1, index))
        if target != index:
            logger.warning("reset_to_step(%d) clamped to %d", index, target)
        events: list[WorkoutEvent] = []
        self._end_step(StepEndReason.JUMPED, events)
        self._enter_step(target, events)
        return self._dispatch(events)

    # ------------------------------------------------------------------
    # Manual coefficient control
    # ------------------------------------------------------------------

    def nudge_speed(self, delta_kph: float) -> list[WorkoutEvent]:
        """Change the effective pace by ``delta_kph`` through the speed coefficient."""
        return self._nudge(AdjustmentType.SPEED, delta_kph)

    def nudge_incline(self, delta_percent: float) -> list[WorkoutEvent]:
        """Change the effective incline by ``delta_percent`` through the incline coefficient."""
        return self._nudge(AdjustmentType.INCLINE, delta_percent)

    def reset_coefficients(self) -> list[WorkoutEvent]:
        """Return every coefficient of the current phase to neutral."""
        if not isinstance(self._state, (Running, Paused)):
            return []
        before = self._coefficients.active
        self._coefficients.reset_phase()
        self._rearm_device_tracking()
        events: list[WorkoutEvent] = []
        self._emit_coefficient_changes(before, "reset", events)
        self._refresh_state(paused=isinstance(self._state, Paused))
        return self._dispatch(events)

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def tick(self, tick: TelemetryTick) -> list[WorkoutEvent]:
        """Advance the run by one telemetry update.

        Paused ticks only count toward paused time. Ticks before start or
        after completion are ignored. Speed or incline changed on the
        treadmill console is adopted into the coefficients before the
        auto-adjustment runs.
        """
        if isinstance(self._state, Paused):
            self._paused_ms += max(0, tick.elapsed_delta_ms)
            return []
        if not isinstance(self._state, Running):
            logger.debug("Ignoring tick in state %s", type(self._state).__name__)
            return []

        events: list[WorkoutEvent] = []
        delta_ms = max(0, tick.elapsed_delta_ms)
        delta_m = max(0.0, tick.distance_delta_m)
        self._step_elapsed_ms += delta_ms
        self._step_distance_m += delta_m
        self._workout_elapsed_ms += delta_ms
        self._workout_distance_m += delta_m
        self._record_metric(MetricKind.HR, tick.heart_rate_bpm)
        self._record_metric(MetricKind.POWER, tick.power_watts)

        step = self._steps[self._index]
        hr = tick.heart_rate_bpm if tick.heart_rate_bpm is not None and tick.heart_rate_bpm > 0 else None

        # HR_RANGE early end
        hr_countdown: Countdown | None = None
        if step.has_hr_end_target:
            hr_countdown = self._update_hr_range(step, hr, delta_ms)
            if hr_countdown is not None and hr_countdown.seconds <= 0:
                self._advance(StepEndReason.HR_RANGE_REACHED, events)
                return self._dispatch(events)

        if is_duration_reached(step, self._step_elapsed_ms, self._step_distance_m):
            self._advance(StepEndReason.DURATION_REACHED, events)
            return self._dispatch(events)

        self._follow_device(step, tick, events)
        self._auto_adjust(step, tick, events)

        # Countdown: HR grace period takes precedence over the step-end countdown
        if hr_countdown is not None:
            countdown = hr_countdown
        else:
            speed = self.calibrator.raw_to_adjusted(tick.raw_speed_kph)
            if speed <= 0:
                speed = self._effective_targets()[0]
            seconds = step_end_countdown(
                step, self._step_elapsed_ms, self._step_distance_m, speed,
                self.config.step_end_countdown_s,
            )
            countdown = Countdown(CountdownKind.STEP_END, seconds) if seconds is not None else None
        if countdown is not None and countdown != self._countdown:
            events.append(CountdownTick(countdown.kind, countdown.seconds))
        self._countdown = countdown

        self._refresh_state(paused=False)
        return self._dispatch(events)

    # ------------------------------------------------------------------
    # Internal: step transitions
    # ------------------------------------------------------------------

    def _enter_step(self, index: int, events: list[WorkoutEvent], paused: bool | None = None) -> None:
        """Make ``index`` the active step with fresh step progress.

        Entering a step in a different phase clears all coefficients. A
        Paused engine stays Paused unless ``paused`` says otherwise.
        """
        if paused is None:
            paused = isinstance(self._state, Paused)
        previous = self._current_step()
        step = self._steps[index]

        if previous is None or previous.phase != step.phase:
            self._coefficients.reset_phase()
            self._coefficients.enter_step(None, step.identity_key)
            if previous is not None:
                logger.info("Entering %s phase; coefficients reset", step.phase.name)
        else:
            self._coefficients.enter_step(previous.identity_key, step.identity_key)

        self._index = index
        self._step_elapsed_ms = 0
        self._step_distance_m = 0.0
        self._hr_in_band_ms = 0
        self._countdown = None
        self._out_of_range = {MetricKind.HR: False, MetricKind.POWER: False}
        self._rearm_device_tracking()
        self.controller.on_step_started(self._workout_elapsed_ms)

        self._refresh_state(paused=paused)
        pace, incline = self._effective_targets()
        logger.debug("Step %d started: %s (%s)", index, step.display_name, step.identity_key)
        events.append(StepStarted(step, pace, incline))

    def _end_step(self, reason: StepEndReason, events: list[WorkoutEvent]) -> None:
        step = self._steps[self._index]
        if reason in _COMPLETING_REASONS:
            self._steps_completed += 1
        logger.debug("Step %d ended: %s", self._index, reason.name)
        events.append(StepEnded(step, reason, self._step_elapsed_ms, self._step_distance_m))

    def _advance(self, reason: StepEndReason, events: list[WorkoutEvent]) -> None:
        self._end_step(reason, events)
        if self._index + 1 >= len(self._steps):
            self._complete(events)
        else:
            self._enter_step(self._index + 1, events)

    def _complete(self, events: list[WorkoutEvent]) -> None:
        self._close_pause()
        self._countdown = None
        self._state = Completed(
            total_duration_ms=self._workout_elapsed_ms,
            total_distance_m=self._workout_distance_m,
            steps_completed=self._steps_completed,
            total_steps=len(self._steps),
            pauses=tuple(self._pauses),
        )
        summary = WorkoutSummary(
            workout_name=self._workout.name if self._workout else "",
            steps_completed=self._steps_completed,
            total_steps=len(self._steps),
            total_duration_ms=self._workout_elapsed_ms,
            total_distance_m=self._workout_distance_m,
            paused_ms=self._paused_ms,
        )
        logger.info(
            "Workout complete: %d/%d steps, %.1f min, %.0f m",
            summary.steps_completed, summary.total_steps,
            summary.total_duration_ms / 60_000, summary.total_distance_m,
        )
        events.append(WorkoutCompleted(summary))

    # ------------------------------------------------------------------
    # Internal: per-tick helpers
    # ------------------------------------------------------------------

    def _record_metric(self, metric: MetricKind, value: float | None) -> None:
        if value is None or value <= 0:
            return
        history = self._history[metric]
        history.append(MetricSample(self._workout_elapsed_ms, value))
        oldest_allowed = self._workout_elapsed_ms - self.config.metric_history_s * 1000
        while history and history[0].elapsed_ms < oldest_allowed:
            history.popleft()

    def _update_hr_range(self, step: ExecutionStep, hr: float | None, delta_ms: int) -> Countdown | None:
        """Track time spent inside the HR end band; returns the grace countdown."""
        band = step.hr_end_target_band(self.config.lthr_bpm)
        if hr is None or band is None or not band.contains(hr):
            self._hr_in_band_ms = 0
            return None
        self._hr_in_band_ms += delta_ms
        grace_ms = self.config.hr_range_grace_s * 1000
        remaining_ms = max(0, grace_ms - self._hr_in_band_ms)
        return Countdown(CountdownKind.HR_RANGE, math.ceil(remaining_ms / 1000))

    def _auto_adjust(self, step: ExecutionStep, tick: TelemetryTick, events: list[WorkoutEvent]) -> None:
        if step.has_hr_target:
            metric = MetricKind.HR
            value = tick.heart_rate_bpm
            band = step.hr_target_band(self.config.lthr_bpm)
            adjustment_config = self.config.hr_adjustment
        elif step.has_power_target:
            metric = MetricKind.POWER
            value = tick.power_watts
            band = step.power_target_band(self.config.ftp_watts)
            adjustment_config = self.config.power_adjustment
        else:
            return
        # A missing or zero reading means no sensor; never steer on it
        if value is None or value <= 0 or band is None:
            return

        self._track_range(metric, value, band, events)

        before = self._coefficients.active
        decision = self.controller.evaluate(
            value,
            band,
            before.get(step.adjustment_type),
            self._history[metric],
            self._workout_elapsed_ms,
            adjustment_config,
            metric,
        )
        if not decision.adjusted:
            return
        self._coefficients.update(
            before.with_value(step.adjustment_type, decision.coefficient),
            step.identity_key,
        )
        self._device_settled[step.adjustment_type] = False
        self._emit_coefficient_changes(before, decision.reason, events)

    def _follow_device(self, step: ExecutionStep, tick: TelemetryTick, events: list[WorkoutEvent]) -> None:
        """Adopt speed/incline changes made on the treadmill console.

        Once the reported value has settled on the engine's own target, a
        reading that moves away from it becomes the coefficient
        ``actual / planned``. Each change the engine makes itself re-arms the
        wait, so belt acceleration is never taken for a console change.
        A stopped belt teaches nothing.
        """
        if tick.raw_speed_kph <= 0:
            return
        limits = self.config.device_limits
        pace, incline = self._effective_targets()
        before = self._coefficients.active
        after = self._adopt(
            AdjustmentType.SPEED,
            before,
            self.calibrator.raw_to_adjusted(tick.raw_speed_kph),
            limits.clamp_speed(pace),
            planned_pace(step, self._step_elapsed_ms, self._step_distance_m),
            limits.settle_speed_kph,
            step,
        )
        after = self._adopt(
            AdjustmentType.INCLINE,
            after,
            tick.raw_incline_percent,
            limits.clamp_incline(incline),
            step.incline_target_percent,
            limits.settle_incline_percent,
            step,
        )
        if after == before:
            return
        self._coefficients.update(after, step.identity_key)
        self._emit_coefficient_changes(before, "device", events)

    def _adopt(
        self,
        adjustment_type: AdjustmentType,
        coefficients: CoefficientSet,
        actual: float,
        target: float,
        planned: float,
        tolerance: float,
        step: ExecutionStep,
    ) -> CoefficientSet:
        if planned <= 0:
            return coefficients
        if not self._device_settled[adjustment_type]:
            if abs(actual - target) <= tolerance:
                self._device_settled[adjustment_type] = True
            return coefficients

        limits = self._adjustment_config_for(step)
        current = coefficients.get(adjustment_type)
        learned = clamp_coefficient(actual / planned, limits.min_clamp, limits.max_clamp)
        if abs(learned - current) <= DEVICE_CHANGE_THRESHOLD:
            return coefficients
        logger.debug(
            "%s changed on the treadmill: coefficient %.3f -> %.3f",
            adjustment_type.name.capitalize(), current, learned,
        )
        return coefficients.with_value(adjustment_type, learned)

    def _track_range(
        self,
        metric: MetricKind,
        value: float,
        band: TargetBand,
        events: list[WorkoutEvent],
    ) -> None:
        inside = band.contains(value)
        if not inside and not self._out_of_range[metric]:
            events.append(MetricOutOfRange(metric, value, band.low, band.high))
        elif inside and self._out_of_range[metric]:
            events.append(MetricBackInRange(metric, value, band.low, band.high))
        self._out_of_range[metric] = not inside

    def _nudge(self, adjustment_type: AdjustmentType, delta: float) -> list[WorkoutEvent]:
        if not isinstance(self._state, (Running, Paused)):
            logger.warning("Manual adjustment ignored in state %s", type(self._state).__name__)
            return []
        step = self._steps[self._index]
        planned = (
            planned_pace(step, self._step_elapsed_ms, self._step_distance_m)
            if adjustment_type == AdjustmentType.SPEED
            else step.incline_target_percent
        )
        if planned <= 0:
            logger.debug("Cannot scale a zero %s target", adjustment_type.name.lower())
            return []

        limits = self._adjustment_config_for(step)
        before = self._coefficients.active
        current = before.get(adjustment_type)
        coefficient = clamp_coefficient(
            (planned * current + delta) / planned, limits.min_clamp, limits.max_clamp,
        )
        self._coefficients.update(before.with_value(adjustment_type, coefficient), step.identity_key)
        self._device_settled[adjustment_type] = False
        events: list[WorkoutEvent] = []
        self._emit_coefficient_changes(before, "manual", events)
        self._refresh_state(paused=isinstance(self._state, Paused))
        return self._dispatch(events)

    def _emit_coefficient_changes(
        self,
        before: CoefficientSet,
        reason: str,
        events: list[WorkoutEvent],
    ) -> None:
        after = self._coefficients.active
        pace, incline = self._effective_targets()
        if after.speed != before.speed:
            events.append(SpeedAdjusted(pace, after.speed, _direction(before.speed, after.speed), reason))
        if after.incline != before.incline:
            events.append(InclineAdjusted(incline, after.incline, _direction(before.incline, after.incline), reason))

    # ------------------------------------------------------------------
    # Internal: state
    # ------------------------------------------------------------------

    def _adjustment_config_for(self, step: ExecutionStep) -> AdjustmentConfig:
        if step.has_power_target:
            return self.config.power_adjustment
        return self.config.hr_adjustment

    def _effective_targets(self) -> tuple[float, float]:
        if not self._steps:
            return 0.0, 0.0
        step = self._steps[self._index]
        coefficients = self._coefficients.active
        pace = planned_pace(step, self._step_elapsed_ms, self._step_distance_m)
        return pace * coefficients.speed, step.incline_target_percent * coefficients.incline

    def _current_step(self) -> ExecutionStep | None:
        if isinstance(self._state, (Running, Paused)):
            return self._steps[self._index]
        return None

    def _refresh_state(self, paused: bool) -> None:
        step = self._steps[self._index]
        coefficients = self._coefficients.active
        common = dict(
            step_index=self._index,
            step=step,
            step_elapsed_ms=self._step_elapsed_ms,
            step_distance_m=self._step_distance_m,
            workout_elapsed_ms=self._workout_elapsed_ms,
            workout_distance_m=self._workout_distance_m,
            coefficients=coefficients,
        )
        if paused:
            self._state = Paused(**common)
            return

        pace, incline = self._effective_targets()
        direction = AdjustmentDirection.UNCHANGED
        if step.has_auto_adjust_target:
            direction = direction_from_neutral(coefficients.get(step.adjustment_type))
        self._state = Running(
            **common,
            planned_pace_kph=planned_pace(step, self._step_elapsed_ms, self._step_distance_m),
            effective_pace_kph=pace,
            effective_incline_percent=incline,
            adjustment_active=direction != AdjustmentDirection.UNCHANGED,
            adjustment_direction=direction,
            countdown=self._countdown,
        )

    def _wall_clock_ms(self) -> int:
        return self._workout_elapsed_ms + self._paused_ms

    def _close_pause(self) -> None:
        if self._pauses and self._pauses[-1].ended_at_ms is None:
            self._pauses[-1] = dataclasses.replace(self._pauses[-1], ended_at_ms=self._wall_clock_ms())

    def _clear_run(self) -> None:
        self._state: ExecutionState = Idle()
        self._workout: WorkoutDefinition | None = None
        self._steps: tuple[ExecutionStep, ...] = ()
        self._coefficients = CoefficientStore()
        self._index = 0
        self._step_elapsed_ms = 0
        self._step_distance_m = 0.0
        self._workout_elapsed_ms = 0
        self._workout_distance_m = 0.0
        self._paused_ms = 0
        self._pauses: list[PauseInterval] = []
        self._steps_completed = 0
        self._hr_in_band_ms = 0
        self._countdown: Countdown | None = None
        self._history: dict[MetricKind, deque[MetricSample]] = {
            MetricKind.HR: deque(),
            MetricKind.POWER: deque(),
        }
        self._out_of_range = {MetricKind.HR: False, MetricKind.POWER: False}
        self._device_settled = {AdjustmentType.SPEED: False, AdjustmentType.INCLINE: False}

    def _rearm_device_tracking(self) -> None:
        for adjustment_type in self._device_settled:
            self._device_settled[adjustment_type] = False

    def _dispatch(self, events: list[WorkoutEvent]) -> list[WorkoutEvent]:
        """Deliver events to every listener; a failing listener is logged and skipped."""
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception("Listener %r failed on %s", listener, type(event).__name__)
        return events


def _direction(before: float, after: float) -> AdjustmentDirection:
    if after > before:
        return AdjustmentDirection.INCREASING
    if after < before:
        return AdjustmentDirection.DECREASING
    return AdjustmentDirection.UNCHANGED
