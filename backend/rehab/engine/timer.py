"""
Countdown state machine for one exercise execution.

Everything here is pure: each function takes the current TimerState plus one
resolved ExercisePlan and returns a Transition (the next state and the
effects the driver must carry out, in order). Persistence effects always
come before the signals that announce them.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from rehab.engine.defaults import default_settings, instruction
from rehab.schemas.exercise_settings import (
    DynamicSettings,
    ExerciseKind,
    ExerciseSettings,
    FoamRollingSettings,
    RepBasedSettings,
    WalkSettings,
)
from rehab.schemas.progress import ExerciseProgress
from rehab.settings import Settings

log = logging.getLogger(__name__)

class Phase(str, Enum):
    prepare = "prepare"
    exercise = "exercise"
    mini_rest = "miniRest"
    rest = "rest"
    rolling = "rolling"
    completed = "completed"
    scheme_completed = "schemeCompleted"

class Cue(str, Enum):
    prepare = "prepare"
    start = "start"
    hold = "hold"
    finish = "finish"
    rest = "rest"
    completed = "completed"

class SignalKind(str, Enum):
    hold_cue = "hold-cue"
    phase_changed = "phase-changed"
    scheme_completed = "scheme-completed"
    completed = "completed"

class TimerEvent(str, Enum):
    tick = "tick"
    complete = "complete"

@dataclass(frozen=True, slots=True)
class TimerState:
    current_time: int = 0
    is_running: bool = False
    phase: Phase = Phase.prepare
    current_set: int = 1
    current_rep: int = 1
    current_session: int = 1
    current_scheme: int = 1
    scheme_one_completed: bool = False
    instruction: str = ""
    hold_sound_played: bool = False

@dataclass(frozen=True, slots=True)
class ExercisePlan:
    exercise_type: str
    kind: ExerciseKind
    settings: Optional[ExerciseSettings]
    dual_scheme: bool = False
    exercise_id: Optional[str] = None    # program exercise behind the day-list entry
    exercise_name: Optional[str] = None

    @property
    def text_id(self) -> str:
        return self.exercise_id or self.exercise_type

# EFFECTS
@dataclass(frozen=True, slots=True)
class SaveProgress:
    completed_sets: int
    current_set: int
    current_rep: int
    current_scheme: Optional[int] = None
    scheme_one_completed: Optional[bool] = None

@dataclass(frozen=True, slots=True)
class ClearProgress:
    pass

@dataclass(frozen=True, slots=True)
class MarkDailyCompleted:
    pass

@dataclass(frozen=True, slots=True)
class RecordHistory:
    total_sets: int
    name_suffix: str = ""

@dataclass(frozen=True, slots=True)
class Signal:
    kind: SignalKind
    phase: Phase
    cue: Optional[Cue] = None
    delay_seconds: Optional[float] = None  # suggested wait before leaving the screen

Effect = Union[SaveProgress, ClearProgress, MarkDailyCompleted, RecordHistory, Signal]

@dataclass(frozen=True, slots=True)
class Transition:
    state: TimerState
    effects: tuple[Effect, ...] = ()

def format_time(seconds: int) -> str:
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins:02d}:{secs:02d}"

def settings_for(plan: ExercisePlan, config: Settings):
    """The plan's settings, or the defaults for its kind when they don't fit."""
    expected = {
        ExerciseKind.hold: RepBasedSettings,
        ExerciseKind.walk: WalkSettings,
        ExerciseKind.dynamic: DynamicSettings,
        ExerciseKind.foam_rolling: FoamRollingSettings,
    }[plan.kind]
    if isinstance(plan.settings, expected):
        return plan.settings
    log.warning("no %s settings for %s, using defaults", plan.kind.value, plan.exercise_type)
    return default_settings(plan.kind, config)

def with_settings(plan: ExercisePlan, config: Settings) -> ExercisePlan:
    """Same plan with its fallback settings filled in, so later transitions need not repeat the lookup."""
    settings = settings_for(plan, config)
    if settings is plan.settings:
        return plan
    return replace(plan, settings=settings)

def _scheme(plan: ExercisePlan, state: TimerState) -> Optional[int]:
    return state.current_scheme if plan.dual_scheme else None

def _save(plan: ExercisePlan, state: TimerState, *, completed_sets: int) -> SaveProgress:
    if plan.dual_scheme:
        return SaveProgress(
            completed_sets=completed_sets,
            current_set=state.current_set,
            current_rep=state.current_rep,
            current_scheme=state.current_scheme,
            scheme_one_completed=state.scheme_one_completed,
        )
    return SaveProgress(completed_sets=completed_sets, current_set=state.current_set, current_rep=state.current_rep)

def _clamp(value: int, upper: int) -> int:
    return min(max(value, 1), max(upper, 1))

def initial_state(plan: ExercisePlan) -> TimerState:
    return TimerState(instruction=instruction(plan.text_id, "prepare"))

def start(
    plan: ExercisePlan,
    config: Settings,
    *,
    progress: Optional[ExerciseProgress] = None,
    second_scheme: bool = False,
) -> Transition:
    """Fresh running state: resumed from `progress`, or the second scheme of a dual exercise."""
    settings = settings_for(plan, config)
    if plan.kind is ExerciseKind.walk:
        state = TimerState(
            current_time=settings.duration * 60,
            is_running=True,
            phase=Phase.exercise,
            instruction=instruction(plan.text_id, "start"),
        )
        return Transition(state, (Signal(SignalKind.phase_changed, Phase.exercise, Cue.start),))

    current_set, current_rep, scheme, scheme_one_done = 1, 1, 1, False
    if second_scheme and plan.dual_scheme:
        scheme, scheme_one_done = 2, True
    elif progress is not None:
        current_set, current_rep = progress.current_set, progress.current_rep
        if plan.dual_scheme and progress.scheme_one_completed:
            scheme, scheme_one_done = 2, True

    # resumed counters may come from an older, longer schema
    if isinstance(settings, RepBasedSettings):
        schema = tuple(settings.reps_schema)
        current_set = _clamp(current_set, len(schema))
        current_rep = _clamp(current_rep, schema[current_set - 1])
    elif isinstance(settings, DynamicSettings):
        current_set, current_rep = _clamp(current_set, settings.dynamic_sets), 1
    else:
        current_set, current_rep = 1, 1

    state = TimerState(
        current_time=config.PREPARE_SECONDS,
        is_running=True,
        phase=Phase.prepare,
        current_set=current_set,
        current_rep=current_rep,
        current_scheme=scheme,
        scheme_one_completed=scheme_one_done,
        instruction=instruction(plan.text_id, "prepare"),
    )
    return Transition(state, (Signal(SignalKind.phase_changed, Phase.prepare, Cue.prepare),))

def tick(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    if not state.is_running or state.current_time <= 0:
        return Transition(state)
    state = replace(state, current_time=state.current_time - 1)

    if plan.kind is not ExerciseKind.hold or state.phase is not Phase.exercise or state.hold_sound_played:
        return Transition(state)
    hold_time = settings_for(plan, config).hold_time
    if hold_time > config.HOLD_CUE_MIN_HOLD_SECONDS and state.current_time == hold_time - config.HOLD_CUE_DELAY_SECONDS:
        state = replace(state, hold_sound_played=True, instruction=instruction(plan.text_id, "hold"))
        return Transition(state, (Signal(SignalKind.hold_cue, Phase.exercise, Cue.hold),))
    return Transition(state)

def on_timer_complete(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    if not state.is_running:
        return Transition(state)
    handler = _COMPLETE_HANDLERS[plan.kind]
    return handler(state, plan, config)

def reduce(state: TimerState, event: TimerEvent, plan: ExercisePlan, config: Settings) -> Transition:
    if event is TimerEvent.tick:
        return tick(state, plan, config)
    return on_timer_complete(state, plan, config)

# PHASE HANDLERS
def _enter(state: TimerState, plan: ExercisePlan, phase: Phase, seconds: int, cue: Cue, text_key: str, **changes) -> Transition:
    state = replace(
        state,
        phase=phase,
        current_time=seconds,
        instruction=instruction(plan.text_id, text_key, scheme=_scheme(plan, state)),
        **changes,
    )
    return Transition(state, (Signal(SignalKind.phase_changed, phase, cue),))

def _completed(state: TimerState, plan: ExercisePlan, config: Settings, *, total_sets: int, suffix: str = "") -> Transition:
    state = replace(
        state,
        is_running=False,
        phase=Phase.completed,
        current_time=0,
        instruction=instruction(plan.text_id, "completed"),
    )
    return Transition(state, (
        MarkDailyCompleted(),
        ClearProgress(),
        RecordHistory(total_sets=total_sets, name_suffix=suffix),
        Signal(SignalKind.completed, Phase.completed, Cue.completed, delay_seconds=config.COMPLETION_EXIT_DELAY_SECONDS),
    ))

def _complete_hold(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    settings = settings_for(plan, config)
    schema = tuple(settings.reps_schema)  # one snapshot for every decision below

    if state.phase in (Phase.prepare, Phase.rest):
        # counters were already advanced when rest began
        return _enter(state, plan, Phase.exercise, settings.hold_time, Cue.start, "start", hold_sound_played=False)
    if state.phase is Phase.mini_rest:
        next_rep = _clamp(state.current_rep + 1, schema[_clamp(state.current_set, len(schema)) - 1])
        return _enter(state, plan, Phase.exercise, settings.hold_time, Cue.start, "start",
                      current_rep=next_rep, hold_sound_played=False)
    if state.phase is not Phase.exercise:
        return Transition(state)

    current_set = _clamp(state.current_set, len(schema))
    is_last_rep = state.current_rep >= schema[current_set - 1]
    is_last_set = current_set >= len(schema)

    if is_last_rep and is_last_set:
        if plan.dual_scheme and state.current_scheme == 1:
            done = replace(
                state,
                is_running=False,
                phase=Phase.scheme_completed,
                current_time=0,
                current_set=1,
                current_rep=1,
                current_scheme=2,
                scheme_one_completed=True,
                instruction=instruction(plan.text_id, "schemeCompleted"),
            )
            return Transition(done, (
                RecordHistory(total_sets=len(schema), name_suffix=" (scheme 1)"),
                _save(plan, done, completed_sets=len(schema)),
                Signal(SignalKind.scheme_completed, Phase.scheme_completed, Cue.rest),
            ))
        suffix = " (scheme 2)" if plan.dual_scheme else ""
        return _completed(state, plan, config, total_sets=len(schema), suffix=suffix)

    if is_last_rep:
        moved = _enter(state, plan, Phase.rest, settings.rest_time, Cue.rest, "rest",
                       current_set=current_set + 1, current_rep=1)
        return Transition(moved.state, (
            RecordHistory(total_sets=1),
            _save(plan, moved.state, completed_sets=current_set),
        ) + moved.effects)

    if settings.mini_rest_time > 0:
        moved = _enter(state, plan, Phase.mini_rest, settings.mini_rest_time, Cue.finish, "miniRest",
                       current_set=current_set)
        checkpoint = replace(moved.state, current_rep=state.current_rep + 1)
        return Transition(moved.state, (_save(plan, checkpoint, completed_sets=current_set - 1),) + moved.effects)

    moved = _enter(state, plan, Phase.exercise, settings.hold_time, Cue.start, "start",
                   current_set=current_set, current_rep=state.current_rep + 1, hold_sound_played=False)
    return Transition(moved.state, (_save(plan, moved.state, completed_sets=current_set - 1),) + moved.effects)

def _complete_walk(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    if state.phase is Phase.prepare:
        settings = settings_for(plan, config)
        return _enter(state, plan, Phase.exercise, settings.duration * 60, Cue.start, "start")
    if state.phase is Phase.exercise:
        return _completed(state, plan, config, total_sets=1)
    return Transition(state)

def _complete_dynamic(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    settings = settings_for(plan, config)
    if state.phase is Phase.prepare:
        return _enter(state, plan, Phase.exercise, settings.dynamic_reps * 3, Cue.start, "start")
    if state.phase is Phase.rest:
        return _enter(state, plan, Phase.prepare, config.PREPARE_SECONDS, Cue.prepare, "prepare")
    if state.phase is not Phase.exercise:
        return Transition(state)

    current_set = _clamp(state.current_set, settings.dynamic_sets)
    if current_set >= settings.dynamic_sets:
        return _completed(state, plan, config, total_sets=settings.dynamic_sets)
    moved = _enter(state, plan, Phase.rest, settings.rest_time, Cue.rest, "rest", current_set=current_set + 1)
    return Transition(moved.state, (
        RecordHistory(total_sets=1),
        _save(plan, moved.state, completed_sets=current_set),
    ) + moved.effects)

def _complete_rolling(state: TimerState, plan: ExercisePlan, config: Settings) -> Transition:
    settings = settings_for(plan, config)
    if state.phase is Phase.prepare:
        return _enter(state, plan, Phase.rolling, settings.rolling_duration, Cue.start, "rolling", hold_sound_played=False)
    if state.phase is Phase.rest:
        return _enter(state, plan, Phase.prepare, config.PREPARE_SECONDS, Cue.prepare, "prepare")
    if state.phase is not Phase.rolling:
        return Transition(state)

    if state.current_session >= settings.rolling_sessions:
        return _completed(state, plan, config, total_sets=settings.rolling_sessions)
    moved = _enter(state, plan, Phase.rest, settings.rest_time, Cue.rest, "rest",
                   current_session=state.current_session + 1)
    return Transition(moved.state, (RecordHistory(total_sets=1),) + moved.effects)

_COMPLETE_HANDLERS = {
    ExerciseKind.hold: _complete_hold,
    ExerciseKind.walk: _complete_walk,
    ExerciseKind.dynamic: _complete_dynamic,
    ExerciseKind.foam_rolling: _complete_rolling,
}
