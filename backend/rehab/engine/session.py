from __future__ import annotations
import asyncio
import logging
import threading
from dataclasses import replace
from datetime import timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from rehab.engine import timer
from rehab.engine.defaults import instruction
from rehab.engine.timer import (
    ClearProgress,
    ExercisePlan,
    MarkDailyCompleted,
    Phase,
    RecordHistory,
    SaveProgress,
    Signal,
    TimerState,
    Transition,
)
from rehab.schemas.exercise_settings import DynamicSettings, FoamRollingSettings, RepBasedSettings
from rehab.schemas.progress import CompletedExercise, ExerciseProgress
from rehab.services.base import Clock
from rehab.services.day_history import DayHistoryStore
from rehab.services.progress_store import ProgressStore
from rehab.settings import Settings, get_settings

log = logging.getLogger(__name__)

Listener = Callable[[Signal], None]

class ButtonState(str, Enum):
    start = "start"
    resume = "continue"
    completed = "completed"

class ExerciseSession:
    """
    Drives the pure timer for one exercise on one day.

    Owns the cadence (tick() once per second, or run()), carries out the
    persistence effects in order and hands signals to the listener.
    Storage failures never stop a session; they pile up on `errors`.
    """

    def __init__(
        self,
        plan: ExercisePlan,
        *,
        date: str,
        store: ProgressStore,
        history: Optional[DayHistoryStore] = None,
        listener: Optional[Listener] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or get_settings()
        self.plan = timer.with_settings(plan, self.config)
        self.date = date
        self.store = store
        self.history = history
        self.listener = listener
        self.clock = clock or store.clock

        self.state: TimerState = timer.initial_state(plan)
        self.progress: Optional[ExerciseProgress] = None
        self.button_state = ButtonState.start
        self.errors: list[Exception] = []
        self._busy = threading.Lock()

    @property
    def exercise_type(self) -> str:
        return self.plan.exercise_type

    def open(self) -> "ExerciseSession":
        """Decide between already done, resume and fresh start."""
        if self.store.is_daily_completed(self.exercise_type, self.date):
            self.button_state = ButtonState.completed
            self.state = replace(
                self.state, phase=Phase.completed, instruction=instruction(self.plan.text_id, "completed")
            )
            return self

        res = self.store.load(self.exercise_type, self.date)
        if not res.ok:
            self.errors.append(res.error)
        self.progress = res.value
        if self.progress is None:
            return self

        self.button_state = ButtonState.resume
        p = self.progress
        if self.plan.dual_scheme and p.scheme_one_completed and p.current_set == 1 and p.current_rep == 1:
            # first scheme done, second not begun: wait for an explicit start
            self.state = replace(
                self.state,
                phase=Phase.scheme_completed,
                current_scheme=2,
                scheme_one_completed=True,
                instruction=instruction(self.plan.text_id, "schemeCompleted"),
            )
        return self

    def start(self) -> list[Signal]:
        if self.state.phase is Phase.completed:
            log.info("%s already completed on %s", self.exercise_type, self.date)
            return []
        if self.state.is_running:
            self.stop()

        if self.state.phase is Phase.scheme_completed:
            tr = timer.start(self.plan, self.config, second_scheme=True)
        else:
            tr = timer.start(self.plan, self.config, progress=self.progress)
        return self._guarded(lambda: self._apply(tr) + self._settle())

    def tick(self) -> list[Signal]:
        if not self.state.is_running:
            return []
        return self._guarded(
            lambda: self._apply(timer.tick(self.state, self.plan, self.config)) + self._settle()
        )

    def stop(self) -> None:
        """Halt the countdown. Saved progress stays where it is."""
        if self.state.is_running:
            self.state = replace(self.state, is_running=False)
        if self.progress is not None and self.button_state is ButtonState.start:
            self.button_state = ButtonState.resume

    async def run(
        self,
        *,
        interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        while self.state.is_running:
            await sleep(interval)
            # storage calls block, keep them off the event loop
            await asyncio.to_thread(self.tick)

    # INTERNALS
    def _guarded(self, step: Callable[[], list[Signal]]) -> list[Signal]:
        # one evaluation at a time, whether the second caller is a listener
        # reacting to a signal or another request thread
        if not self._busy.acquire(blocking=False):
            log.warning("overlapping timer evaluation for %s ignored", self.exercise_type)
            return []
        try:
            return step()
        finally:
            self._busy.release()

    def _settle(self) -> list[Signal]:
        signals: list[Signal] = []
        # zero-length phases (e.g. restTime 0) chain straight into the next one
        while self.state.is_running and self.state.current_time == 0:
            signals += self._apply(timer.on_timer_complete(self.state, self.plan, self.config))
        return signals

    def _apply(self, transition: Transition) -> list[Signal]:
        self.state = transition.state
        signals: list[Signal] = []
        for effect in transition.effects:
            if isinstance(effect, Signal):
                signals.append(effect)
                if self.listener:
                    self.listener(effect)
            else:
                self._persist(effect)
        return signals

    def _persist(self, effect) -> None:
        if isinstance(effect, SaveProgress):
            checkpoint = ExerciseProgress(
                exercise_type=self.exercise_type,
                completed_sets=effect.completed_sets,
                current_set=effect.current_set,
                current_rep=effect.current_rep,
                current_scheme=effect.current_scheme,
                scheme_one_completed=effect.scheme_one_completed,
            )
            res = self.store.save(self.exercise_type, self.date, checkpoint)
            # an unsaved checkpoint still lets this session resume after stop()
            self.progress = res.value if res.ok else checkpoint
        elif isinstance(effect, ClearProgress):
            res = self.store.clear(self.exercise_type, self.date)
            self.progress = None
        elif isinstance(effect, MarkDailyCompleted):
            res = self.store.mark_daily_completed(self.exercise_type, self.date)
            self.button_state = ButtonState.completed
        elif isinstance(effect, RecordHistory):
            if self.history is None:
                return
            res = self.history.append(self.date, self._completed_entry(effect))
        else:
            raise TypeError(f"unknown effect {effect!r}")
        if not res.ok:
            self.errors.append(res.error)

    def _completed_entry(self, effect: RecordHistory) -> CompletedExercise:
        settings = timer.settings_for(self.plan, self.config)
        now = self.clock.now()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        entry = CompletedExercise(
            exercise_id=self.exercise_type,
            exercise_name=(self.plan.exercise_name or self.plan.text_id) + effect.name_suffix,
            completed_at=now.isoformat(),
            total_sets=effect.total_sets,
        )
        if isinstance(settings, RepBasedSettings):
            entry.hold_time = settings.hold_time
            entry.reps_schema = list(settings.reps_schema)
            entry.rest_time = settings.rest_time
        elif isinstance(settings, FoamRollingSettings):
            entry.hold_time = settings.rolling_duration
            entry.rest_time = settings.rest_time
        elif isinstance(settings, DynamicSettings):
            entry.rest_time = settings.rest_time
        return entry

class SessionRegistry:
    """At most one live session per (exercise type, day)."""
    def __init__(self):
        self._sessions: dict[tuple[str, str], ExerciseSession] = {}

    def open(self, session: ExerciseSession) -> ExerciseSession:
        key = (session.exercise_type, session.date)
        prior = self._sessions.get(key)
        if prior is not None:
            prior.stop()
        self._sessions[key] = session
        return session.open()

    def get(self, exercise_type: str, date: str) -> Optional[ExerciseSession]:
        return self._sessions.get((exercise_type, date))

    def close(self, exercise_type: str, date: str) -> Optional[ExerciseSession]:
        session = self._sessions.pop((exercise_type, date), None)
        if session is not None:
            session.stop()
        return session
