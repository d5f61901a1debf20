from datetime import date as Date
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from rehab.deps.engine import get_clock, get_history, get_progress_store, get_registry, get_resolver
from rehab.engine.session import ExerciseSession, SessionRegistry
from rehab.engine.timer import Phase, Signal, format_time
from rehab.schemas.session import SessionOpen, SessionRead, SignalRead, TimerStateRead
from rehab.services.base import Clock, day_string
from rehab.services.day_history import DayHistoryStore
from rehab.services.progress_store import ProgressStore
from rehab.services.settings_resolver import SettingsResolver
from rehab.settings import Settings, get_settings

router = APIRouter(prefix="/sessions", tags=["sessions"])

def _read(sess: ExerciseSession, events: list[Signal] | None = None) -> SessionRead:
    state = asdict(sess.state)
    state["phase"] = sess.state.phase.value
    return SessionRead(
        exercise_type=sess.exercise_type,
        date=sess.date,
        kind=sess.plan.kind.value,
        button_state=sess.button_state.value,
        display_time=format_time(sess.state.current_time),
        timer=TimerStateRead(**state),
        events=[
            SignalRead(kind=e.kind.value, phase=e.phase.value, cue=e.cue.value if e.cue else None,
                       delay_seconds=e.delay_seconds)
            for e in events or []
        ],
        errors=[str(err) for err in sess.errors],
    )

def _today(clock: Clock, day: Date | None) -> str:
    return day.isoformat() if day else day_string(clock.now())

def _get_or_404(registry: SessionRegistry, exercise_type: str, day: str) -> ExerciseSession:
    sess = registry.get(exercise_type, day)
    if not sess:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return sess

@router.post("/{exercise_type}", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def open_session(
    exercise_type: str,
    payload: SessionOpen | None = None,
    day: Date | None = Query(None, alias="date"),
    clock: Clock = Depends(get_clock),
    store: ProgressStore = Depends(get_progress_store),
    history: DayHistoryStore = Depends(get_history),
    resolver: SettingsResolver = Depends(get_resolver),
    registry: SessionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    today = _today(clock, day)
    plan = resolver.resolve(exercise_type, today, payload.settings if payload else None)
    sess = registry.open(
        ExerciseSession(plan, date=today, store=store, history=history, clock=clock, config=settings)
    )
    return _read(sess)

@router.get("/{exercise_type}", response_model=SessionRead)
def get_session(
    exercise_type: str,
    day: Date | None = Query(None, alias="date"),
    clock: Clock = Depends(get_clock),
    registry: SessionRegistry = Depends(get_registry),
):
    return _read(_get_or_404(registry, exercise_type, _today(clock, day)))

@router.post("/{exercise_type}/start", response_model=SessionRead)
def start_session(
    exercise_type: str,
    day: Date | None = Query(None, alias="date"),
    clock: Clock = Depends(get_clock),
    registry: SessionRegistry = Depends(get_registry),
):
    sess = _get_or_404(registry, exercise_type, _today(clock, day))
    if sess.state.phase is Phase.completed:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Exercise already completed today")
    return _read(sess, sess.start())

@router.post("/{exercise_type}/tick", response_model=SessionRead)
def tick_session(
    exercise_type: str,
    seconds: int = Query(1, ge=1, le=3600),
    day: Date | None = Query(None, alias="date"),
    clock: Clock = Depends(get_clock),
    registry: SessionRegistry = Depends(get_registry),
):
    sess = _get_or_404(registry, exercise_type, _today(clock, day))
    events: list[Signal] = []
    for _ in range(seconds):
        if not sess.state.is_running:
            break
        events += sess.tick()
    return _read(sess, events)

@router.post("/{exercise_type}/stop", response_model=SessionRead)
def stop_session(
    exercise_type: str,
    day: Date | None = Query(None, alias="date"),
    clock: Clock = Depends(get_clock),
    registry: SessionRegistry = Depends(get_registry),
):
    sess = _get_or_404(registry, exercise_type, _today(clock, day))
    sess.stop()
    return _read(sess)
