from rehab.engine.session import ButtonState, ExerciseSession, SessionRegistry
from rehab.engine.timer import ExercisePlan, Phase, Signal, SignalKind, TimerState

__all__ = [
    "ButtonState",
    "ExercisePlan",
    "ExerciseSession",
    "Phase",
    "SessionRegistry",
    "Signal",
    "SignalKind",
    "TimerState",
]
