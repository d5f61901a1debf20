from typing import Any
from pydantic import BaseModel, Field

class SessionOpen(BaseModel):
    # the user's own settings: a flat settings object or a whole
    # {"exerciseSettings": ..., "walkSettings": ...} document
    settings: dict[str, Any] | None = None

class TimerStateRead(BaseModel):
    current_time: int
    is_running: bool
    phase: str
    current_set: int
    current_rep: int
    current_session: int
    current_scheme: int
    scheme_one_completed: bool
    instruction: str
    hold_sound_played: bool

    model_config = {"from_attributes": True}

class SignalRead(BaseModel):
    kind: str
    phase: str
    cue: str | None = None
    delay_seconds: float | None = None

    model_config = {"from_attributes": True}

class SessionRead(BaseModel):
    exercise_type: str
    date: str
    kind: str
    button_state: str
    display_time: str
    timer: TimerStateRead
    events: list[SignalRead] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
