from typing import Annotated, Any, Literal
from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from rehab.schemas.exercise_settings import CamelModel, PosInt

class ExerciseProgress(CamelModel):
    """Same-day checkpoint of an interrupted exercise session."""
    exercise_type: str
    completed_sets: Annotated[int, Field(ge=0)] = 0
    current_set: PosInt = 1
    current_rep: PosInt = 1
    timestamp: int = 0  # epoch millis, stamped by the store on save
    # only written for dual-scheme exercises
    current_scheme: Literal[1, 2] | None = None
    scheme_one_completed: bool | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

class DailyExerciseRecord(CamelModel):
    # Day plans are owned by the client; keep whatever else it stored.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    completed: bool = False
    extended_data: dict[str, Any] | None = None

    @property
    def exercise_id(self) -> str:
        return (self.extended_data or {}).get("exerciseId") or self.id

    @property
    def execution_type(self) -> str | None:
        info = (self.extended_data or {}).get("exerciseInfo") or {}
        return info.get("executionType")

    @property
    def program_settings(self) -> dict[str, Any] | None:
        return (self.extended_data or {}).get("settings")

class CompletedExercise(CamelModel):
    exercise_id: str
    exercise_name: str
    completed_at: str  # ISO timestamp
    hold_time: int = 0
    reps_schema: list[int] = []
    rest_time: int = 0
    total_sets: int = 1

class DayHistory(CamelModel):
    date: str
    pain_level: str | None = None
    exercises: list[CompletedExercise] = []
