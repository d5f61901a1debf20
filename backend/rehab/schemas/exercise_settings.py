from enum import Enum
from typing import Annotated, Literal, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PosInt = Annotated[int, Field(ge=1)]
Seconds = Annotated[int, Field(ge=0)]

class ExerciseKind(str, Enum):
    hold = "hold"
    walk = "walk"
    dynamic = "dynamic"
    foam_rolling = "foam_rolling"

class CamelModel(BaseModel):
    # stored records and program data use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

class RepBasedSettings(CamelModel):
    kind: Literal["hold"] = "hold"
    hold_time: PosInt
    reps_schema: list[PosInt] = Field(min_length=1)
    rest_time: Seconds
    mini_rest_time: Seconds = 0

class WalkSettings(CamelModel):
    kind: Literal["walk"] = "walk"
    duration: PosInt = Field(validation_alias=AliasChoices("duration", "walkDuration"))  # minutes
    sessions: PosInt

class DynamicSettings(CamelModel):
    kind: Literal["dynamic"] = "dynamic"
    dynamic_reps: PosInt
    dynamic_sets: PosInt
    rest_time: Seconds

class FoamRollingSettings(CamelModel):
    kind: Literal["foam_rolling"] = "foam_rolling"
    rolling_duration: PosInt  # seconds
    rolling_sessions: PosInt
    rest_time: Seconds

ExerciseSettings = Annotated[
    Union[RepBasedSettings, WalkSettings, DynamicSettings, FoamRollingSettings],
    Field(discriminator="kind"),
]

SETTINGS_BY_KIND: dict[ExerciseKind, type[CamelModel]] = {
    ExerciseKind.hold: RepBasedSettings,
    ExerciseKind.walk: WalkSettings,
    ExerciseKind.dynamic: DynamicSettings,
    ExerciseKind.foam_rolling: FoamRollingSettings,
}
