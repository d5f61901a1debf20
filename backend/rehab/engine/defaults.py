from rehab.schemas.exercise_settings import (
    DynamicSettings,
    ExerciseKind,
    FoamRollingSettings,
    RepBasedSettings,
    WalkSettings,
)
from rehab.settings import Settings

# Display text per exercise and phase key. Exercises without an entry use
# DEFAULT_INSTRUCTIONS; missing keys fall back the same way.
EXERCISE_INSTRUCTIONS = {
    "curl_up": {
        "prepare": "Get ready",
        "start": "Lift your head and shoulders",
        "hold": "Hold the position",
        "miniRest": "Lower your head and shoulders",
        "rest": "Rest",
        "completed": "Exercise complete!",
    },
    "side_plank": {
        "prepare": "Get ready",
        "start": "Lift your hips",
        "hold": "Hold the position",
        "miniRest": "Lower your hips",
        "rest": "Rest",
        "completed": "Exercise complete!",
    },
    "bird_dog": {
        "prepare": "Get ready",
        "start": "Raise one arm and the opposite leg",
        "startScheme1": "Raise your left arm and right leg",
        "startScheme2": "Raise your right arm and left leg",
        "hold": "Hold the position",
        "miniRest": "Lower your arm and leg",
        "miniRestScheme1": "Lower your left arm and right leg",
        "miniRestScheme2": "Lower your right arm and left leg",
        "rest": "Rest",
        "schemeCompleted": "First side done! Press start for the second side",
        "completed": "Exercise complete!",
    },
    "walk": {
        "prepare": "Get ready to walk",
        "start": "Start walking. Keep your back straight.",
        "hold": "Keep walking. Keep your back straight.",
        "completed": "Exercise complete!",
    },
}

DEFAULT_INSTRUCTIONS = {
    "prepare": "Get ready",
    "start": "Do the exercise",
    "hold": "Hold the position",
    "miniRest": "Rest",
    "rest": "Rest",
    "rolling": "Roll the muscle",
    "schemeCompleted": "First part done! Press start to continue",
    "completed": "Exercise complete!",
}

def instruction(exercise_id: str, key: str, *, scheme: int | None = None) -> str:
    texts = EXERCISE_INSTRUCTIONS.get(exercise_id, {})
    if scheme is not None and f"{key}Scheme{scheme}" in texts:
        return texts[f"{key}Scheme{scheme}"]
    return texts.get(key) or DEFAULT_INSTRUCTIONS.get(key, "")

def default_settings(kind: ExerciseKind, config: Settings):
    """Conservative settings used whenever the real ones are missing or invalid."""
    if kind is ExerciseKind.walk:
        return WalkSettings(duration=config.DEFAULT_WALK_DURATION, sessions=config.DEFAULT_WALK_SESSIONS)
    if kind is ExerciseKind.dynamic:
        return DynamicSettings(
            dynamic_reps=config.DEFAULT_DYNAMIC_REPS,
            dynamic_sets=config.DEFAULT_DYNAMIC_SETS,
            rest_time=config.DEFAULT_REST_TIME,
        )
    if kind is ExerciseKind.foam_rolling:
        return FoamRollingSettings(
            rolling_duration=config.DEFAULT_ROLLING_DURATION,
            rolling_sessions=config.DEFAULT_ROLLING_SESSIONS,
            rest_time=config.DEFAULT_ROLLING_REST_TIME,
        )
    return RepBasedSettings(
        hold_time=config.DEFAULT_HOLD_TIME,
        reps_schema=list(config.DEFAULT_REPS_SCHEMA),
        rest_time=config.DEFAULT_REST_TIME,
    )
