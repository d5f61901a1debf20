# rehab/services/settings_resolver.py
from __future__ import annotations
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from rehab.engine.defaults import default_settings
from rehab.engine.timer import ExercisePlan
from rehab.repositories.kv_repo import KeyValueStore
from rehab.schemas.exercise_settings import SETTINGS_BY_KIND, ExerciseKind
from rehab.services.base import StoreResult
from rehab.services.progress_store import ProgressStore
from rehab.settings import Settings

log = logging.getLogger(__name__)

MANUAL_SETTINGS_PREFIX = "manual_exercise_settings_"

def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)

def _snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)

def normalize(layer: Optional[dict[str, Any]]) -> dict[str, Any]:
    """camelCase keys, so layers written by different clients merge field by field."""
    if not layer:
        return {}
    out = {_camel(k): v for k, v in layer.items() if v is not None}
    if "walkDuration" in out:
        out["duration"] = out.pop("walkDuration")
    return out

def kind_for(exercise_type: str, execution_type: Optional[str]) -> ExerciseKind:
    if exercise_type == "walk":
        return ExerciseKind.walk
    try:
        return ExerciseKind(execution_type or ExerciseKind.hold.value)
    except ValueError:
        log.warning("unknown execution type %r for %s, treating as hold", execution_type, exercise_type)
        return ExerciseKind.hold

def user_layer(kind: ExerciseKind, user_settings: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Pick the relevant block out of a whole user-settings document, or take it as is."""
    if not user_settings:
        return {}
    block = "walkSettings" if kind is ExerciseKind.walk else "exerciseSettings"
    for key in (block, _snake(block)):
        if isinstance(user_settings.get(key), dict):
            return normalize(user_settings[key])
    return normalize(user_settings)

class SettingsResolver:
    """
    Builds the ExercisePlan for one exercise on one day.

    Precedence, lowest first: configured defaults, the user's own settings,
    the program settings stored on the day-list entry, manual overrides.
    """
    def __init__(self, kv: KeyValueStore, store: ProgressStore, config: Settings):
        self.kv = kv
        self.store = store
        self.config = config

    def manual_settings(self, exercise_id: str) -> StoreResult[Optional[dict[str, Any]]]:
        key = f"{MANUAL_SETTINGS_PREFIX}{exercise_id}"
        try:
            raw = self.kv.get(key)
        except Exception as e:
            log.warning("manual settings read failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        if raw is None:
            return StoreResult(value=None)
        try:
            data = json.loads(raw)
        except ValueError as e:
            log.warning("malformed manual settings key=%s", key)
            return StoreResult.failed(e)
        if not isinstance(data, dict):
            return StoreResult.failed(ValueError("manual settings must be an object"))
        return StoreResult(value=data)

    def save_manual_settings(self, exercise_id: str, data: dict[str, Any]) -> StoreResult[dict[str, Any]]:
        key = f"{MANUAL_SETTINGS_PREFIX}{exercise_id}"
        try:
            self.kv.set(key, json.dumps(normalize(data)))
        except Exception as e:
            log.warning("manual settings write failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        return StoreResult(value=normalize(data))

    def resolve(self, exercise_type: str, date: str, user_settings: Optional[dict[str, Any]] = None) -> ExercisePlan:
        entry = self.store.daily_entry(exercise_type, date).value
        exercise_id = entry.exercise_id if entry else exercise_type
        kind = kind_for(exercise_type, entry.execution_type if entry else None)

        defaults = default_settings(kind, self.config)
        merged = defaults.model_dump(by_alias=True)
        merged.update(user_layer(kind, user_settings))
        merged.update(normalize(entry.program_settings if entry else None))
        merged.update(normalize(self.manual_settings(exercise_id).value))
        merged["kind"] = kind.value

        try:
            settings = SETTINGS_BY_KIND[kind].model_validate(merged)
        except ValidationError as e:
            log.warning("invalid settings for %s (%d errors), using defaults", exercise_id, e.error_count())
            settings = defaults

        return ExercisePlan(
            exercise_type=exercise_type,
            kind=kind,
            settings=settings,
            dual_scheme=exercise_type in self.config.DUAL_SCHEME_EXERCISES,
            exercise_id=exercise_id,
            exercise_name=(entry.model_extra or {}).get("name") if entry else None,
        )
