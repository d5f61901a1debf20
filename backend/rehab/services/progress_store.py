# rehab/services/progress_store.py
from __future__ import annotations
import json
import logging
from datetime import timedelta
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from rehab.repositories.kv_repo import KeyValueStore
from rehab.schemas.progress import DailyExerciseRecord, ExerciseProgress
from rehab.services.base import Clock, StoreResult, SystemClock, epoch_millis

log = logging.getLogger(__name__)

PROGRESS_PREFIX = "exercise_progress_"
EXERCISES_PREFIX = "exercises_"

_day_list = TypeAdapter(list[DailyExerciseRecord])

def progress_key(exercise_type: str, date: str) -> str:
    return f"{PROGRESS_PREFIX}{exercise_type}_{date}"

def exercises_key(date: str) -> str:
    return f"{EXERCISES_PREFIX}{date}"

class ProgressStore:
    """
    Per-day, per-exercise progress checkpoints with a resume window.

    Expiry happens on read: a record older than the window is deleted the
    first time someone tries to load it.
    """
    def __init__(self, kv: KeyValueStore, *, clock: Clock | None = None, ttl_hours: int = 24):
        self.kv = kv
        self.clock = clock or SystemClock()
        self.ttl = timedelta(hours=ttl_hours)

    # PROGRESS RECORDS
    def load(self, exercise_type: str, date: str) -> StoreResult[Optional[ExerciseProgress]]:
        key = progress_key(exercise_type, date)
        try:
            raw = self.kv.get(key)
        except Exception as e:
            log.warning("progress read failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        if raw is None:
            return StoreResult(value=None)

        try:
            progress = ExerciseProgress.model_validate_json(raw)
        except ValidationError as e:
            log.warning("malformed progress record key=%s, starting fresh", key)
            return StoreResult.failed(e)

        age_ms = epoch_millis(self.clock.now()) - progress.timestamp
        if age_ms >= self.ttl.total_seconds() * 1000:
            log.info("progress record expired key=%s age_h=%.1f", key, age_ms / 3_600_000)
            removed = self.clear(exercise_type, date)
            return StoreResult(value=None, error=removed.error)
        return StoreResult(value=progress)

    def save(self, exercise_type: str, date: str, progress: ExerciseProgress) -> StoreResult[ExerciseProgress]:
        stamped = progress.model_copy(
            update={"exercise_type": exercise_type, "timestamp": epoch_millis(self.clock.now())}
        )
        key = progress_key(exercise_type, date)
        try:
            self.kv.set(key, stamped.to_json())
        except Exception as e:
            log.warning("progress write failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        return StoreResult(value=stamped)

    def clear(self, exercise_type: str, date: str) -> StoreResult[None]:
        key = progress_key(exercise_type, date)
        try:
            self.kv.remove(key)
        except Exception as e:
            log.warning("progress delete failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        return StoreResult()

    # DAILY EXERCISE LIST
    def load_daily(self, date: str) -> StoreResult[list[DailyExerciseRecord]]:
        key = exercises_key(date)
        try:
            raw = self.kv.get(key)
        except Exception as e:
            log.warning("day list read failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        if raw is None:
            return StoreResult(value=[])
        try:
            return StoreResult(value=_day_list.validate_json(raw))
        except ValidationError as e:
            log.warning("malformed day list key=%s", key)
            return StoreResult.failed(e)

    def save_daily(self, date: str, entries: list[DailyExerciseRecord]) -> StoreResult[list[DailyExerciseRecord]]:
        key = exercises_key(date)
        payload = json.dumps([e.model_dump(by_alias=True, exclude_none=True) for e in entries])
        try:
            self.kv.set(key, payload)
        except Exception as e:
            log.warning("day list write failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        return StoreResult(value=entries)

    def daily_entry(self, exercise_type: str, date: str) -> StoreResult[Optional[DailyExerciseRecord]]:
        res = self.load_daily(date)
        if not res.ok:
            return StoreResult.failed(res.error)
        match = next((e for e in res.value if e.id == exercise_type), None)
        return StoreResult(value=match)

    def is_daily_completed(self, exercise_type: str, date: str) -> bool:
        entry = self.daily_entry(exercise_type, date).value
        return bool(entry and entry.completed)

    def mark_daily_completed(self, exercise_type: str, date: str) -> StoreResult[bool]:
        """Flag the day's entry as done. Value is False when there was nothing to flag."""
        res = self.load_daily(date)
        if not res.ok:
            return StoreResult.failed(res.error)
        entries = res.value
        if not any(e.id == exercise_type for e in entries):
            # the day list may never have been initialized
            return StoreResult(value=False)
        for entry in entries:
            if entry.id == exercise_type:
                entry.completed = True
        saved = self.save_daily(date, entries)
        if not saved.ok:
            return StoreResult.failed(saved.error)
        return StoreResult(value=True)
