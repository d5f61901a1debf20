# rehab/services/day_history.py
from __future__ import annotations
import logging
from typing import Optional

from pydantic import ValidationError

from rehab.repositories.kv_repo import KeyValueStore
from rehab.schemas.progress import CompletedExercise, DayHistory
from rehab.services.base import StoreResult

log = logging.getLogger(__name__)

DAY_HISTORY_PREFIX = "dayHistory_"

class DayHistoryStore:
    """Diary of finished exercises, one record per calendar day."""
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get(self, date: str) -> StoreResult[Optional[DayHistory]]:
        key = f"{DAY_HISTORY_PREFIX}{date}"
        try:
            raw = self.kv.get(key)
        except Exception as e:
            log.warning("history read failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        if raw is None:
            return StoreResult(value=None)
        try:
            return StoreResult(value=DayHistory.model_validate_json(raw))
        except ValidationError as e:
            log.warning("malformed history key=%s", key)
            return StoreResult.failed(e)

    def append(self, date: str, exercise: CompletedExercise) -> StoreResult[DayHistory]:
        """Add to the diary of `date`, the day the exercise was planned for."""
        current = self.get(date)
        if not current.ok:
            return StoreResult.failed(current.error)
        history = current.value or DayHistory(date=date)
        history.exercises.append(exercise)
        key = f"{DAY_HISTORY_PREFIX}{date}"
        try:
            self.kv.set(key, history.model_dump_json(by_alias=True))
        except Exception as e:
            log.warning("history write failed key=%s: %s", key, e)
            return StoreResult.failed(e)
        return StoreResult(value=history)
