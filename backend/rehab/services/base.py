# rehab/services/base.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, Optional, Protocol, TypeVar

T = TypeVar("T")

@dataclass(slots=True)
class StoreResult(Generic[T]):
    """Outcome of a storage call. Failures are carried, never raised."""
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: Exception) -> "StoreResult[T]":
        return cls(value=None, error=error)

class Clock(Protocol):
    def now(self) -> datetime: ...

class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

def day_string(moment: datetime) -> str:
    """Calendar day in UTC as YYYY-MM-DD."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date().isoformat()

def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
