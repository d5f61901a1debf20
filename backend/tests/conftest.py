"""
Point the app at an in-memory SQLite database before anything imports
rehab.db, and provide the fixed clock / dict-backed stores the engine tests use.
"""
import os

os.environ.setdefault("DB_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "test")

from datetime import datetime, timedelta, timezone

import pytest

from rehab.db import init_db
from rehab.services.progress_store import ProgressStore
from rehab.settings import Settings

init_db()


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current += timedelta(**delta)


class MemoryKV:
    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def remove(self, key):
        self.data.pop(key, None)


class BrokenKV(MemoryKV):
    def __init__(self, *, reads: bool = False, writes: bool = False):
        super().__init__()
        self.fail_reads = reads
        self.fail_writes = writes

    def get(self, key):
        if self.fail_reads:
            raise OSError("disk unavailable")
        return super().get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise OSError("disk full")
        super().set(key, value)

    def remove(self, key):
        if self.fail_writes:
            raise OSError("disk full")
        super().remove(key)


TODAY = "2025-03-10"


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def kv():
    return MemoryKV()


@pytest.fixture
def broken_kv():
    return BrokenKV


@pytest.fixture
def config():
    return Settings(_env_file=None)


@pytest.fixture
def store(kv, clock):
    return ProgressStore(kv, clock=clock)
