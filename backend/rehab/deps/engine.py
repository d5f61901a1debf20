# rehab/deps/engine.py
from functools import lru_cache

from fastapi import Depends

from rehab.db import SessionLocal
from rehab.engine.session import SessionRegistry
from rehab.repositories.kv_repo import KeyValueRepository, KeyValueStore
from rehab.services.base import Clock, SystemClock
from rehab.services.day_history import DayHistoryStore
from rehab.services.progress_store import ProgressStore
from rehab.services.settings_resolver import SettingsResolver
from rehab.settings import Settings, get_settings

def get_clock() -> Clock:
    return SystemClock()

def get_kv() -> KeyValueStore:
    return KeyValueRepository(SessionLocal)

def get_progress_store(
    kv: KeyValueStore = Depends(get_kv),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> ProgressStore:
    return ProgressStore(kv, clock=clock, ttl_hours=settings.PROGRESS_TTL_HOURS)

def get_history(kv: KeyValueStore = Depends(get_kv)) -> DayHistoryStore:
    return DayHistoryStore(kv)

def get_resolver(
    kv: KeyValueStore = Depends(get_kv),
    store: ProgressStore = Depends(get_progress_store),
    settings: Settings = Depends(get_settings),
) -> SettingsResolver:
    return SettingsResolver(kv, store, settings)

@lru_cache
def get_registry() -> SessionRegistry:
    """Live sessions are process-local; one registry per worker."""
    return SessionRegistry()
