# rehab/repositories/kv_repo.py
from __future__ import annotations
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from rehab.models import KeyValueEntry

class KeyValueStore(Protocol):
    """String-keyed storage for opaque serialized records."""
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...

class KeyValueRepository:
    """
    KeyValueStore backed by the kv_entries table.

    Takes a session factory rather than a session: engine sessions outlive a
    single request, so every call opens and commits its own short session.
    """
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(KeyValueEntry(key=key, value=value))
            db.commit()

    def remove(self, key: str) -> None:
        with self.session_factory() as db:
            entry = db.get(KeyValueEntry, key)
            if not entry:
                return
            db.delete(entry)
            db.commit()
