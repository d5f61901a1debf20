import uuid

from rehab.db import SessionLocal
from rehab.models import KeyValueEntry
from rehab.repositories.kv_repo import KeyValueRepository

def unique_key(prefix="test_"):
    return f"{prefix}{uuid.uuid4().hex[:10]}"

def test_set_get_overwrite_remove():
    repo = KeyValueRepository(SessionLocal)
    key = unique_key()

    assert repo.get(key) is None
    repo.set(key, '{"currentSet": 1}')
    assert repo.get(key) == '{"currentSet": 1}'

    repo.set(key, '{"currentSet": 2}')
    assert repo.get(key) == '{"currentSet": 2}'
    with SessionLocal() as db:
        assert db.query(KeyValueEntry).filter(KeyValueEntry.key == key).count() == 1

    repo.remove(key)
    assert repo.get(key) is None

def test_remove_missing_key_is_noop():
    repo = KeyValueRepository(SessionLocal)
    repo.remove(unique_key())
