from rehab.models.kv_entry import KeyValueEntry

__all__ = ["KeyValueEntry"]
