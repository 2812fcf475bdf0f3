"""
Recuerdos Backend — Record Store Adapters
==========================================

Every adapter implements `RecordStore` (stores/base.py). `build_store()` picks
one from STORE_BACKEND; the rest of the application never names a concrete class.
"""

from recuerdos.config import Settings, settings as default_settings
from recuerdos.stores.base import RecordStore


def build_store(config: Settings = default_settings) -> RecordStore:
    """Instantiate the adapter selected by `config.store_backend`."""
    backend = config.store_backend

    if backend == "memory":
        from recuerdos.stores.memory_store import InMemoryRecordStore
        return InMemoryRecordStore()

    if backend == "file":
        from recuerdos.stores.file_store import JsonFileRecordStore
        return JsonFileRecordStore(path=config.data_file)

    if backend == "remote":
        from recuerdos.stores.remote_store import RemoteRecordStore
        return RemoteRecordStore(base_url=config.remote_store_url, timeout=config.remote_store_timeout)

    from recuerdos.stores.sql_store import SqlRecordStore
    return SqlRecordStore(create_tables=config.db_create_tables)
