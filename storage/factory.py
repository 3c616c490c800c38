"""
Store Factory
Build the configured update store.
"""
from typing import Optional

from .base import BaseUpdateStore
from .memory_store import InMemoryUpdateStore
from .sqlite_store import SQLiteUpdateStore


def get_store(backend: Optional[str] = None, sqlite_path: Optional[str] = None) -> BaseUpdateStore:
    """
    Return a store instance for ``backend`` (defaults to STORAGE_BACKEND).

    Args:
        backend: sqlite, memory
        sqlite_path: database file for the sqlite backend
    """
    from config import get_storage_settings

    settings = get_storage_settings()
    backend = (backend or settings.backend).strip().lower()

    if backend == "memory":
        return InMemoryUpdateStore()
    if backend == "sqlite":
        return SQLiteUpdateStore(db_path=sqlite_path or settings.sqlite_path)
    raise ValueError(f"Unknown store backend: {backend}")
