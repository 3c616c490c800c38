"""
Storage Module
Persistence for topics, articles and verified updates.
"""
from .base import BaseUpdateStore, NewerCheck
from .memory_store import InMemoryUpdateStore
from .sqlite_store import SQLiteUpdateStore
from .factory import get_store

__all__ = [
    "BaseUpdateStore",
    "NewerCheck",
    "InMemoryUpdateStore",
    "SQLiteUpdateStore",
    "get_store",
]
