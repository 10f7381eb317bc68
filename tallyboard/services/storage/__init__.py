"""
Storage Services Package

Provides the key-value store interface and its implementations.
"""

from tallyboard.services.storage.interface import (
    KeyValueStore,
    QuotaExceededError,
    StorageError,
    StoreCorruptedError,
)
from tallyboard.services.storage.json_file import JsonFileStore
from tallyboard.services.storage.memory import InMemoryStore

__all__ = [
    # Interface
    "KeyValueStore",
    # Exceptions
    "QuotaExceededError",
    "StorageError",
    "StoreCorruptedError",
    # Implementations
    "InMemoryStore",
    "JsonFileStore",
]
