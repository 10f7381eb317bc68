"""
Abstract Key-Value Store Interface

DESIGN DECISION: State is persisted through a tiny key-value interface
modelled on browser local storage (string keys, string values, a size
quota). Implementations:
1. JsonFileStore - one JSON file on disk, used by the application
2. InMemoryStore - a dict, used by tests and throwaway sessions
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract interface for the local key-value store.

    Values are opaque strings; callers do their own serialization.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored string, or None if the key is absent
        """

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            QuotaExceededError: If the store would grow past its quota
            StorageError: If the write fails for any other reason
        """

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""

    @abstractmethod
    def keys(self) -> list[str]:
        """List the stored keys."""


def entries_size(entries: dict[str, str]) -> int:
    """
    Size of a set of entries as counted against the quota.

    Keys and values both count, measured in UTF-16 code units like
    browser local storage.
    """
    return sum(
        len(k.encode("utf-16-le")) + len(v.encode("utf-16-le"))
        for k, v in entries.items()
    )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class QuotaExceededError(StorageError):
    """A write would push the store past its quota."""

    def __init__(self, key: str, needed: int, quota: int):
        self.key = key
        self.needed = needed
        self.quota = quota
        super().__init__(
            f"Writing '{key}' needs {needed} bytes, quota is {quota} bytes"
        )


class StoreCorruptedError(StorageError):
    """The backing file exists but cannot be parsed."""
    pass
