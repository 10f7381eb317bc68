"""In-memory key-value store."""

from typing import Optional

from tallyboard.services.storage.interface import (
    KeyValueStore,
    QuotaExceededError,
    entries_size,
)


class InMemoryStore(KeyValueStore):
    """Dict-backed store with the same quota semantics as JsonFileStore."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: dict[str, str] = {}
        self._quota = quota_bytes

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota is not None:
            candidate = {**self._data, key: value}
            needed = entries_size(candidate)
            if needed > self._quota:
                raise QuotaExceededError(key, needed, self._quota)
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
