"""
JSON File Store

The desktop equivalent of browser local storage: every key lives in one
JSON object on disk.

TRADEOFFS:
- The whole file is rewritten on every set (fine for a few hundred KB)
- No locking; the last writer wins
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from tallyboard.audit import get_logger
from tallyboard.services.storage.interface import (
    KeyValueStore,
    QuotaExceededError,
    StorageError,
    StoreCorruptedError,
    entries_size,
)


logger = get_logger(__name__)


class JsonFileStore(KeyValueStore):
    """
    Key-value store backed by a single JSON file.

    Writes go to a temporary file in the same directory and are moved
    into place with os.replace, so a crash never leaves half a file.
    """

    def __init__(self, path: Path, quota_bytes: Optional[int] = None):
        self._path = Path(path)
        self._quota = quota_bytes

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StoreCorruptedError(f"Cannot read store file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreCorruptedError(f"Store file {self._path} does not hold an object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write store file {self._path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._read_all().get(key)
        except StoreCorruptedError:
            logger.warning("store_unreadable", path=str(self._path), key=key)
            return None

    def set_item(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StoreCorruptedError:
            logger.warning("store_reset_after_corruption", path=str(self._path))
            data = {}
        data[key] = value
        if self._quota is not None:
            needed = entries_size(data)
            if needed > self._quota:
                raise QuotaExceededError(key, needed, self._quota)
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    def keys(self) -> list[str]:
        return list(self._read_all())
