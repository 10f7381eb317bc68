"""
Persisted State Repositories

Load and save the JSON roots kept in the local key-value store.

CRITICAL: Neither load() nor save() raises.
- load() falls back to an empty root only on missing or unparsable data;
  a record that fails validation is skipped and logged, the rest load
- save() logs the failure and returns False; the in-memory state keeps
  the attempted change for the rest of the session

Inline images are dropped from the written copy only. The root passed to
save() is never modified.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from tallyboard.audit import AuditLogger, get_logger
from tallyboard.models.audit import AuditEventBuilder
from tallyboard.models.counter import (
    COUNTERS_STORAGE_KEY,
    DEFAULT_CATEGORY_NAME,
    LEGACY_DEFAULT_CATEGORY_ID,
    Category,
    Counter,
    PersistedRoot,
)
from tallyboard.models.image import InlineImage
from tallyboard.models.income import INCOME_STORAGE_KEY, IncomeItem, IncomeRoot
from tallyboard.models.preferences import DEFAULT_THEME, THEME_STORAGE_KEY, Theme
from tallyboard.services.storage import KeyValueStore, StorageError


logger = get_logger(__name__)

RootT = TypeVar("RootT", bound=BaseModel)


def dumps_root(data: dict[str, Any]) -> str:
    """Compact JSON with a fixed key order, so equal roots give equal text."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class _JsonRootRepository(ABC, Generic[RootT]):
    """Shared load/save plumbing for one root model under one key."""

    key: str
    root_type: type[RootT]
    # List field name -> record model, validated one record at a time
    record_types: dict[str, type[BaseModel]]

    def __init__(self, store: KeyValueStore, audit_logger: Optional[AuditLogger] = None):
        self._store = store
        self._audit_logger = audit_logger

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def _empty(self) -> RootT:
        return self.root_type()

    @abstractmethod
    def _migrate_legacy(self, data: list) -> dict[str, Any]:
        """Turn a legacy bare-array blob into the current root layout."""
        pass

    def _dropped_inline_images(self, root: RootT) -> list[tuple[str, int]]:
        return []

    def _build_root(self, data: dict[str, Any]) -> RootT:
        """
        Validate records one by one, skipping the ones that fail.

        Top-level scalars that fail validation fall back to their defaults.
        """
        clean: dict[str, Any] = dict(data)
        skipped: dict[str, int] = {}
        for field, record_type in self.record_types.items():
            records = data.get(field)
            if not isinstance(records, list):
                clean.pop(field, None)
                continue
            kept = []
            for record in records:
                try:
                    kept.append(record_type.model_validate(record))
                except ValidationError as e:
                    skipped[field] = skipped.get(field, 0) + 1
                    record_id = record.get("id") if isinstance(record, dict) else None
                    logger.warning(
                        "state_record_skipped",
                        key=self.key, field=field, record_id=record_id, error=str(e),
                    )
            clean[field] = kept

        try:
            root = self.root_type.model_validate(clean)
        except ValidationError as e:
            bad_fields = {err["loc"][0] for err in e.errors() if err["loc"]}
            logger.warning("state_fields_defaulted", key=self.key, fields=sorted(map(str, bad_fields)))
            for field in bad_fields:
                clean.pop(field, None)
            root = self.root_type.model_validate(clean)

        if skipped and self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.state_records_skipped(self.key, skipped))
        return root

    def load(self) -> RootT:
        try:
            raw = self._store.get_item(self.key)
        except StorageError as e:
            logger.error("state_load_failed", key=self.key, error=str(e))
            return self._empty()

        if not raw:
            return self._empty()

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("state_unparsable", key=self.key, error=str(e))
            return self._empty()

        if isinstance(data, list):
            root = self._build_root(self._migrate_legacy(data))
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.state_migrated(self.key, len(data)))
            return root
        if isinstance(data, dict):
            return self._build_root(data)

        logger.error("state_unexpected_shape", key=self.key, shape=type(data).__name__)
        return self._empty()

    def save(self, root: RootT) -> bool:
        for entity_type, entity_id in self._dropped_inline_images(root):
            logger.warning("inline_image_not_persisted", entity_type=entity_type, entity_id=entity_id)
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.inline_image_dropped(entity_type, entity_id))

        try:
            text = dumps_root(root.to_storage_dict())
            self._store.set_item(self.key, text)
        except (StorageError, TypeError, ValueError) as e:
            logger.error("state_save_failed", key=self.key, error=str(e))
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.save_failed(self.key, str(e)))
            return False
        return True


class CounterStateRepository(_JsonRootRepository[PersistedRoot]):
    """Categories and counters under ``counters_data``."""

    key = COUNTERS_STORAGE_KEY
    root_type = PersistedRoot
    record_types = {"categories": Category, "counters": Counter}

    def _migrate_legacy(self, data: list) -> dict[str, Any]:
        logger.info("state_legacy_array_migrated", key=self.key, counters=len(data))
        counters = [
            {**entry, "categoryId": LEGACY_DEFAULT_CATEGORY_ID}
            for entry in data
            if isinstance(entry, dict)
        ]
        return {
            "categories": [{"id": LEGACY_DEFAULT_CATEGORY_ID, "name": DEFAULT_CATEGORY_NAME}],
            "counters": counters,
        }

    def _dropped_inline_images(self, root: PersistedRoot) -> list[tuple[str, int]]:
        return [("counter", c.id) for c in root.counters if isinstance(c.image, InlineImage)]


class IncomeStateRepository(_JsonRootRepository[IncomeRoot]):
    """Income ledger under ``income_data_v1``."""

    key = INCOME_STORAGE_KEY
    root_type = IncomeRoot
    record_types = {"items": IncomeItem}

    def _migrate_legacy(self, data: list) -> dict[str, Any]:
        return {"items": data, "dailyGoldPrice": 0}

    def _dropped_inline_images(self, root: IncomeRoot) -> list[tuple[str, int]]:
        return [("income_item", i.id) for i in root.items if isinstance(i.img, InlineImage)]


class ThemeRepository:
    """The active UI theme under ``app_theme``, stored as a bare string."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    def load(self) -> Theme:
        try:
            raw = self._store.get_item(THEME_STORAGE_KEY)
        except StorageError as e:
            logger.error("theme_load_failed", error=str(e))
            return DEFAULT_THEME
        try:
            return Theme(raw) if raw else DEFAULT_THEME
        except ValueError:
            logger.warning("theme_unknown", value=raw)
            return DEFAULT_THEME

    def save(self, theme: Theme) -> bool:
        try:
            self._store.set_item(THEME_STORAGE_KEY, Theme(theme).value)
        except (StorageError, ValueError) as e:
            logger.error("theme_save_failed", error=str(e))
            return False
        return True
