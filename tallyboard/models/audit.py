"""
Audit Models for Tallyboard

Every state change and every image-store operation produces one event.
This provides:
1. A trail of what happened to each counter and category
2. Debugging information when a save or a delete fails
3. A record of files left behind by failed deletes
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"

    # Counters
    COUNTER_CREATED = "counter_created"
    COUNTER_UPDATED = "counter_updated"
    COUNTER_DELETED = "counter_deleted"
    COUNTERS_RESET = "counters_reset"
    THRESHOLD_APPLIED = "threshold_applied"
    THRESHOLD_REACHED = "threshold_reached"

    # Income ledger
    INCOME_ITEM_SAVED = "income_item_saved"
    INCOME_ITEM_DELETED = "income_item_deleted"
    INCOME_LEDGER_CLEARED = "income_ledger_cleared"

    # Persistence
    STATE_MIGRATED = "state_migrated"
    STATE_RECORDS_SKIPPED = "state_records_skipped"
    SAVE_FAILED = "save_failed"
    INLINE_IMAGE_DROPPED = "inline_image_dropped"

    # Image store
    IMAGE_SAVED = "image_saved"
    IMAGE_DELETED = "image_deleted"
    IMAGE_DELETE_FAILED = "image_delete_failed"
    IMAGE_UPLOAD_FAILED = "image_upload_failed"
    PATH_REJECTED = "path_rejected"

    # Validation
    VALIDATION_FAILED = "validation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'counter', 'category', 'image')"
    )
    entity_id: Optional[int] = None

    description: str = Field(
        ...,
        max_length=500,
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.counter_created(counter_id, name, category_id)
        event = AuditEventBuilder.save_failed(key, error)
    """

    @staticmethod
    def category_created(category_id: int, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def category_renamed(category_id: int, old_name: str, new_name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_RENAMED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category renamed: {old_name} -> {new_name}",
            details={"old_name": old_name, "new_name": new_name},
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(
        category_id: int,
        counter_ids: list[int],
        failed_image_deletes: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            severity=AuditSeverity.WARNING if failed_image_deletes else AuditSeverity.INFO,
            entity_type="category",
            entity_id=category_id,
            description=f"Category deleted with {len(counter_ids)} counters",
            details={
                "counter_ids": counter_ids,
                "orphaned_images": failed_image_deletes,
            },
            is_user_action=True,
        )

    @staticmethod
    def counter_created(counter_id: int, name: str, category_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COUNTER_CREATED,
            entity_type="counter",
            entity_id=counter_id,
            description=f"Counter created: {name}",
            details={"name": name, "category_id": category_id},
            is_user_action=True,
        )

    @staticmethod
    def counter_updated(counter_id: int, changes: dict[str, Any]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COUNTER_UPDATED,
            entity_type="counter",
            entity_id=counter_id,
            description=f"Counter updated: {', '.join(sorted(changes)) or 'no changes'}",
            details=changes,
            is_user_action=True,
        )

    @staticmethod
    def counter_deleted(counter_id: int, image_deleted: Optional[bool]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COUNTER_DELETED,
            entity_type="counter",
            entity_id=counter_id,
            description="Counter deleted",
            details={"image_deleted": image_deleted},
            is_user_action=True,
        )

    @staticmethod
    def counters_reset(category_id: int, count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COUNTERS_RESET,
            entity_type="category",
            entity_id=category_id,
            description=f"Reset {count} counters to 0",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def threshold_applied(category_id: int, max_value: Optional[int], count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THRESHOLD_APPLIED,
            entity_type="category",
            entity_id=category_id,
            description=(
                f"Threshold {max_value} applied to {count} counters"
                if max_value is not None
                else f"Threshold cleared on {count} counters"
            ),
            details={"max_value": max_value, "count": count},
            is_user_action=True,
        )

    @staticmethod
    def threshold_reached(counter_id: int, name: str, max_value: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THRESHOLD_REACHED,
            entity_type="counter",
            entity_id=counter_id,
            description=f"Counter '{name}' reached its threshold {max_value}",
            details={"max_value": max_value},
        )

    @staticmethod
    def income_item_saved(item_id: int, name: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ITEM_SAVED,
            entity_type="income_item",
            entity_id=item_id,
            description=f"Income item {'created' if created else 'updated'}: {name}",
            details={"name": name, "created": created},
            is_user_action=True,
        )

    @staticmethod
    def income_item_deleted(item_id: int, image_deleted: Optional[bool]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ITEM_DELETED,
            entity_type="income_item",
            entity_id=item_id,
            description="Income item deleted",
            details={"image_deleted": image_deleted},
            is_user_action=True,
        )

    @staticmethod
    def income_ledger_cleared(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_LEDGER_CLEARED,
            entity_type="income_ledger",
            description=f"Income ledger cleared ({count} items)",
            details={"count": count},
            is_user_action=True,
        )

    @staticmethod
    def state_migrated(key: str, counter_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_MIGRATED,
            entity_type="state",
            description=f"Legacy array under '{key}' migrated in memory",
            details={"key": key, "counter_count": counter_count},
        )

    @staticmethod
    def state_records_skipped(key: str, skipped: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RECORDS_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description=f"Unreadable records under '{key}' were skipped",
            details={"key": key, "skipped": skipped},
        )

    @staticmethod
    def save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            description=f"Failed to persist '{key}'",
            error_message=error_message,
            details={"key": key},
        )

    @staticmethod
    def inline_image_dropped(entity_type: str, entity_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INLINE_IMAGE_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description="Inline image not persisted",
        )

    @staticmethod
    def image_saved(filename: str, size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_SAVED,
            entity_type="image",
            description=f"Image saved: {filename}",
            details={"filename": filename, "size_bytes": size_bytes},
        )

    @staticmethod
    def image_deleted(filename: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_DELETED,
            entity_type="image",
            description=f"Image deleted: {filename}",
            details={"filename": filename},
        )

    @staticmethod
    def image_delete_failed(reference: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_DELETE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            description=f"Image delete failed: {reference}",
            error_message=error_message,
            details={"reference": reference},
        )

    @staticmethod
    def image_upload_failed(filename: str, attempts: int, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_UPLOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            description=f"Image upload failed after {attempts} attempts: {filename}",
            error_message=error_message,
            details={"filename": filename, "attempts": attempts},
        )

    @staticmethod
    def path_rejected(requested: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PATH_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="image",
            description="Refused a path outside the upload directory",
            details={"requested": requested},
        )

    @staticmethod
    def validation_failed(entity_type: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )
