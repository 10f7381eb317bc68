"""
Shared Controller Plumbing

A controller owns the in-memory copy of one persisted root. Every
mutation follows the same sequence:

    validate -> mutate -> save the full root -> publish on the bus

Other controllers on the same bus reload the whole root when they
receive the signal.
"""

import time
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from tallyboard.audit import AuditLogger, get_logger
from tallyboard.domain.errors import ValidationFailedError
from tallyboard.models.audit import AuditEvent, AuditEventBuilder
from tallyboard.models.image import ImageRef, StoredImage
from tallyboard.models.validation import ValidationResult
from tallyboard.services.image import ImageStoreInterface
from tallyboard.state import StateChangeBus


logger = get_logger(__name__)

RootT = TypeVar("RootT", bound=BaseModel)


class StateController(Generic[RootT]):
    """Base class for controllers that own a persisted root."""

    def __init__(
        self,
        repository: Any,
        image_store: Optional[ImageStoreInterface] = None,
        bus: Optional[StateChangeBus] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._repository = repository
        self._image_store = image_store
        self._bus = bus
        self._audit_logger = audit_logger
        self._clock = clock or time.time
        self._root: RootT = repository.load()
        self._last_save_ok = True
        self._unsubscribe = bus.subscribe(self, self._on_state_changed) if bus else None

    @property
    def state(self) -> RootT:
        """The live in-memory root. Treat as read-only outside the controller."""
        return self._root

    @property
    def last_save_ok(self) -> bool:
        """Whether the most recent save reached the store."""
        return self._last_save_ok

    def reload(self) -> None:
        """Replace the in-memory root with what is in the store."""
        self._root = self._repository.load()

    def close(self) -> None:
        """Stop listening for changes from other controllers."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_state_changed(self, source: Any) -> None:
        logger.debug("state_reload", controller=type(self).__name__)
        self.reload()

    def _commit(self) -> bool:
        self._last_save_ok = self._repository.save(self._root)
        if self._last_save_ok and self._bus:
            self._bus.publish(self)
        return self._last_save_ok

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _ensure_valid(self, entity_type: str, result: ValidationResult) -> None:
        if result.is_valid:
            return
        self._audit(AuditEventBuilder.validation_failed(
            entity_type, [issue.model_dump() for issue in result.issues],
        ))
        raise ValidationFailedError(result)

    def _next_id(self, taken: set[int]) -> int:
        """Millisecond timestamp, bumped until it does not collide."""
        candidate = int(self._clock() * 1000)
        while candidate in taken:
            candidate += 1
        return candidate

    def _delete_stored_image(self, image: Optional[ImageRef]) -> Optional[bool]:
        """
        Best-effort delete of a stored image.

        Returns:
            None when there is nothing to delete, otherwise whether the
            delete succeeded. Never raises.
        """
        if not isinstance(image, StoredImage) or self._image_store is None:
            return None
        try:
            result = self._image_store.delete_image(image.reference)
        except Exception as e:
            logger.error("image_delete_raised", reference=image.reference, error=str(e))
            self._audit(AuditEventBuilder.image_delete_failed(image.reference, str(e)))
            return False
        if not result.ok:
            logger.warning("image_delete_failed", reference=image.reference, error=result.error)
            self._audit(AuditEventBuilder.image_delete_failed(image.reference, result.error or "unknown"))
        return result.ok
