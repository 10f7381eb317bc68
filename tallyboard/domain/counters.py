"""
Counter Domain Logic

CounterController is the single owner of the categories/counters root for
one view. All operations are synchronous: one state transition per call,
followed immediately by a full save.

CRITICAL:
- value never goes below 0
- The threshold notification fires only when an increase lands exactly
  on maxValue; values past it do not notify again until the counter
  comes back down and reaches maxValue once more
- Image deletes during counter or category removal are best-effort; the
  state change always completes
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from tallyboard.audit import AuditLogger, get_logger
from tallyboard.domain.base import StateController
from tallyboard.domain.errors import (
    CategoryNotFoundError,
    ConfirmationRequiredError,
    CounterNotFoundError,
    NoCategoryError,
)
from tallyboard.models.audit import AuditEventBuilder
from tallyboard.models.counter import (
    DEFAULT_CATEGORY_NAME,
    LEGACY_DEFAULT_CATEGORY_ID,
    Category,
    Counter,
    PersistedRoot,
)
from tallyboard.models.image import ImageRef, parse_image_ref
from tallyboard.services.image import ImageStoreInterface
from tallyboard.state import CounterStateRepository, StateChangeBus
from tallyboard.validation import CounterValidator


logger = get_logger(__name__)


class ThresholdReached(BaseModel):
    """Notification that a counter landed exactly on its maxValue."""
    model_config = ConfigDict(frozen=True)

    counter_id: int
    name: str
    max_value: int


class CounterController(StateController[PersistedRoot]):
    """
    Categories and counters for one view.

    Usage:
        controller = CounterController(repository, image_store)
        category = controller.create_category("Daily")
        counter = controller.create_counter(category.id, "Push-ups", max_value=50)
        controller.increase(counter.id)
    """

    def __init__(
        self,
        repository: CounterStateRepository,
        image_store: Optional[ImageStoreInterface] = None,
        bus: Optional[StateChangeBus] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_threshold: Optional[Callable[[ThresholdReached], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        validator: Optional[CounterValidator] = None,
    ):
        super().__init__(repository, image_store, bus, audit_logger, clock)
        self._on_threshold = on_threshold
        self._validator = validator or CounterValidator()

    # ------------------------------------------------------------------
    #  Queries
    # ------------------------------------------------------------------

    @property
    def categories(self) -> list[Category]:
        return list(self._root.categories)

    def categories_or_default(self) -> list[Category]:
        """Stored categories, or a transient default one when none exist."""
        if self._root.categories:
            return list(self._root.categories)
        return [Category(id=LEGACY_DEFAULT_CATEGORY_ID, name=DEFAULT_CATEGORY_NAME)]

    def get_category(self, category_id: int) -> Category:
        category = self._root.find_category(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    def get_counter(self, counter_id: int) -> Counter:
        counter = self._root.find_counter(counter_id)
        if counter is None:
            raise CounterNotFoundError(counter_id)
        return counter

    def counters_in(self, category_id: int) -> list[Counter]:
        return self._root.counters_in(category_id)

    def total(self, category_id: int) -> int:
        """Sum of counter values in a category."""
        return sum(c.value for c in self._root.counters_in(category_id))

    @staticmethod
    def threshold_warning(counter: Counter) -> bool:
        """True when the counter is at or past its threshold."""
        return counter.at_or_over_threshold

    # ------------------------------------------------------------------
    #  Categories
    # ------------------------------------------------------------------

    def create_category(self, name: str) -> Category:
        self._ensure_valid(
            "category",
            self._validator.validate_category_name(name, self._root.categories),
        )
        category = Category(
            id=self._next_id({c.id for c in self._root.categories}),
            name=name.strip(),
        )
        self._root.categories.append(category)
        self._commit()
        self._audit(AuditEventBuilder.category_created(category.id, category.name))
        return category

    def rename_category(self, category_id: int, name: str) -> Category:
        category = self.get_category(category_id)
        self._ensure_valid(
            "category",
            self._validator.validate_category_name(
                name, self._root.categories, exclude_id=category_id,
            ),
        )
        old_name = category.name
        category.name = name.strip()
        self._commit()
        self._audit(AuditEventBuilder.category_renamed(category_id, old_name, category.name))
        return category

    def delete_category(self, category_id: int, confirm: bool = False) -> list[str]:
        """
        Delete a category and every counter in it.

        Stored images of those counters are deleted first; a failed delete
        never stops the loop or the removal.

        Returns:
            References of images that could not be deleted
        """
        self.get_category(category_id)
        if not confirm:
            raise ConfirmationRequiredError("delete category")

        doomed = self._root.counters_in(category_id)
        failed: list[str] = []
        for counter in doomed:
            if self._delete_stored_image(counter.image) is False:
                failed.append(counter.image.reference)

        self._root.counters = [c for c in self._root.counters if c.category_id != category_id]
        self._root.categories = [c for c in self._root.categories if c.id != category_id]
        self._commit()

        if failed:
            logger.warning("category_deleted_with_orphans", category_id=category_id, orphans=failed)
        self._audit(AuditEventBuilder.category_deleted(
            category_id, [c.id for c in doomed], failed,
        ))
        return failed

    # ------------------------------------------------------------------
    #  Counters
    # ------------------------------------------------------------------

    def create_counter(
        self,
        category_id: int,
        name: str,
        max_value: Optional[int] = None,
        image: Any = None,
    ) -> Counter:
        """
        Add a counter to a category.

        Raises:
            NoCategoryError: If no category exists yet
            CategoryNotFoundError: If category_id is unknown
            ValidationFailedError: For an empty name or a bad threshold
        """
        if not self._root.categories:
            raise NoCategoryError("Create a category before adding counters")
        self.get_category(category_id)
        self._ensure_valid("counter", self._validator.validate_counter(name, max_value))

        counter = Counter(
            id=self._next_id({c.id for c in self._root.counters}),
            name=name.strip(),
            value=0,
            image=parse_image_ref(image),
            max_value=max_value,
            category_id=category_id,
        )
        self._root.counters.append(counter)
        self._commit()
        self._audit(AuditEventBuilder.counter_created(counter.id, counter.name, category_id))
        return counter

    def update_counter(
        self,
        counter_id: int,
        name: str,
        max_value: Optional[int] = None,
        image: Any = None,
    ) -> Counter:
        """
        Change a counter's name and threshold, and optionally its image.

        image=None keeps the current image. A replaced stored image is
        deleted best-effort.
        """
        counter = self.get_counter(counter_id)
        self._ensure_valid("counter", self._validator.validate_counter(name, max_value))

        new_image = parse_image_ref(image)
        changes: dict[str, Any] = {}
        if counter.name != name.strip():
            changes["name"] = name.strip()
        if counter.max_value != max_value:
            changes["maxValue"] = max_value

        old_image = counter.image
        counter.name = name.strip()
        counter.max_value = max_value
        if new_image is not None and new_image != old_image:
            counter.image = new_image
            changes["image"] = True
            self._delete_stored_image(old_image)

        self._commit()
        self._audit(AuditEventBuilder.counter_updated(counter_id, changes))
        return counter

    def set_counter_image(self, counter_id: int, image: Optional[ImageRef]) -> Counter:
        """Replace (or clear, with None) a counter's image."""
        counter = self.get_counter(counter_id)
        new_image = parse_image_ref(image)
        old_image = counter.image
        if new_image == old_image:
            return counter
        counter.image = new_image
        self._delete_stored_image(old_image)
        self._commit()
        self._audit(AuditEventBuilder.counter_updated(counter_id, {"image": new_image is not None}))
        return counter

    def delete_counter(self, counter_id: int, confirm: bool = False) -> Optional[bool]:
        """
        Remove a counter after a best-effort delete of its stored image.

        Returns:
            Whether the image was deleted, or None if it had no stored image
        """
        counter = self.get_counter(counter_id)
        if not confirm:
            raise ConfirmationRequiredError("delete counter")

        image_deleted = self._delete_stored_image(counter.image)
        self._root.counters = [c for c in self._root.counters if c.id != counter_id]
        self._commit()
        self._audit(AuditEventBuilder.counter_deleted(counter_id, image_deleted))
        return image_deleted

    # ------------------------------------------------------------------
    #  Tally
    # ------------------------------------------------------------------

    def increase(self, counter_id: int) -> Counter:
        counter = self.get_counter(counter_id)
        counter.value += 1
        self._commit()

        if counter.max_value is not None and counter.value == counter.max_value:
            self._notify_threshold(counter)
        return counter

    def decrease(self, counter_id: int) -> Counter:
        counter = self.get_counter(counter_id)
        counter.value = max(0, counter.value - 1)
        self._commit()
        return counter

    def reset(self, counter_id: int) -> Counter:
        counter = self.get_counter(counter_id)
        counter.value = 0
        self._commit()
        return counter

    def reset_all(self, category_id: int, confirm: bool = False) -> int:
        """
        Set every counter in one category to 0.

        Returns:
            Number of counters reset
        """
        self.get_category(category_id)
        if not confirm:
            raise ConfirmationRequiredError("reset all counters")

        counters = self._root.counters_in(category_id)
        for counter in counters:
            counter.value = 0
        self._commit()
        self._audit(AuditEventBuilder.counters_reset(category_id, len(counters)))
        return len(counters)

    def apply_batch_threshold(self, category_id: int, max_value: Optional[int]) -> int:
        """
        Set (or clear, with None) maxValue on every counter in a category.

        Returns:
            Number of counters changed
        """
        self.get_category(category_id)
        self._ensure_valid("counter", self._validator.validate_max_value(max_value))

        counters = self._root.counters_in(category_id)
        for counter in counters:
            counter.max_value = max_value
        self._commit()
        self._audit(AuditEventBuilder.threshold_applied(category_id, max_value, len(counters)))
        return len(counters)

    def _notify_threshold(self, counter: Counter) -> None:
        event = ThresholdReached(
            counter_id=counter.id,
            name=counter.name,
            max_value=counter.max_value,
        )
        logger.info("threshold_reached", counter_id=counter.id, max_value=counter.max_value)
        self._audit(AuditEventBuilder.threshold_reached(counter.id, counter.name, counter.max_value))
        if self._on_threshold:
            self._on_threshold(event)
