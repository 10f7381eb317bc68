"""
Income Ledger Domain Logic

Items carry a unit price in 万 and a quantity. Amounts and totals are
derived on demand (see IncomeTotals) and never stored.
"""

from typing import Any, Callable, Optional

from tallyboard.audit import AuditLogger
from tallyboard.domain.base import StateController
from tallyboard.domain.errors import ConfirmationRequiredError, IncomeItemNotFoundError
from tallyboard.models.audit import AuditEventBuilder
from tallyboard.models.image import parse_image_ref
from tallyboard.models.income import DEFAULT_ITEM_NAME, IncomeItem, IncomeRoot, IncomeTotals
from tallyboard.services.image import ImageStoreInterface
from tallyboard.state import IncomeStateRepository, StateChangeBus
from tallyboard.validation import IncomeValidator


# Marks an update_item argument that was not passed
_UNSET: Any = object()


class IncomeLedgerController(StateController[IncomeRoot]):
    """Owns the income ledger root for one view."""

    def __init__(
        self,
        repository: IncomeStateRepository,
        image_store: Optional[ImageStoreInterface] = None,
        bus: Optional[StateChangeBus] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], float]] = None,
        validator: Optional[IncomeValidator] = None,
    ):
        super().__init__(repository, image_store, bus, audit_logger, clock)
        self._validator = validator or IncomeValidator()

    @property
    def items(self) -> list[IncomeItem]:
        return list(self._root.items)

    @property
    def daily_gold_price(self) -> float:
        return self._root.daily_gold_price

    def get_item(self, item_id: int) -> IncomeItem:
        item = self._root.find_item(item_id)
        if item is None:
            raise IncomeItemNotFoundError(item_id)
        return item

    def search(self, text: Optional[str]) -> list[IncomeItem]:
        """Case-insensitive substring match on item names; blank matches all."""
        query = (text or "").strip().casefold()
        if not query:
            return list(self._root.items)
        return [item for item in self._root.items if query in item.name.casefold()]

    def totals(self) -> IncomeTotals:
        return IncomeTotals.from_root(self._root)

    def add_item(
        self,
        name: str = DEFAULT_ITEM_NAME,
        price: float = 0,
        qty: int = 0,
        img: Any = None,
    ) -> IncomeItem:
        self._ensure_valid("income_item", self._validator.validate_item(name, price, qty))
        item = IncomeItem(
            id=self._next_id({i.id for i in self._root.items}),
            name=name.strip(),
            price=price,
            qty=qty,
            img=parse_image_ref(img),
        )
        self._root.items.append(item)
        self._commit()
        self._audit(AuditEventBuilder.income_item_saved(item.id, item.name, created=True))
        return item

    def update_item(
        self,
        item_id: int,
        name: str = _UNSET,
        price: float = _UNSET,
        qty: int = _UNSET,
        img: Any = _UNSET,
    ) -> IncomeItem:
        """
        Patch an item. Arguments left out keep their value; img=None
        clears the image, and a replaced stored image is deleted
        best-effort.
        """
        item = self.get_item(item_id)
        new_name = item.name if name is _UNSET else name
        new_price = item.price if price is _UNSET else price
        new_qty = item.qty if qty is _UNSET else qty
        self._ensure_valid(
            "income_item",
            self._validator.validate_item(new_name, new_price, new_qty),
        )

        item.name = new_name.strip()
        item.price = new_price
        item.qty = new_qty
        if img is not _UNSET:
            new_img = parse_image_ref(img)
            if new_img != item.img:
                old_img = item.img
                item.img = new_img
                self._delete_stored_image(old_img)

        self._commit()
        self._audit(AuditEventBuilder.income_item_saved(item.id, item.name, created=False))
        return item

    def increment_qty(self, item_id: int) -> IncomeItem:
        item = self.get_item(item_id)
        item.qty += 1
        self._commit()
        return item

    def decrement_qty(self, item_id: int) -> IncomeItem:
        item = self.get_item(item_id)
        item.qty = max(0, item.qty - 1)
        self._commit()
        return item

    def reset_all_qty(self, confirm: bool = False) -> int:
        if not confirm:
            raise ConfirmationRequiredError("reset all quantities")
        for item in self._root.items:
            item.qty = 0
        self._commit()
        return len(self._root.items)

    def remove_item(self, item_id: int, confirm: bool = False) -> Optional[bool]:
        """
        Remove an item after a best-effort delete of its stored image.

        Returns:
            Whether the image was deleted, or None if it had no stored image
        """
        item = self.get_item(item_id)
        if not confirm:
            raise ConfirmationRequiredError("remove income item")
        image_deleted = self._delete_stored_image(item.img)
        self._root.items = [i for i in self._root.items if i.id != item_id]
        self._commit()
        self._audit(AuditEventBuilder.income_item_deleted(item_id, image_deleted))
        return image_deleted

    def clear_all(self, confirm: bool = False) -> int:
        """
        Remove every item. Uploaded files are left on disk.

        Returns:
            Number of items removed
        """
        if not confirm:
            raise ConfirmationRequiredError("clear income ledger")
        count = len(self._root.items)
        self._root.items = []
        self._commit()
        self._audit(AuditEventBuilder.income_ledger_cleared(count))
        return count

    def set_daily_gold_price(self, price: float) -> float:
        self._ensure_valid("income_ledger", self._validator.validate_gold_price(price))
        self._root.daily_gold_price = price
        self._commit()
        return self._root.daily_gold_price
