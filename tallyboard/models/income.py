"""
Income Ledger Models

Prices are entered in 万 (units of 10,000). Amounts are never stored;
they are recomputed from price, quantity and the daily gold price.
"""

from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    field_serializer,
    field_validator,
)

from tallyboard.models.image import ImageRef, image_to_wire, parse_image_ref


INCOME_STORAGE_KEY = "income_data_v1"

# One 万 in currency units
WAN = 10_000

DEFAULT_ITEM_NAME = "新类目"


class IncomeItem(BaseModel):
    """One row of the income ledger."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: int
    name: str = ""
    price: float = Field(
        default=0.0,
        ge=0,
        description="Unit price in 万"
    )
    qty: int = Field(
        default=0,
        ge=0,
        description="Quantity"
    )
    img: Optional[ImageRef] = None

    @field_validator("qty", mode="before")
    @classmethod
    def whole_qty(cls, v: Any) -> Any:
        if isinstance(v, float) and v >= 0:
            return int(round(v))
        return v

    @field_validator("img", mode="before")
    @classmethod
    def parse_img(cls, v: Any) -> Optional[ImageRef]:
        return parse_image_ref(v)

    @field_serializer("img")
    def serialize_img(self, img: Optional[ImageRef], info: SerializationInfo) -> Optional[str]:
        return image_to_wire(img, strip_inline=bool(info.context and info.context.get("strip_inline")))

    @property
    def subtotal_wan(self) -> float:
        return self.price * self.qty

    def amount(self) -> float:
        """Amount in currency units (price is in 万)."""
        return self.subtotal_wan * WAN

    def gold_amount(self, daily_gold_price: float) -> float:
        """Amount at the daily gold price (currency per 万)."""
        return self.subtotal_wan * daily_gold_price


class IncomeRoot(BaseModel):
    """Everything stored under INCOME_STORAGE_KEY."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: list[IncomeItem] = Field(default_factory=list)
    daily_gold_price: float = Field(
        default=0.0,
        ge=0,
        alias="dailyGoldPrice",
        description="Currency units per 万"
    )

    def to_storage_dict(self) -> dict:
        """Serialize for the local store with inline images dropped."""
        return self.model_dump(by_alias=True, context={"strip_inline": True})

    def find_item(self, item_id: int) -> Optional[IncomeItem]:
        return next((i for i in self.items if i.id == item_id), None)


class IncomeTotals(BaseModel):
    """Grand totals over the ledger."""

    total_wan: float = Field(
        ...,
        description="Sum of price x qty, in 万"
    )
    total_amount: float = Field(
        ...,
        description="total_wan in currency units"
    )
    total_by_gold: float = Field(
        ...,
        description="total_wan at the daily gold price"
    )

    @classmethod
    def from_root(cls, root: IncomeRoot) -> "IncomeTotals":
        total_wan = sum(item.subtotal_wan for item in root.items)
        return cls(
            total_wan=total_wan,
            total_amount=total_wan * WAN,
            total_by_gold=total_wan * root.daily_gold_price,
        )
