"""
Core Data Models for Tallyboard

These models define the persisted shape of categories and counters.
They are designed to:
1. Enforce the counter invariants (value >= 0, maxValue >= 1)
2. Read and write the original camelCase JSON layout
3. Keep inline images in memory while never writing them to the store
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


# Key used for the counters/categories root in the local store
COUNTERS_STORAGE_KEY = "counters_data"

# Category synthesised when migrating a legacy bare-array blob
LEGACY_DEFAULT_CATEGORY_ID = 1
DEFAULT_CATEGORY_NAME = "默认"


def _strip_inline(info: SerializationInfo) -> bool:
    return bool(info.context and info.context.get("strip_inline"))


class Category(BaseModel):
    """A named group of counters."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        ...,
        description="Unique id, derived from the creation timestamp"
    )
    name: str = Field(
        ...,
        description="Display name, unique case-insensitively"
    )


class Counter(BaseModel):
    """
    A named integer tally.

    Reaching maxValue is a notification, not a cap: value may keep
    growing past it.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: int = Field(
        ...,
        description="Unique counter id"
    )
    name: str = Field(
        ...,
        description="Counter name"
    )
    value: int = Field(
        default=0,
        ge=0,
        description="Current tally"
    )
    image: Optional[ImageRef] = Field(
        default=None,
        description="Inline or stored image"
    )
    max_value: Optional[int] = Field(
        default=None,
        ge=1,
        alias="maxValue",
        description="Threshold that triggers a notification"
    )
    category_id: int = Field(
        ...,
        alias="categoryId",
        description="Owning category"
    )

    @field_validator("image", mode="before")
    @classmethod
    def parse_image(cls, v: Any) -> Optional[ImageRef]:
        return parse_image_ref(v)

    @field_serializer("image")
    def serialize_image(self, image: Optional[ImageRef], info: SerializationInfo) -> Optional[str]:
        return image_to_wire(image, strip_inline=_strip_inline(info))

    @property
    def at_or_over_threshold(self) -> bool:
        """True when a threshold is set and the value has reached it."""
        return self.max_value is not None and self.value >= self.max_value


class PersistedRoot(BaseModel):
    """Everything stored under COUNTERS_STORAGE_KEY."""
    model_config = ConfigDict(extra="ignore")

    categories: list[Category] = Field(default_factory=list)
    counters: list[Counter] = Field(default_factory=list)

    def to_storage_dict(self) -> dict:
        """
        Serialize for the local store.

        Inline images are written as null; self is left untouched.
        """
        return self.model_dump(by_alias=True, context={"strip_inline": True})

    def find_category(self, category_id: int) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_counter(self, counter_id: int) -> Optional[Counter]:
        return next((c for c in self.counters if c.id == counter_id), None)

    def counters_in(self, category_id: int) -> list[Counter]:
        return [c for c in self.counters if c.category_id == category_id]
