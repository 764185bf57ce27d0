"""
Destination reference data schemas.

Categories carry their brands and declared image slots. Services are
flat id/name pairs. Loaded fresh on every batch, never persisted.

Names and slot descriptions are kept byte-for-byte; lookups against them
are exact.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional

from models.base import BaseSchema


class ReferenceSchema(BaseSchema):
    """Reference data as the destination sent it, whitespace included."""
    model_config = ConfigDict(str_strip_whitespace=False)


class TaxonomyBrand(ReferenceSchema):
    """Brand under a category."""

    id: int
    name: str


class ImageSlot(ReferenceSchema):
    """Image placeholder declared by a category."""

    id: int
    description: str = ""


class TaxonomyCategory(ReferenceSchema):
    """Category with its brands and image slots."""

    id: int
    name: str
    brands: list[TaxonomyBrand] = Field(default_factory=list)
    image_slots: list[ImageSlot] = Field(
        default_factory=list,
        alias="categoryImages",
        description="Declared image slots"
    )

    @field_validator("brands", "image_slots", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []

    def find_brand(self, name: Optional[str]) -> Optional[TaxonomyBrand]:
        """Exact, case-sensitive brand lookup."""
        if name is None:
            return None
        return next((b for b in self.brands if b.name == name), None)


class TaxonomyService(ReferenceSchema):
    """Service add-on that can be linked to an order."""

    id: int
    name: str
