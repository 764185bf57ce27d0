"""
Destination order schemas.

See integrations/destination.py for the wire calls that consume these.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Optional, Union
from enum import Enum

from models.base import BaseSchema


class UnmatchedImagePolicy(str, Enum):
    """What happens to an uploaded image that fits no category slot."""
    ATTACH = "attach"  # Sent without a slot id
    DROP = "drop"


class UploadedImage(BaseSchema):
    """Image stored in the destination, with the tag it was uploaded under."""

    image_id: Union[int, str]
    descriptive_tag: str


class OrderImage(BaseSchema):
    """Image reference sent with an order."""

    image_id: Union[int, str]
    slot_id: Optional[int] = Field(None, description="Category image slot id")

    def to_payload(self) -> dict:
        data = {"image_id": self.image_id}
        if self.slot_id is not None:
            data = {"category_image_id": self.slot_id, **data}
        return data


class OrderPayload(BaseSchema):
    """Body of the order creation request."""

    email: str = ""
    title: str
    brand_id: int
    category_id: int
    documentation_name: str = "RA"
    web_link: str
    note: str = ""
    serial_number: str = ""
    sku: str = ""
    images: list[OrderImage] = Field(default_factory=list)

    def to_payload(self) -> dict:
        data = self.model_dump(exclude={"images"})
        data["images"] = [img.to_payload() for img in self.images]
        return data


class OrderResult(BaseSchema):
    """
    Order creation response.

    Only the id is required; other fields are written back to the product
    when present.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    status_description: Optional[str] = Field(None, alias="statusDescription")
    note: Optional[str] = None
    serial_number: Optional[str] = Field(None, alias="serialNumber")

    @field_validator("status_description", "note", "serial_number", mode="before")
    @classmethod
    def scalar_to_str(cls, v):
        """Display fields are written back as text whatever type they arrive as."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, (int, float)):
            return str(v)
        return None
