"""
Source catalog schemas.

A ProductRecord is a read-only snapshot of one store product, discarded
once the batch that fetched it completes. ProductMetadata is the typed view
over the rau_* custom fields the pipeline understands.
"""

from pydantic import ConfigDict, Field, field_validator
from typing import Mapping, Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class MetadataField(str, Enum):
    """Custom fields read from the product before syncing."""
    CATEGORY = "rau_category"
    BRAND = "rau_brand"
    SERVICES = "rau_services"
    NOTE = "rau_note"
    SERIAL_NUMBER = "rau_serialnumber"


class WritebackField(str, Enum):
    """Custom fields written to the product after the order exists."""
    ORDER_ID = "rau_order_id"
    PROGRESS = "rau_progress"
    UPLOAD_STATUS = "rau_uploadstatus"
    AUTHENTICATION_STATUS = "rau_authenticationstatus"
    NOTE = "rau_note"
    SERIAL_NUMBER = "rau_serialnumber"
    ORDER_LINK = "rau_order_link"


# Write order matters only for logs; every write is independent
WRITEBACK_FIELDS = [
    WritebackField.ORDER_ID,
    WritebackField.PROGRESS,
    WritebackField.UPLOAD_STATUS,
    WritebackField.AUTHENTICATION_STATUS,
    WritebackField.NOTE,
    WritebackField.SERIAL_NUMBER,
    WritebackField.ORDER_LINK,
]


class ProductImage(BaseSchema):
    """One product image and its alt text."""

    url: str = Field(..., min_length=1, description="Original image URL")
    descriptive_tag: Optional[str] = Field(
        None,
        description="Alt text; matched against category image slots"
    )

    @property
    def has_tag(self) -> bool:
        return bool(self.descriptive_tag)


class ProductMetadata(BaseSchema):
    """
    Recognized custom fields of a product.

    Built from the case-insensitive custom field mapping. Unknown keys are
    ignored; missing keys fall back to empty values.
    """
    model_config = ConfigDict(str_strip_whitespace=False)

    category: Optional[str] = Field(None, description="Taxonomy category name")
    brand: Optional[str] = Field(None, description="Brand name under the category")
    services: list[str] = Field(default_factory=list, description="Requested service names")
    note: str = Field("", description="Free-text note sent with the order")
    serial_number: str = Field("", description="Serial number sent with the order")

    @field_validator("services", mode="before")
    @classmethod
    def split_services(cls, v):
        """Accept the comma-separated form stored on the product."""
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @classmethod
    def from_custom_fields(cls, fields: Mapping[str, str]) -> "ProductMetadata":
        lowered = {k.lower(): v for k, v in fields.items()}
        return cls(
            category=lowered.get(MetadataField.CATEGORY.value) or None,
            brand=lowered.get(MetadataField.BRAND.value) or None,
            services=lowered.get(MetadataField.SERVICES.value),
            note=lowered.get(MetadataField.NOTE.value) or "",
            serial_number=lowered.get(MetadataField.SERIAL_NUMBER.value) or "",
        )


class ProductRecord(BaseSchema):
    """
    Snapshot of a source catalog product.

    custom_fields keys are stored lower-cased so lookups are
    case-insensitive. Values are kept as stored, whitespace included.
    """
    model_config = ConfigDict(str_strip_whitespace=False)

    source_id: str = Field(..., min_length=1, description="Store product GID")
    handle: str = Field("", description="URL handle")
    title: str = Field("", description="Product title")
    tags: set[str] = Field(default_factory=set)
    images: list[ProductImage] = Field(default_factory=list)
    custom_fields: dict[str, str] = Field(default_factory=dict)
    sku: str = Field("", description="First variant SKU")
    created_at: Optional[datetime] = None

    @field_validator("custom_fields", mode="before")
    @classmethod
    def lowercase_keys(cls, v):
        if not v:
            return {}
        return {str(k).lower(): "" if val is None else str(val) for k, val in dict(v).items()}

    @property
    def metadata(self) -> ProductMetadata:
        return ProductMetadata.from_custom_fields(self.custom_fields)

    @property
    def tagged_images(self) -> list[ProductImage]:
        """Images with a non-empty descriptive tag."""
        return [img for img in self.images if img.has_tag]


class CatalogPage(BaseSchema):
    """One page of the source catalog."""

    items: list[ProductRecord] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(
        None,
        description="Resumption cursor; None when the end of the catalog is reached"
    )
