"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    PaginatedResponse
)
from models.catalog import (
    MetadataField,
    WritebackField,
    WRITEBACK_FIELDS,
    ProductImage,
    ProductMetadata,
    ProductRecord,
    CatalogPage,
)
from models.taxonomy import (
    TaxonomyBrand,
    ImageSlot,
    TaxonomyCategory,
    TaxonomyService,
)
from models.order import (
    UnmatchedImagePolicy,
    UploadedImage,
    OrderImage,
    OrderPayload,
    OrderResult,
)
from models.sync import (
    UNSET_ORDER_ID,
    ItemStage,
    is_valid_stage_transition,
    SyncOutcome,
    ItemResult,
    BatchResult,
    BatchRequest,
    BatchResponse,
)
from models.settings import (
    SettingCategory,
    SyncSettingKey,
    SettingResponse,
    SettingListResponse,
    SyncSettingsUpdate,
    SyncSettingsResponse,
    SyncCredentials,
)

__all__ = [
    # Base
    "BaseSchema",
    "PaginatedResponse",

    # Catalog
    "MetadataField",
    "WritebackField",
    "WRITEBACK_FIELDS",
    "ProductImage",
    "ProductMetadata",
    "ProductRecord",
    "CatalogPage",

    # Taxonomy
    "TaxonomyBrand",
    "ImageSlot",
    "TaxonomyCategory",
    "TaxonomyService",

    # Order
    "UnmatchedImagePolicy",
    "UploadedImage",
    "OrderImage",
    "OrderPayload",
    "OrderResult",

    # Sync
    "UNSET_ORDER_ID",
    "ItemStage",
    "is_valid_stage_transition",
    "SyncOutcome",
    "ItemResult",
    "BatchResult",
    "BatchRequest",
    "BatchResponse",

    # Settings
    "SettingCategory",
    "SyncSettingKey",
    "SettingResponse",
    "SettingListResponse",
    "SyncSettingsUpdate",
    "SyncSettingsResponse",
    "SyncCredentials",
]
