"""
Custom exceptions module.

Base classes map to HTTP status codes; sync-specific errors map to the
pipeline's failure kinds.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Batch-fatal
    UpstreamFetchError,
    SyncSettingsMissingError,

    # Item-fatal
    ReferenceDataMissingError,
    CategoryNotFoundError,
    ImageUploadError,
    NoUploadedImagesError,
    OrderCreationError,

    # Persistence
    PersistenceError,

    # Not found
    ProductNotFoundError,
    SyncOutcomeNotFoundError,
    SettingNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Batch-fatal
    "UpstreamFetchError",
    "SyncSettingsMissingError",

    # Item-fatal
    "ReferenceDataMissingError",
    "CategoryNotFoundError",
    "ImageUploadError",
    "NoUploadedImagesError",
    "OrderCreationError",

    # Persistence
    "PersistenceError",

    # Not found
    "ProductNotFoundError",
    "SyncOutcomeNotFoundError",
    "SettingNotFoundError",
]
