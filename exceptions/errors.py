"""
Custom exception classes for the application.

Item-level errors (reference data, images, order creation) are caught by
the sync coordinator and turned into a stored outcome. Batch-level errors
(catalog or taxonomy unreachable) escape to the caller.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CATEGORY_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None,
        status_code: int = 503
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=status_code,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# BATCH-FATAL ERRORS
# ===================

class UpstreamFetchError(ExternalServiceError):
    """Catalog or taxonomy could not be fetched (502)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            service=service,
            message=message,
            details=details,
            code="UPSTREAM_FETCH_FAILED",
            status_code=502
        )


class SyncSettingsMissingError(ValidationError):
    """No destination credentials are configured."""

    def __init__(self, missing: list[str]):
        super().__init__(
            code="SYNC_SETTINGS_MISSING",
            message="Sync settings not found. Set the API key in the settings panel.",
            details={"missing": missing}
        )


# ===================
# ITEM-FATAL ERRORS
# ===================

class ReferenceDataMissingError(ValidationError):
    """A category, brand or service name did not resolve."""

    def __init__(
        self,
        message: str,
        kind: str,
        name: Optional[str],
        code: str = "REFERENCE_DATA_MISSING"
    ):
        super().__init__(
            code=code,
            message=message,
            details={"kind": kind, "name": name}
        )


class CategoryNotFoundError(ReferenceDataMissingError):
    """Category named in product metadata is absent from the taxonomy."""

    def __init__(self, name: Optional[str]):
        super().__init__(
            message=f'Category "{name}" not found',
            kind="category",
            name=name,
            code="CATEGORY_NOT_FOUND"
        )


class ImageUploadError(ExternalServiceError):
    """A single image could not be uploaded. Tolerated per image."""

    def __init__(self, url: str, message: str):
        super().__init__(
            service="destination",
            message=message,
            details={"url": url},
            code="IMAGE_UPLOAD_FAILED"
        )


class NoUploadedImagesError(AppError):
    """No image survived upload and slot matching."""

    def __init__(self, source_id: str, attempted: int = 0):
        super().__init__(
            code="NO_UPLOADED_IMAGES",
            message="no uploaded images",
            status_code=422,
            details={"source_id": source_id, "attempted": attempted}
        )


class OrderCreationError(ExternalServiceError):
    """Destination did not accept the order or returned no id."""

    def __init__(self, details: Optional[dict] = None):
        super().__init__(
            service="destination",
            message="Order creation failed",
            details=details,
            code="ORDER_CREATION_FAILED"
        )


# ===================
# PERSISTENCE ERRORS
# ===================

class PersistenceError(DatabaseError):
    """Sync state could not be read or written. Logged, never retried."""

    def __init__(self, operation: str, source_id: str, message: str):
        super().__init__(
            operation=operation,
            message=message,
            details={"source_id": source_id}
        )


# ===================
# NOT FOUND ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found in the source catalog."""

    def __init__(self, source_id: str):
        super().__init__(
            resource="Product",
            identifier=source_id,
            code="PRODUCT_NOT_FOUND"
        )


class SyncOutcomeNotFoundError(NotFoundError):
    """No stored outcome for this product."""

    def __init__(self, source_id: str):
        super().__init__(
            resource="Sync outcome",
            identifier=source_id,
            code="SYNC_OUTCOME_NOT_FOUND"
        )


class SettingNotFoundError(NotFoundError):
    """Setting not found."""

    def __init__(self, key: str):
        super().__init__(
            resource="Setting",
            identifier=key,
            code="SETTING_NOT_FOUND"
        )
