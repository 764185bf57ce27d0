"""
Settings schemas for validation and serialization.

Settings are key-value pairs stored in the database. The sync pipeline
reads the destination API key and the catalog filter tag from here.
"""

from pydantic import Field
from typing import Optional
from enum import Enum

from models.base import BaseSchema


class SettingCategory(str, Enum):
    """Setting categories for grouping."""
    SYNC = "sync"
    GENERAL = "general"


class SyncSettingKey(str, Enum):
    """Keys of the operator-editable sync settings."""
    DESTINATION_API_KEY = "destination_api_key"
    FILTER_TAG = "sync_filter_tag"


class SettingResponse(BaseSchema):
    """
    Setting response with all fields.

    Used for GET responses.
    """

    id: Optional[str] = Field(None, description="Setting UUID")
    key: str = Field(..., description="Setting key (unique)")
    value: str = Field(..., description="Setting value")
    description: Optional[str] = Field(None, description="Human-readable description")
    category: Optional[str] = Field(None, description="Setting category for grouping")

    def masked(self) -> "SettingResponse":
        """Copy with secret values reduced to their last four characters."""
        if self.key != SyncSettingKey.DESTINATION_API_KEY.value or not self.value:
            return self
        return self.model_copy(update={"value": f"****{self.value[-4:]}"})


class SettingListResponse(BaseSchema):
    """List of settings."""

    data: list[SettingResponse]
    total: int


class SyncSettingsUpdate(BaseSchema):
    """
    Update the sync settings.

    Omitted fields are left unchanged. An empty tag clears the filter.
    """

    api_key: Optional[str] = Field(
        None,
        min_length=1,
        max_length=500,
        description="Destination API bearer token"
    )
    tag: Optional[str] = Field(
        None,
        max_length=255,
        description="Only sync products carrying this tag"
    )


class SyncSettingsResponse(BaseSchema):
    """Sync settings as shown to an operator. The key is never echoed."""

    api_key_configured: bool
    api_key_hint: Optional[str] = Field(None, description="Last four characters of the key")
    tag: Optional[str] = None


class SyncCredentials(BaseSchema):
    """What one batch needs from the settings layer."""

    api_key: str = Field(..., min_length=1)
    filter_tag: Optional[str] = None
