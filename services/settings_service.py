"""
Settings service for business logic operations.

Settings are key-value pairs. The sync pipeline reads the destination API
key and the catalog filter tag from here, falling back to the environment.
"""

from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.settings import (
    SettingCategory,
    SettingResponse,
    SyncSettingKey,
    SyncSettingsUpdate,
    SyncSettingsResponse,
    SyncCredentials,
)
from exceptions import (
    DatabaseError,
)
from exceptions.errors import SettingNotFoundError, SyncSettingsMissingError

logger = structlog.get_logger(__name__)


SYNC_SETTING_DESCRIPTIONS = {
    SyncSettingKey.DESTINATION_API_KEY: "Bearer token for the destination API",
    SyncSettingKey.FILTER_TAG: "Only products with this tag are synced",
}


class SettingsService:
    """
    Settings business logic.

    Handles read and write operations for settings.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "settings"

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        category: Optional[str] = None
    ) -> list[SettingResponse]:
        """
        Get all settings with optional category filter.

        Args:
            category: Filter by category

        Returns:
            List of settings
        """
        logger.info("getting_settings", category=category)

        try:
            query = self.db.table(self.table).select("*")

            if category:
                query = query.eq("category", category)

            query = query.order("key")

            response = query.execute()

            return [SettingResponse(**row) for row in response.data]

        except Exception as e:
            logger.error("settings_get_all_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_key(self, key: str) -> SettingResponse:
        """
        Get setting by key.

        Raises:
            SettingNotFoundError: If setting doesn't exist
        """
        logger.debug("getting_setting", key=key)

        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .eq("key", key)
                .execute()
            )

            if not response.data:
                raise SettingNotFoundError(key)

            return SettingResponse(**response.data[0])

        except SettingNotFoundError:
            raise
        except Exception as e:
            logger.error("setting_get_failed", key=key, error=str(e))
            raise DatabaseError("select", str(e))

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get setting value by key, or default if not found."""
        try:
            return self.get_by_key(key).value
        except SettingNotFoundError:
            return default

    def get_by_keys(self, keys: list[str]) -> dict[str, str]:
        """
        Get multiple settings by keys.

        Returns:
            Dictionary of key -> value
        """
        logger.debug("getting_settings_bulk", keys=keys)

        try:
            response = (
                self.db.table(self.table)
                .select("key, value")
                .in_("key", keys)
                .execute()
            )

            return {row["key"]: row["value"] for row in response.data}

        except Exception as e:
            logger.error("settings_bulk_get_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def set_value(
        self,
        key: str,
        value: str,
        description: Optional[str] = None,
        category: str = SettingCategory.GENERAL.value
    ) -> SettingResponse:
        """
        Create or overwrite a setting.

        Args:
            key: Setting key
            value: New value
            description: Stored alongside the value
            category: Grouping category

        Returns:
            Stored setting
        """
        logger.info("setting_value", key=key)

        row = {"key": key, "value": value, "category": category}
        if description:
            row["description"] = description

        try:
            response = (
                self.db.table(self.table)
                .upsert(row, on_conflict="key")
                .execute()
            )

            logger.info("setting_updated", key=key)
            return SettingResponse(**(response.data[0] if response.data else row))

        except Exception as e:
            logger.error("setting_update_failed", key=key, error=str(e))
            raise DatabaseError("upsert", str(e))

    # ===================
    # SYNC SETTINGS
    # ===================

    def _sync_values(self) -> dict[str, str]:
        return self.get_by_keys([k.value for k in SyncSettingKey])

    def get_sync_settings(self) -> SyncSettingsResponse:
        """Sync settings for display. The API key is reduced to a hint."""
        values = self._sync_values()
        api_key = values.get(SyncSettingKey.DESTINATION_API_KEY.value) or settings.destination_api_key

        return SyncSettingsResponse(
            api_key_configured=bool(api_key),
            api_key_hint=api_key[-4:] if api_key else None,
            tag=values.get(SyncSettingKey.FILTER_TAG.value) or None,
        )

    def update_sync_settings(self, data: SyncSettingsUpdate) -> SyncSettingsResponse:
        """
        Store the API key and/or filter tag.

        Fields left as None are unchanged; an empty tag clears the filter.
        """
        if data.api_key is not None:
            self.set_value(
                SyncSettingKey.DESTINATION_API_KEY.value,
                data.api_key,
                description=SYNC_SETTING_DESCRIPTIONS[SyncSettingKey.DESTINATION_API_KEY],
                category=SettingCategory.SYNC.value
            )
        if data.tag is not None:
            self.set_value(
                SyncSettingKey.FILTER_TAG.value,
                data.tag,
                description=SYNC_SETTING_DESCRIPTIONS[SyncSettingKey.FILTER_TAG],
                category=SettingCategory.SYNC.value
            )

        return self.get_sync_settings()

    def get_sync_credentials(self) -> SyncCredentials:
        """
        Credentials for one batch.

        Stored settings win over environment values.

        Raises:
            SyncSettingsMissingError: If no API key is configured anywhere
        """
        values = self._sync_values()
        api_key = values.get(SyncSettingKey.DESTINATION_API_KEY.value) or settings.destination_api_key

        if not api_key:
            logger.warning("sync_settings_missing")
            raise SyncSettingsMissingError([SyncSettingKey.DESTINATION_API_KEY.value])

        return SyncCredentials(
            api_key=api_key,
            filter_tag=values.get(SyncSettingKey.FILTER_TAG.value) or None,
        )


# Singleton instance
_settings_service: Optional[SettingsService] = None


def get_settings_service() -> SettingsService:
    """Get or create SettingsService instance."""
    global _settings_service
    if _settings_service is None:
        _settings_service = SettingsService()
    return _settings_service
