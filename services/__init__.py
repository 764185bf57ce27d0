"""
Business logic services.

Each service handles one stage of the sync pipeline.
"""

from services.settings_service import SettingsService, get_settings_service
from services.catalog_service import CatalogService
from services.taxonomy_service import TaxonomyCache
from services.image_matching_service import ImageMatchingService, match_images_to_slots
from services.order_service import OrderService
from services.metadata_writeback_service import MetadataWritebackService
from services.sync_state_service import SyncStateService, get_sync_state_service
from services.sync_service import SyncService, get_sync_service

__all__ = [
    "SettingsService",
    "get_settings_service",
    "CatalogService",
    "TaxonomyCache",
    "ImageMatchingService",
    "match_images_to_slots",
    "OrderService",
    "MetadataWritebackService",
    "SyncStateService",
    "get_sync_state_service",
    "SyncService",
    "get_sync_service",
]
