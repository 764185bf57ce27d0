"""
Sync coordinator.

Drives one bounded batch: fetch a page of products, load the taxonomy,
then run each product through its stages strictly in sequence:

    FETCHED -> SKIPPED
            -> MATCHING -> IMAGES_ASSIGNED -> ORDER_CREATED
               -> SERVICES_LINKED -> METADATA_WRITTEN -> SUCCESS

Any stage from MATCHING onward may end in FAILED. Every examined,
non-skipped product ends with exactly one stored outcome. The caller
keeps invoking run_batch with next_cursor until it comes back None.
"""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Optional
import structlog

from config import settings
from integrations.destination import DestinationClient
from models.catalog import ProductRecord
from models.sync import (
    UNSET_ORDER_ID,
    BatchResult,
    ItemResult,
    ItemStage,
    SyncOutcome,
    is_valid_stage_transition,
)
from models.settings import SyncCredentials
from services.catalog_service import CatalogService
from services.image_matching_service import ImageMatchingService
from services.metadata_writeback_service import MetadataWritebackService
from services.order_service import OrderService, order_link_for
from services.settings_service import get_settings_service
from services.sync_state_service import SyncStateService, get_sync_state_service
from services.taxonomy_service import TaxonomyCache
from utils.rate_limiter import RateLimiter
from exceptions import AppError, CategoryNotFoundError, PersistenceError

logger = structlog.get_logger(__name__)


UNKNOWN_SYNC_ERROR = "Unknown sync error"


# ===================
# PER-PRODUCT LOCKS
# ===================

_locks: dict[str, list] = {}  # source_id -> [lock, holders]
_locks_guard = threading.Lock()


@contextmanager
def _lock_for(source_id: str):
    """
    Serialise overlapping syncs of the same product within this process.

    The entry is dropped when its last holder leaves, so the registry only
    holds products being synced right now.
    """
    with _locks_guard:
        entry = _locks.setdefault(source_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _locks[source_id]


class ItemFailed(Exception):
    """Carries the stage an item failed at and the stored reason."""

    def __init__(self, stage: ItemStage, reason: str):
        super().__init__(reason)
        self.stage = stage
        self.reason = reason


class _ItemTracker:
    """Walks one product through the stage machine."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        self.stage = ItemStage.FETCHED

    def advance(self, new: ItemStage) -> None:
        if not is_valid_stage_transition(self.stage, new):
            raise RuntimeError(f"Invalid stage transition {self.stage.value} -> {new.value}")
        logger.debug("item_stage", source_id=self.source_id, stage=new.value)
        self.stage = new


class BatchContext:
    """Per-invocation collaborators that depend on the destination credentials."""

    def __init__(
        self,
        taxonomy: TaxonomyCache,
        image_matcher: ImageMatchingService,
        orders: OrderService
    ):
        self.taxonomy = taxonomy
        self.image_matcher = image_matcher
        self.orders = orders


class SyncService:
    """
    Pipeline coordinator.

    Source-side collaborators are fixed; the destination client is built
    per batch from the credentials in effect at that time.
    """

    def __init__(
        self,
        catalog: Optional[CatalogService] = None,
        state: Optional[SyncStateService] = None,
        writeback: Optional[MetadataWritebackService] = None,
        destination_factory: Optional[Callable[[SyncCredentials], DestinationClient]] = None,
        sleep: Callable[[float], None] = time.sleep,
        batch_pause_seconds: Optional[float] = None,
        item_delay_seconds: Optional[float] = None
    ):
        self.catalog = catalog or CatalogService()
        self.state = state or get_sync_state_service()
        self.writeback = writeback or MetadataWritebackService(self.catalog.client)
        self.destination_factory = destination_factory or build_destination_client
        self.sleep = sleep
        self.batch_pause_seconds = (
            settings.sync_batch_pause_seconds if batch_pause_seconds is None else batch_pause_seconds
        )
        self.item_delay_seconds = (
            settings.sync_item_delay_seconds if item_delay_seconds is None else item_delay_seconds
        )

    # ===================
    # BATCH
    # ===================

    def prepare(self, credentials: SyncCredentials) -> BatchContext:
        """
        Build the destination-side collaborators and load the taxonomy.

        Raises:
            UpstreamFetchError: If the taxonomy cannot be loaded
        """
        destination = self.destination_factory(credentials)
        return BatchContext(
            taxonomy=TaxonomyCache.load(destination),
            image_matcher=ImageMatchingService(destination),
            orders=OrderService(destination),
        )

    def run_batch(
        self,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
        credentials: Optional[SyncCredentials] = None
    ) -> BatchResult:
        """
        Sync one page of products.

        Args:
            cursor: Cursor from the previous batch, None to start over
            page_size: Products per page, defaults to SYNC_PAGE_SIZE
            credentials: Destination credentials, read from settings if omitted

        Returns:
            BatchResult with counts, per-item results and next_cursor

        Raises:
            SyncSettingsMissingError: If no API key is configured
            UpstreamFetchError: If the catalog or the taxonomy cannot be read
        """
        page_size = page_size or settings.sync_page_size
        credentials = credentials or get_settings_service().get_sync_credentials()

        logger.info(
            "batch_started",
            cursor=cursor,
            page_size=page_size,
            filter_tag=credentials.filter_tag
        )

        page = self.catalog.fetch_page(cursor, page_size, filter_tag=credentials.filter_tag)
        context = self.prepare(credentials)

        result = BatchResult(next_cursor=page.next_cursor)
        examined = 0

        for product in page.items:
            item = self.sync_item(product, context)
            result.results.append(item)

            if item.skipped:
                result.skipped_count += 1
            elif item.success:
                result.processed_count += 1
            else:
                result.failed_count += 1

            examined += 1
            if examined % page_size == 0 and self.batch_pause_seconds > 0:
                logger.info(
                    "batch_pause",
                    examined=examined,
                    seconds=self.batch_pause_seconds
                )
                self.sleep(self.batch_pause_seconds)

        logger.info(
            "batch_completed",
            processed=result.processed_count,
            failed=result.failed_count,
            skipped=result.skipped_count,
            next_cursor=result.next_cursor
        )
        return result

    def sync_product(
        self,
        source_id: str,
        credentials: Optional[SyncCredentials] = None
    ) -> ItemResult:
        """
        Sync a single product by id, outside of any batch.

        Raises:
            ProductNotFoundError: If the store has no such product
            UpstreamFetchError: If the store or the taxonomy cannot be read
        """
        credentials = credentials or get_settings_service().get_sync_credentials()

        product = self.catalog.fetch_product(source_id)
        context = self.prepare(credentials)
        return self.sync_item(product, context)

    # ===================
    # ITEM
    # ===================

    def sync_item(self, product: ProductRecord, context: BatchContext) -> ItemResult:
        """
        Run one product through its stages and store the outcome.

        Never raises for item-level problems; they become a failed result.
        """
        with _lock_for(product.source_id):
            tracker = _ItemTracker(product.source_id)

            try:
                existing = self.state.find_one(product.source_id)
            except PersistenceError as e:
                tracker.advance(ItemStage.MATCHING)
                return self._fail(product, tracker, ItemStage.MATCHING, e.message)

            if existing is not None and existing.succeeded:
                tracker.advance(ItemStage.SKIPPED)
                logger.info("item_skipped", source_id=product.source_id)
                return ItemResult(
                    source_id=product.source_id,
                    handle=product.handle,
                    stage=ItemStage.SKIPPED,
                    skipped=True,
                    order_id=existing.destination_order_id,
                )

            if self.item_delay_seconds > 0:
                self.sleep(self.item_delay_seconds)

            try:
                order_id = self._run_stages(product, tracker, context)
            except ItemFailed as e:
                return self._fail(product, tracker, e.stage, e.reason)
            except Exception as e:
                logger.error(
                    "item_unexpected_error",
                    source_id=product.source_id,
                    stage=tracker.stage.value,
                    error=str(e),
                    error_type=type(e).__name__
                )
                return self._fail(product, tracker, tracker.stage, str(e) or UNKNOWN_SYNC_ERROR)

            self._store(SyncOutcome(
                source_id=product.source_id,
                handle=product.handle,
                title=product.title,
                destination_order_id=order_id,
                last_error=None,
            ))

            logger.info("item_synced", source_id=product.source_id, order_id=order_id)
            return ItemResult(
                source_id=product.source_id,
                handle=product.handle,
                stage=ItemStage.SUCCESS,
                success=True,
                order_id=order_id,
            )

    def _run_stages(
        self,
        product: ProductRecord,
        tracker: _ItemTracker,
        context: BatchContext
    ) -> str:
        tracker.advance(ItemStage.MATCHING)
        metadata = product.metadata

        category = context.taxonomy.find_category(metadata.category)
        if category is None:
            raise ItemFailed(ItemStage.MATCHING, CategoryNotFoundError(metadata.category).message)

        try:
            images = context.image_matcher.upload_and_match(product, category)
        except AppError as e:
            raise ItemFailed(ItemStage.MATCHING, e.message)
        tracker.advance(ItemStage.IMAGES_ASSIGNED)

        payload = context.orders.build_payload(
            product, metadata, category, images, self.catalog.shop_domain
        )
        try:
            order_result = context.orders.create(payload, product.source_id)
        except AppError as e:
            raise ItemFailed(ItemStage.IMAGES_ASSIGNED, e.message)
        tracker.advance(ItemStage.ORDER_CREATED)

        context.orders.link_services(order_result.id, metadata, context.taxonomy)
        tracker.advance(ItemStage.SERVICES_LINKED)

        self.writeback.write_results(
            product.source_id,
            order_result,
            order_link=order_link_for(order_result.id)
        )
        tracker.advance(ItemStage.METADATA_WRITTEN)
        tracker.advance(ItemStage.SUCCESS)

        return str(order_result.id)

    def _fail(
        self,
        product: ProductRecord,
        tracker: _ItemTracker,
        stage: ItemStage,
        reason: str
    ) -> ItemResult:
        reason = reason or UNKNOWN_SYNC_ERROR
        tracker.advance(ItemStage.FAILED)
        logger.warning(
            "item_failed",
            source_id=product.source_id,
            stage=stage.value,
            error=reason
        )

        self._store(SyncOutcome(
            source_id=product.source_id,
            handle=product.handle,
            title=product.title,
            destination_order_id=UNSET_ORDER_ID,
            last_error=reason,
        ))

        return ItemResult(
            source_id=product.source_id,
            handle=product.handle,
            stage=ItemStage.FAILED,
            error=reason,
        )

    def _store(self, outcome: SyncOutcome) -> None:
        try:
            self.state.upsert(outcome)
        except PersistenceError as e:
            logger.error(
                "sync_outcome_not_stored",
                source_id=outcome.source_id,
                error=e.message
            )


# ===================
# FACTORIES
# ===================

_destination_limiter: Optional[RateLimiter] = None


def get_destination_limiter() -> RateLimiter:
    """Process-wide limiter shared by every destination client."""
    global _destination_limiter
    if _destination_limiter is None:
        _destination_limiter = RateLimiter(
            rate=settings.destination_rate_per_second,
            capacity=settings.destination_burst
        )
    return _destination_limiter


def build_destination_client(credentials: SyncCredentials) -> DestinationClient:
    return DestinationClient(
        api_key=credentials.api_key,
        base_url=settings.destination_api_url,
        timeout=settings.destination_timeout_seconds,
        rate_limiter=get_destination_limiter(),
    )


# Singleton instance
_sync_service: Optional[SyncService] = None


def get_sync_service() -> SyncService:
    """Get or create SyncService instance."""
    global _sync_service
    if _sync_service is None:
        _sync_service = SyncService()
    return _sync_service
