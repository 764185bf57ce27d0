"""
Source catalog reader.

Wraps the Shopify client with the pipeline's paging rules and error types.
"""

from typing import Optional
import structlog

from config import settings
from integrations.shopify import ShopifyClient, ShopifyError
from models.catalog import CatalogPage, ProductRecord
from exceptions import UpstreamFetchError, ProductNotFoundError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Reads products from the source store one page at a time.
    """

    def __init__(
        self,
        client: Optional[ShopifyClient] = None,
        require_images: Optional[bool] = None
    ):
        self.client = client or ShopifyClient(
            shop_domain=settings.shopify_shop_domain,
            access_token=settings.shopify_access_token,
            api_version=settings.shopify_api_version,
            metafield_namespace=settings.shopify_metafield_namespace,
            timeout=settings.shopify_timeout_seconds,
        )
        self.require_images = settings.require_images if require_images is None else require_images

    @property
    def shop_domain(self) -> str:
        return self.client.shop_domain

    def fetch_page(
        self,
        cursor: Optional[str],
        page_size: int,
        filter_tag: Optional[str] = None
    ) -> CatalogPage:
        """
        Fetch one page of products.

        Args:
            cursor: Resumption cursor, None for the first page
            page_size: Products per page
            filter_tag: Restrict to products with this tag (newest first)

        Returns:
            CatalogPage with items and next_cursor (None at the end)

        Raises:
            UpstreamFetchError: If the store cannot be read
        """
        try:
            page = self.client.fetch_page(cursor, page_size, filter_tag=filter_tag)
        except ShopifyError as e:
            raise UpstreamFetchError("shopify", str(e), {"cursor": cursor})

        if self.require_images:
            kept = [p for p in page.items if p.images]
            dropped = len(page.items) - len(kept)
            if dropped:
                logger.info("products_without_images_dropped", count=dropped)
            page = CatalogPage(items=kept, next_cursor=page.next_cursor)

        return page

    def fetch_product(self, source_id: str) -> ProductRecord:
        """
        Fetch one product.

        Raises:
            ProductNotFoundError: If the store has no such product
            UpstreamFetchError: If the store cannot be read
        """
        try:
            product = self.client.fetch_product(source_id)
        except ShopifyError as e:
            raise UpstreamFetchError("shopify", str(e), {"source_id": source_id})

        if product is None:
            raise ProductNotFoundError(source_id)
        return product
