"""
Order creation and service linking.

Builds the destination order from a product and its resolved taxonomy,
submits it once, and links any requested service add-ons.
"""

import hashlib
import structlog

from config import settings
from integrations.destination import DestinationClient, DestinationError
from models.catalog import ProductMetadata, ProductRecord
from models.order import OrderImage, OrderPayload, OrderResult
from models.taxonomy import TaxonomyCategory
from services.taxonomy_service import TaxonomyCache
from exceptions import OrderCreationError

logger = structlog.get_logger(__name__)


UNTITLED = "Untitled"
IDEMPOTENCY_KEY_LENGTH = 32


def idempotency_key_for(source_id: str) -> str:
    """Stable Idempotency-Key header value for a product."""
    digest = hashlib.sha256(f"order:{source_id}".encode("utf-8")).hexdigest()
    return digest[:IDEMPOTENCY_KEY_LENGTH]


class OrderService:
    """
    Order creation against the destination API.
    """

    def __init__(self, client: DestinationClient):
        self.client = client

    # ===================
    # PAYLOAD
    # ===================

    def build_payload(
        self,
        product: ProductRecord,
        metadata: ProductMetadata,
        category: TaxonomyCategory,
        images: list[OrderImage],
        shop_domain: str
    ) -> OrderPayload:
        """
        Build the order body.

        An unknown or missing brand falls back to the configured brand id.

        Args:
            product: Product being synced
            metadata: Its recognized custom fields
            category: Resolved category
            images: Assigned images
            shop_domain: Store domain used for the product web link

        Returns:
            OrderPayload ready to submit
        """
        brand = category.find_brand(metadata.brand)
        if brand is None:
            logger.info(
                "brand_fallback_used",
                source_id=product.source_id,
                brand=metadata.brand,
                fallback_brand_id=settings.fallback_brand_id
            )

        return OrderPayload(
            email=settings.destination_order_email,
            title=product.title.strip() or UNTITLED,
            brand_id=brand.id if brand else settings.fallback_brand_id,
            category_id=category.id,
            documentation_name=settings.destination_documentation_name,
            web_link=f"https://{shop_domain}/products/{product.handle}",
            note=metadata.note,
            serial_number=metadata.serial_number,
            sku=product.sku,
            images=images,
        )

    # ===================
    # SUBMISSION
    # ===================

    def create(self, payload: OrderPayload, source_id: str) -> OrderResult:
        """
        Submit the order once.

        Raises:
            OrderCreationError: If the request fails or no id comes back
        """
        try:
            result = self.client.create_order(payload, idempotency_key=idempotency_key_for(source_id))
        except DestinationError as e:
            logger.error("order_creation_failed", source_id=source_id, error=str(e))
            raise OrderCreationError({"source_id": source_id, "reason": str(e)})

        if result.id is None or result.id == "":
            logger.error("order_creation_failed", source_id=source_id, error="missing id")
            raise OrderCreationError({"source_id": source_id, "reason": "missing id"})

        logger.info("order_created", source_id=source_id, order_id=result.id)
        return result

    def link_services(
        self,
        order_id,
        metadata: ProductMetadata,
        taxonomy: TaxonomyCache
    ) -> bool:
        """
        Attach requested services to an order.

        Failures are logged; the order stands either way.

        Returns:
            True if services were linked, False if none resolved or the call failed
        """
        service_ids = taxonomy.resolve_service_ids(metadata.services)
        if not service_ids:
            return False

        try:
            self.client.add_services(order_id, service_ids)
        except DestinationError as e:
            logger.warning(
                "service_link_failed",
                order_id=order_id,
                service_ids=service_ids,
                error=str(e)
            )
            return False

        logger.info("services_linked", order_id=order_id, service_ids=service_ids)
        return True


def order_link_for(order_id) -> str:
    """Operator-facing URL of an order."""
    return settings.destination_order_link_template.format(order_id=order_id)
