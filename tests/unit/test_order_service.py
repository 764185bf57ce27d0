"""
Unit tests for OrderService.

Run: pytest tests/unit/test_order_service.py -v
"""

import pytest
from unittest.mock import MagicMock, patch

from integrations.destination import DestinationError
from models.order import OrderImage, OrderResult
from services.order_service import OrderService, idempotency_key_for, order_link_for
from services.taxonomy_service import TaxonomyCache
from exceptions import OrderCreationError
from tests.factories import ProductRecordFactory, TaxonomyFactory


IMAGES = [OrderImage(image_id=99, slot_id=11)]


class TestOrderServiceBuildPayload:
    """Tests for OrderService.build_payload()"""

    def test_builds_full_payload(self):
        """Should fill every order field from product, metadata and category."""
        # Arrange
        service = OrderService(MagicMock())
        product = ProductRecordFactory.create(
            handle="gucci-bag", title="Gucci Bag", note="Boxed", serial_number="SN-9", sku="SKU-7"
        )
        category = TaxonomyFactory.category()

        # Act
        payload = service.build_payload(product, product.metadata, category, IMAGES, "shop.example.com")

        # Assert
        assert payload.title == "Gucci Bag"
        assert payload.brand_id == 7
        assert payload.category_id == 1
        assert payload.web_link == "https://shop.example.com/products/gucci-bag"
        assert payload.note == "Boxed"
        assert payload.serial_number == "SN-9"
        assert payload.sku == "SKU-7"
        assert payload.documentation_name == "RA"
        assert payload.images == IMAGES

    def test_blank_title_becomes_untitled(self):
        service = OrderService(MagicMock())
        product = ProductRecordFactory.create(title="   ")

        payload = service.build_payload(product, product.metadata, TaxonomyFactory.category(), IMAGES, "s")

        assert payload.title == "Untitled"

    def test_unknown_brand_uses_fallback(self):
        """Should use brand id 2 when the brand is not under the category."""
        service = OrderService(MagicMock())
        product = ProductRecordFactory.create(brand="Unknown Maker")

        payload = service.build_payload(product, product.metadata, TaxonomyFactory.category(), IMAGES, "s")

        assert payload.brand_id == 2

    def test_missing_brand_uses_fallback(self):
        service = OrderService(MagicMock())
        product = ProductRecordFactory.create(brand=None)

        payload = service.build_payload(product, product.metadata, TaxonomyFactory.category(), IMAGES, "s")

        assert payload.brand_id == 2


class TestOrderServiceCreate:
    """Tests for OrderService.create()"""

    def test_returns_result_with_id(self):
        """Should pass a stable idempotency key derived from the product."""
        # Arrange
        client = MagicMock()
        client.create_order.return_value = OrderResult(id=500)
        service = OrderService(client)

        # Act
        result = service.create(MagicMock(), "gid://shopify/Product/1")

        # Assert
        assert result.id == 500
        key = client.create_order.call_args.kwargs["idempotency_key"]
        assert key == idempotency_key_for("gid://shopify/Product/1")

    def test_missing_id_raises(self):
        """Should treat a response without id as a failure."""
        client = MagicMock()
        client.create_order.return_value = OrderResult()
        service = OrderService(client)

        with pytest.raises(OrderCreationError) as exc:
            service.create(MagicMock(), "gid://shopify/Product/1")

        assert exc.value.message == "Order creation failed"

    def test_transport_error_raises(self):
        client = MagicMock()
        client.create_order.side_effect = DestinationError("API error: 500", 500)
        service = OrderService(client)

        with pytest.raises(OrderCreationError, match="Order creation failed"):
            service.create(MagicMock(), "gid://shopify/Product/1")

    def test_idempotency_key_is_deterministic(self):
        assert idempotency_key_for("a") == idempotency_key_for("a")
        assert idempotency_key_for("a") != idempotency_key_for("b")
        assert len(idempotency_key_for("a")) == 32


class TestOrderServiceLinkServices:
    """Tests for OrderService.link_services()"""

    def setup_method(self):
        self.taxonomy = TaxonomyCache(services=TaxonomyFactory.services())

    def test_links_resolved_services(self):
        client = MagicMock()
        service = OrderService(client)
        metadata = ProductRecordFactory.create(services="Express,Certificate").metadata

        linked = service.link_services(500, metadata, self.taxonomy)

        assert linked is True
        client.add_services.assert_called_once_with(500, [5, 6])

    def test_no_resolved_services_skips_call(self):
        """Should not call the API when nothing resolves."""
        client = MagicMock()
        service = OrderService(client)
        metadata = ProductRecordFactory.create(services="Gift Wrap").metadata

        linked = service.link_services(500, metadata, self.taxonomy)

        assert linked is False
        client.add_services.assert_not_called()

    def test_failure_is_swallowed(self):
        """Should log and return False; the order stands."""
        client = MagicMock()
        client.add_services.side_effect = DestinationError("API error: 500")
        service = OrderService(client)
        metadata = ProductRecordFactory.create(services="Express").metadata

        assert service.link_services(500, metadata, self.taxonomy) is False


class TestOrderLinkFor:
    """Tests for order_link_for()"""

    def test_formats_template(self):
        with patch("services.order_service.settings") as settings:
            settings.destination_order_link_template = "https://ra.example.com/orders/{order_id}"

            assert order_link_for(500) == "https://ra.example.com/orders/500"
