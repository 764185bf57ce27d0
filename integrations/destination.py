"""
Destination API integration.

REST client for the authentication service that receives products as
orders: reference taxonomy, image store, orders and order services.
"""

from typing import Any, Optional
from pydantic import ValidationError
import requests
import structlog

from models.taxonomy import TaxonomyCategory, TaxonomyService
from models.order import OrderPayload, OrderResult
from utils.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


DEFAULT_BASE_URL = "https://customer-api.realauthentication.com/v2"
UPLOAD_FILENAME = "image.jpg"


class DestinationError(Exception):
    """Destination API error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _unwrap_list(body: Any) -> list:
    """Lists come back bare or wrapped in {"data": [...]}."""
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return body["data"]
    if isinstance(body, list):
        return body
    raise DestinationError("Expected a list response")


class DestinationClient:
    """
    Bearer-authenticated client. Every call draws a token from the shared
    rate limiter first.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None
    ):
        if not api_key:
            raise DestinationError("Destination API key is required")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _request(self, method: str, path: str, **kwargs) -> Any:
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error("destination_http_error", method=method, path=path, status=status)
            raise DestinationError(f"API error: {status} on {method} {path}", status) from e
        except requests.exceptions.RequestException as e:
            logger.error("destination_request_failed", method=method, path=path, error=str(e))
            raise DestinationError(f"Destination request failed: {e}") from e

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise DestinationError(f"Non-JSON response from {method} {path}") from e

    # ===================
    # REFERENCE DATA
    # ===================

    def list_categories(self) -> list[TaxonomyCategory]:
        """
        Fetch all categories with their brands and image slots.

        Raises:
            DestinationError: If the request fails or the body is not a list
        """
        rows = _unwrap_list(self._request("GET", "/categories"))
        try:
            return [TaxonomyCategory.model_validate(row) for row in rows]
        except ValueError as e:
            raise DestinationError(f"Malformed categories response: {e}") from e

    def list_services(self) -> list[TaxonomyService]:
        """
        Fetch all service add-ons.

        Raises:
            DestinationError: If the request fails or the body is not a list
        """
        rows = _unwrap_list(self._request("GET", "/services"))
        try:
            return [TaxonomyService.model_validate(row) for row in rows]
        except ValueError as e:
            raise DestinationError(f"Malformed services response: {e}") from e

    # ===================
    # IMAGES
    # ===================

    def download_image(self, url: str) -> tuple[bytes, str]:
        """
        Download an image from the source store.

        Returns:
            tuple: (content, content_type)
        """
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DestinationError("Failed to fetch image from URL") from e

        content_type = response.headers.get("content-type", "image/jpeg")
        return response.content, content_type

    def upload_image(self, url: str) -> Any:
        """
        Copy one image into the destination image store.

        Args:
            url: Source image URL

        Returns:
            Destination image id

        Raises:
            DestinationError: If download or upload fails, or no id comes back
        """
        content, content_type = self.download_image(url)

        body = self._request(
            "POST",
            "/images",
            files={"image": (UPLOAD_FILENAME, content, content_type)}
        )

        image_id = body.get("id") if isinstance(body, dict) else None
        if image_id is None:
            raise DestinationError("Image upload returned no id")

        logger.debug("image_uploaded", url=url, image_id=image_id)
        return image_id

    # ===================
    # ORDERS
    # ===================

    def create_order(
        self,
        payload: OrderPayload,
        idempotency_key: Optional[str] = None
    ) -> OrderResult:
        """
        Submit one order. Never retried here.

        Raises:
            DestinationError: If the request fails
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None

        body = self._request("POST", "/orders", json=payload.to_payload(), headers=headers)

        if not isinstance(body, dict):
            return OrderResult()

        # The order exists by now; keep its id even if other fields are malformed
        try:
            return OrderResult.model_validate(body)
        except ValidationError as e:
            logger.warning("order_response_unparsed", error=str(e))
        try:
            return OrderResult.model_validate({"id": body.get("id")})
        except ValidationError as e:
            raise DestinationError(f"Invalid order id in response: {body.get('id')!r}") from e

    def add_services(self, order_id: Any, service_ids: list[int]) -> Any:
        """
        Link service add-ons to an existing order.

        Raises:
            DestinationError: If the request fails
        """
        body = {"services": [{"service_id": sid} for sid in service_ids]}
        return self._request("POST", f"/orders/{order_id}/services", json=body)
