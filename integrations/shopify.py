"""
Shopify Admin GraphQL integration.

Reads product pages from the source catalog and writes rau_* metafields
back onto products.
"""

from datetime import datetime
from typing import Any, Optional
import requests
import structlog

from models.catalog import CatalogPage, ProductImage, ProductRecord

logger = structlog.get_logger(__name__)


PRODUCT_FIELDS = """
fragment ProductFields on Product {
  id
  title
  handle
  tags
  createdAt
  images(first: 10) {
    edges {
      node {
        url
        altText
      }
    }
  }
  variants(first: 1) {
    edges {
      node {
        sku
      }
    }
  }
  metafields(first: 25, namespace: $namespace) {
    edges {
      node {
        key
        value
      }
    }
  }
}
"""

PRODUCTS_QUERY = """
query GetProducts(
  $first: Int!
  $after: String
  $query: String
  $sortKey: ProductSortKeys
  $reverse: Boolean
  $namespace: String
) {
  products(first: $first, after: $after, query: $query, sortKey: $sortKey, reverse: $reverse) {
    pageInfo {
      hasNextPage
      endCursor
    }
    edges {
      node {
        ...ProductFields
      }
    }
  }
}
""" + PRODUCT_FIELDS

PRODUCT_QUERY = """
query GetProduct($id: ID!, $namespace: String) {
  product(id: $id) {
    ...ProductFields
  }
}
""" + PRODUCT_FIELDS

METAFIELDS_SET_MUTATION = """
mutation MetafieldsSet($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields {
      id
      key
      namespace
      value
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_GID_PREFIX = "gid://shopify/Product/"


class ShopifyError(Exception):
    """Shopify API error."""
    pass


def to_product_gid(source_id: str) -> str:
    """Accept a numeric id or a GID and return the GID."""
    source_id = str(source_id)
    if source_id.startswith("gid://"):
        return source_id
    return f"{PRODUCT_GID_PREFIX}{source_id}"


def _edges(connection: Optional[dict]) -> list[dict]:
    if not connection:
        return []
    return [edge["node"] for edge in connection.get("edges", []) if edge.get("node")]


def parse_product_node(node: dict) -> ProductRecord:
    """
    Convert a GraphQL product node to a ProductRecord.

    Raises:
        KeyError/TypeError/ValueError: If the node is malformed
    """
    images = [
        ProductImage(
            url=img.get("url") or img.get("originalSrc"),
            descriptive_tag=img.get("altText"),
        )
        for img in _edges(node.get("images"))
        if img.get("url") or img.get("originalSrc")
    ]

    variants = _edges(node.get("variants"))
    sku = (variants[0].get("sku") or "") if variants else ""

    custom_fields = {
        mf["key"]: mf.get("value") or ""
        for mf in _edges(node.get("metafields"))
    }

    created_at = node.get("createdAt")

    return ProductRecord(
        source_id=node["id"],
        handle=node.get("handle") or "",
        title=node.get("title") or "",
        tags=set(node.get("tags") or []),
        images=images,
        custom_fields=custom_fields,
        sku=sku,
        created_at=datetime.fromisoformat(created_at.replace("Z", "+00:00")) if created_at else None,
    )


class ShopifyClient:
    """
    Admin GraphQL client for one store.

    Usage:
        client = ShopifyClient("my-store.myshopify.com", token)
        page = client.fetch_page(cursor=None, page_size=20)
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2025-01",
        metafield_namespace: str = "custom",
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        if not shop_domain or not access_token:
            raise ShopifyError("Shopify shop domain and access token are required")

        self.shop_domain = shop_domain
        self.metafield_namespace = metafield_namespace
        self.timeout = timeout
        self.url = f"https://{shop_domain}/admin/api/{api_version}/graphql.json"
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        })

    # ===================
    # TRANSPORT
    # ===================

    def graphql(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict:
        """
        Execute a GraphQL document.

        Returns:
            The `data` object of the response

        Raises:
            ShopifyError: On transport errors, non-2xx status or GraphQL errors
        """
        try:
            response = self.session.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()

        except requests.exceptions.RequestException as e:
            logger.error("shopify_request_failed", error=str(e))
            raise ShopifyError(f"Shopify request failed: {e}") from e
        except ValueError as e:
            logger.error("shopify_invalid_json", error=str(e))
            raise ShopifyError("Shopify returned a non-JSON response") from e

        if not isinstance(body, dict):
            raise ShopifyError("Shopify returned an unexpected response body")

        if body.get("errors"):
            errors = body["errors"]
            messages = (
                [e.get("message", str(e)) for e in errors]
                if isinstance(errors, list) else [str(errors)]
            )
            logger.error("shopify_graphql_errors", errors=messages)
            raise ShopifyError(f"Shopify GraphQL error: {'; '.join(messages)}")

        data = body.get("data")
        if data is None:
            raise ShopifyError("Shopify response has no data")
        return data

    # ===================
    # READ OPERATIONS
    # ===================

    def fetch_page(
        self,
        cursor: Optional[str],
        page_size: int,
        filter_tag: Optional[str] = None
    ) -> CatalogPage:
        """
        Fetch one page of products.

        With a filter tag, products are restricted to that tag and sorted
        newest first.

        Raises:
            ShopifyError: If the request fails or the response is malformed
        """
        variables: dict[str, Any] = {
            "first": int(page_size),
            "after": cursor or None,
            "namespace": self.metafield_namespace,
        }
        if filter_tag:
            escaped = filter_tag.replace("'", "\\'")
            variables.update({
                "query": f"tag:'{escaped}'",
                "sortKey": "CREATED_AT",
                "reverse": True,
            })

        logger.info(
            "fetching_product_page",
            cursor=cursor,
            page_size=page_size,
            filter_tag=filter_tag
        )

        data = self.graphql(PRODUCTS_QUERY, variables)

        try:
            products = data["products"]
            page_info = products["pageInfo"]
            items = [parse_product_node(node) for node in _edges(products)]
        except (KeyError, TypeError, ValueError) as e:
            logger.error("shopify_malformed_products", error=str(e))
            raise ShopifyError(f"Malformed products response: {e}") from e

        next_cursor = page_info.get("endCursor") if page_info.get("hasNextPage") else None

        logger.info(
            "product_page_fetched",
            count=len(items),
            has_next=next_cursor is not None
        )

        return CatalogPage(items=items, next_cursor=next_cursor)

    def fetch_product(self, source_id: str) -> Optional[ProductRecord]:
        """
        Fetch a single product.

        Returns:
            ProductRecord or None if the store has no such product
        """
        data = self.graphql(
            PRODUCT_QUERY,
            {"id": to_product_gid(source_id), "namespace": self.metafield_namespace}
        )

        node = data.get("product")
        if not node:
            return None

        try:
            return parse_product_node(node)
        except (KeyError, TypeError, ValueError) as e:
            raise ShopifyError(f"Malformed product response: {e}") from e

    # ===================
    # WRITE OPERATIONS
    # ===================

    def write_metafield(
        self,
        source_id: str,
        key: str,
        value: str,
        type_: str = "single_line_text_field",
        namespace: Optional[str] = None
    ) -> dict:
        """
        Create or update one metafield on a product.

        Returns:
            The written metafield

        Raises:
            ShopifyError: If the request fails or Shopify reports user errors
        """
        variables = {
            "metafields": [{
                "ownerId": to_product_gid(source_id),
                "namespace": namespace or self.metafield_namespace,
                "key": key,
                "value": str(value),
                "type": type_,
            }]
        }

        data = self.graphql(METAFIELDS_SET_MUTATION, variables)
        result = data.get("metafieldsSet") or {}

        user_errors = result.get("userErrors") or []
        if user_errors:
            message = ", ".join(e.get("message", "") for e in user_errors)
            logger.warning("metafield_user_errors", key=key, errors=message)
            raise ShopifyError(message)

        written = result.get("metafields") or []
        return written[0] if written else {}
