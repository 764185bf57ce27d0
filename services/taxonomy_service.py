"""
Taxonomy cache.

Destination categories (with brands and image slots) and services, loaded
once per batch and passed to whoever needs them. Lookups are exact and
case-sensitive.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional
import structlog

from integrations.destination import DestinationClient, DestinationError
from models.taxonomy import TaxonomyBrand, TaxonomyCategory, TaxonomyService
from exceptions import UpstreamFetchError

logger = structlog.get_logger(__name__)


class TaxonomyCache:
    """
    Snapshot of destination reference data.

    Usage:
        taxonomy = TaxonomyCache.load(destination_client)
        category = taxonomy.find_category("Handbags")
    """

    def __init__(
        self,
        categories: Optional[list[TaxonomyCategory]] = None,
        services: Optional[list[TaxonomyService]] = None
    ):
        self._categories = list(categories or [])
        self._services = list(services or [])

    @classmethod
    def load(cls, client: DestinationClient) -> "TaxonomyCache":
        """
        Fetch categories and services in parallel.

        Raises:
            UpstreamFetchError: If either request fails
        """
        logger.info("loading_taxonomy")

        with ThreadPoolExecutor(max_workers=2) as executor:
            categories_future = executor.submit(client.list_categories)
            services_future = executor.submit(client.list_services)

            try:
                categories = categories_future.result()
                services = services_future.result()
            except DestinationError as e:
                logger.error("taxonomy_load_failed", error=str(e))
                raise UpstreamFetchError("destination", f"Failed to load taxonomy: {e}")

        logger.info(
            "taxonomy_loaded",
            categories=len(categories),
            services=len(services)
        )
        return cls(categories, services)

    def list_categories(self) -> list[TaxonomyCategory]:
        return list(self._categories)

    def list_services(self) -> list[TaxonomyService]:
        return list(self._services)

    def find_category(self, name: Optional[str]) -> Optional[TaxonomyCategory]:
        if name is None:
            return None
        return next((c for c in self._categories if c.name == name), None)

    def find_brand(
        self,
        category: TaxonomyCategory,
        name: Optional[str]
    ) -> Optional[TaxonomyBrand]:
        return category.find_brand(name)

    def find_service(self, name: Optional[str]) -> Optional[TaxonomyService]:
        if name is None:
            return None
        return next((s for s in self._services if s.name == name), None)

    def resolve_service_ids(self, names: Iterable[str]) -> list[int]:
        """
        Map service names to ids, dropping names that don't resolve.

        Order follows the input; duplicates are collapsed.
        """
        ids: list[int] = []
        for name in names:
            service = self.find_service(name)
            if service is None:
                logger.warning("service_not_found", name=name)
                continue
            if service.id not in ids:
                ids.append(service.id)
        return ids
