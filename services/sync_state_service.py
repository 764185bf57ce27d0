"""
Sync state store.

One row per source product in the sync_outcomes table, overwritten on
every attempt. A row with no last_error marks a finished product.
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.base import PaginatedResponse
from models.sync import SyncOutcome
from exceptions import PersistenceError, SyncOutcomeNotFoundError

logger = structlog.get_logger(__name__)


class SyncStateService:
    """
    Durable per-product outcomes.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "sync_outcomes"

    # ===================
    # READ OPERATIONS
    # ===================

    def find_one(self, source_id: str) -> Optional[SyncOutcome]:
        """
        Get the stored outcome for a product.

        Returns:
            SyncOutcome or None if the product was never attempted

        Raises:
            PersistenceError: If the store cannot be read
        """
        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .eq("source_id", source_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("sync_outcome_get_failed", source_id=source_id, error=str(e))
            raise PersistenceError("select", source_id, str(e))

        if not response.data:
            return None
        return SyncOutcome(**response.data[0])

    def get(self, source_id: str) -> SyncOutcome:
        """
        Raises:
            SyncOutcomeNotFoundError: If there is no stored outcome
        """
        outcome = self.find_one(source_id)
        if outcome is None:
            raise SyncOutcomeNotFoundError(source_id)
        return outcome

    def list_outcomes(
        self,
        page: int = 1,
        page_size: int = 20,
        failed_only: bool = False
    ) -> PaginatedResponse:
        """
        List stored outcomes ordered by title.

        Args:
            page: Page number (1-indexed)
            page_size: Rows per page
            failed_only: Only rows with an error

        Returns:
            PaginatedResponse of SyncOutcome
        """
        logger.info("listing_sync_outcomes", page=page, page_size=page_size, failed_only=failed_only)

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if failed_only:
                query = query.not_.is_("last_error", "null")

            offset = (page - 1) * page_size
            query = query.order("title").range(offset, offset + page_size - 1)

            response = query.execute()

            outcomes = [SyncOutcome(**row) for row in response.data]
            total = response.count if response.count is not None else len(outcomes)

            return PaginatedResponse.create(outcomes, total, page, page_size)

        except Exception as e:
            logger.error("sync_outcomes_list_failed", error=str(e))
            raise PersistenceError("select", "*", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def upsert(self, outcome: SyncOutcome) -> SyncOutcome:
        """
        Create or overwrite the row for outcome.source_id.

        Raises:
            PersistenceError: If the write fails
        """
        if outcome.last_attempt_at is None:
            outcome = outcome.model_copy(update={"last_attempt_at": datetime.now(timezone.utc)})

        try:
            response = (
                self.db.table(self.table)
                .upsert(outcome.to_row(), on_conflict="source_id")
                .execute()
            )
        except Exception as e:
            logger.error("sync_outcome_upsert_failed", source_id=outcome.source_id, error=str(e))
            raise PersistenceError("upsert", outcome.source_id, str(e))

        logger.debug(
            "sync_outcome_stored",
            source_id=outcome.source_id,
            succeeded=outcome.succeeded
        )
        return SyncOutcome(**response.data[0]) if response.data else outcome

    def delete(self, source_id: str) -> None:
        """
        Remove a product's outcome so the next batch resyncs it.

        Raises:
            SyncOutcomeNotFoundError: If there is no stored outcome
        """
        logger.info("deleting_sync_outcome", source_id=source_id)

        try:
            response = (
                self.db.table(self.table)
                .delete()
                .eq("source_id", source_id)
                .execute()
            )
        except Exception as e:
            logger.error("sync_outcome_delete_failed", source_id=source_id, error=str(e))
            raise PersistenceError("delete", source_id, str(e))

        if not response.data:
            raise SyncOutcomeNotFoundError(source_id)

        logger.info("sync_outcome_deleted", source_id=source_id)


# Singleton instance
_sync_state_service: Optional[SyncStateService] = None


def get_sync_state_service() -> SyncStateService:
    """Get or create SyncStateService instance."""
    global _sync_state_service
    if _sync_state_service is None:
        _sync_state_service = SyncStateService()
    return _sync_state_service
