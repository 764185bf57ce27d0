"""
Writes sync results back onto the source product as rau_* metafields.
"""

from typing import Optional
import structlog

from integrations.shopify import ShopifyClient, ShopifyError
from models.catalog import WRITEBACK_FIELDS, WritebackField
from models.order import OrderResult

logger = structlog.get_logger(__name__)


PROGRESS_COMPLETED = "Completed"
UPLOAD_STATUS_UPLOADED = "Uploaded"


class MetadataWritebackService:
    """
    Best-effort writeback. Each field is written independently; a failed
    write is logged and the rest continue. Nothing is retried or undone.
    """

    def __init__(self, client: ShopifyClient):
        self.client = client

    @staticmethod
    def field_values(order_result: OrderResult, order_link: Optional[str]) -> dict[WritebackField, str]:
        return {
            WritebackField.ORDER_ID: str(order_result.id),
            WritebackField.PROGRESS: PROGRESS_COMPLETED,
            WritebackField.UPLOAD_STATUS: UPLOAD_STATUS_UPLOADED,
            WritebackField.AUTHENTICATION_STATUS: order_result.status_description or "",
            WritebackField.NOTE: order_result.note or "",
            WritebackField.SERIAL_NUMBER: order_result.serial_number or "",
            WritebackField.ORDER_LINK: order_link or "",
        }

    def write_results(
        self,
        source_id: str,
        order_result: OrderResult,
        order_link: Optional[str] = None
    ) -> list[str]:
        """
        Write the fixed field set in order.

        Empty values are skipped, since the store rejects blank text fields.

        Returns:
            Keys that were written
        """
        values = self.field_values(order_result, order_link)
        written = []

        for field in WRITEBACK_FIELDS:
            value = values[field]
            if value == "":
                continue

            try:
                self.client.write_metafield(source_id, field.value, value)
                written.append(field.value)
            except ShopifyError as e:
                logger.warning(
                    "metafield_write_failed",
                    source_id=source_id,
                    key=field.value,
                    error=str(e)
                )

        logger.info(
            "metadata_written",
            source_id=source_id,
            written=len(written),
            total=len(WRITEBACK_FIELDS)
        )
        return written
