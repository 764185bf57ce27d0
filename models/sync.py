"""
Sync pipeline schemas.

Per-item stage machine, the durable outcome row and batch results.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


# Stored in destination_order_id when an attempt failed
UNSET_ORDER_ID = "0"


class ItemStage(str, Enum):
    """Stages a product passes through within one batch."""
    FETCHED = "FETCHED"
    SKIPPED = "SKIPPED"
    MATCHING = "MATCHING"
    IMAGES_ASSIGNED = "IMAGES_ASSIGNED"
    ORDER_CREATED = "ORDER_CREATED"
    SERVICES_LINKED = "SERVICES_LINKED"
    METADATA_WRITTEN = "METADATA_WRITTEN"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


TERMINAL_STAGES = {ItemStage.SKIPPED, ItemStage.SUCCESS, ItemStage.FAILED}

# Forward edges of the item stage machine
STAGE_TRANSITIONS = {
    ItemStage.FETCHED: {ItemStage.SKIPPED, ItemStage.MATCHING},
    ItemStage.MATCHING: {ItemStage.IMAGES_ASSIGNED, ItemStage.FAILED},
    ItemStage.IMAGES_ASSIGNED: {ItemStage.ORDER_CREATED, ItemStage.FAILED},
    ItemStage.ORDER_CREATED: {ItemStage.SERVICES_LINKED, ItemStage.FAILED},
    ItemStage.SERVICES_LINKED: {ItemStage.METADATA_WRITTEN, ItemStage.FAILED},
    ItemStage.METADATA_WRITTEN: {ItemStage.SUCCESS, ItemStage.FAILED},
}


def is_valid_stage_transition(current: ItemStage, new: ItemStage) -> bool:
    """
    Check if an item stage transition is valid.

    Rules:
    - Stages only move forward, one step at a time
    - Any stage from MATCHING onward may fail
    - SKIPPED, SUCCESS and FAILED are terminal
    """
    if current in TERMINAL_STAGES:
        return False
    return new in STAGE_TRANSITIONS.get(current, set())


class SyncOutcome(BaseSchema):
    """
    Most recent sync attempt for one product.

    Exactly one row per source_id. last_error being None is the only
    success marker.
    """

    source_id: str = Field(..., min_length=1)
    handle: Optional[str] = None
    title: Optional[str] = None
    destination_order_id: Optional[str] = Field(
        None,
        description="Destination order id, '0' for failed attempts"
    )
    last_error: Optional[str] = None
    last_attempt_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.last_error is None

    def to_row(self) -> dict:
        """Serialize for the sync_outcomes table."""
        data = self.model_dump(mode="json")
        if data["last_attempt_at"] is None:
            data.pop("last_attempt_at")
        return data


class ItemResult(BaseSchema):
    """What happened to one product in a batch."""

    source_id: str
    handle: Optional[str] = None
    stage: ItemStage
    success: bool = False
    skipped: bool = False
    order_id: Optional[str] = None
    error: Optional[str] = None


class BatchResult(BaseSchema):
    """Aggregate result of one bounded batch."""

    processed_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    results: list[ItemResult] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class BatchRequest(BaseSchema):
    """Body of POST /api/sync/batch."""

    cursor: Optional[str] = Field(None, description="Cursor returned by the previous batch")
    page_size: Optional[int] = Field(
        None,
        ge=1,
        le=250,
        description="Products per batch; defaults to SYNC_PAGE_SIZE"
    )


class BatchResponse(BaseSchema):
    """Response of POST /api/sync/batch, shaped for a looping caller."""

    success: bool = True
    processed: int
    failed: int
    skipped: int
    results: list[ItemResult]
    next_cursor: Optional[str] = None

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResponse":
        return cls(
            processed=result.processed_count,
            failed=result.failed_count,
            skipped=result.skipped_count,
            results=result.results,
            next_cursor=result.next_cursor,
        )
