"""
Sync API routes.

A caller drives the sync by posting batches and passing next_cursor back
until it is null. Outcome routes let an operator inspect or reset the
stored state of a product.
"""

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.base import PaginatedResponse
from models.sync import BatchRequest, BatchResponse, ItemResult, SyncOutcome
from services.sync_service import get_sync_service
from services.sync_state_service import get_sync_state_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def handle_batch_error(e: Exception) -> JSONResponse:
    """Batch failures keep the looping caller's shape: success false plus a message."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message, **e.to_dict()}
        )
    return handle_error(e)


# ===================
# BATCH ROUTES
# ===================

@router.post("/batch", response_model=BatchResponse)
def run_batch(data: Optional[BatchRequest] = None):
    """
    Sync one page of products.

    Runs to completion, including rate-limit pauses. Call again with the
    returned next_cursor until it is null.
    """
    data = data or BatchRequest()
    try:
        result = get_sync_service().run_batch(
            cursor=data.cursor,
            page_size=data.page_size
        )
        return BatchResponse.from_result(result)

    except Exception as e:
        return handle_batch_error(e)


@router.post("/products/{source_id:path}", response_model=ItemResult)
def sync_product(source_id: str):
    """
    Sync a single product by id.

    Accepts a numeric product id or a full product GID. A product whose
    stored outcome has no error is skipped.
    """
    try:
        return get_sync_service().sync_product(source_id)

    except Exception as e:
        return handle_error(e)


# ===================
# OUTCOME ROUTES
# ===================

@router.get("/outcomes", response_model=PaginatedResponse)
def list_outcomes(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Rows per page"),
    failed_only: bool = Query(False, description="Only rows with an error")
):
    """List stored outcomes ordered by title."""
    try:
        return get_sync_state_service().list_outcomes(
            page=page,
            page_size=page_size,
            failed_only=failed_only
        )

    except Exception as e:
        return handle_error(e)


@router.get("/outcomes/{source_id:path}", response_model=SyncOutcome)
def get_outcome(source_id: str):
    """Get the stored outcome for one product."""
    try:
        return get_sync_state_service().get(source_id)

    except Exception as e:
        return handle_error(e)


@router.delete("/outcomes/{source_id:path}", status_code=status.HTTP_204_NO_CONTENT)
def delete_outcome(source_id: str):
    """
    Delete the stored outcome so the next batch resyncs the product.
    """
    try:
        get_sync_state_service().delete(source_id)
        return None

    except Exception as e:
        return handle_error(e)
