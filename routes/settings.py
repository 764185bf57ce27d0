"""
Settings API routes.

Operator-editable sync settings: the destination API key and the product
filter tag.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from models.settings import (
    SettingListResponse,
    SyncSettingsUpdate,
    SyncSettingsResponse,
)
from services.settings_service import get_settings_service
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


# ===================
# ROUTES
# ===================

@router.get("", response_model=SettingListResponse)
async def list_settings(
    category: Optional[str] = Query(None, description="Filter by category")
):
    """
    List all settings with optional category filter.

    Secret values are masked.
    """
    try:
        service = get_settings_service()
        settings = [s.masked() for s in service.get_all(category=category)]

        return SettingListResponse(
            data=settings,
            total=len(settings)
        )

    except Exception as e:
        return handle_error(e)


@router.get("/sync", response_model=SyncSettingsResponse)
async def get_sync_settings():
    """Current sync settings. The API key is reduced to a hint."""
    try:
        return get_settings_service().get_sync_settings()

    except Exception as e:
        return handle_error(e)


@router.put("/sync", response_model=SyncSettingsResponse)
async def update_sync_settings(data: SyncSettingsUpdate):
    """
    Save the API key and/or filter tag.

    Omitted fields are unchanged. An empty tag clears the filter.
    """
    try:
        logger.info(
            "sync_settings_update_requested",
            api_key_changed=data.api_key is not None,
            tag=data.tag
        )
        return get_settings_service().update_sync_settings(data)

    except Exception as e:
        return handle_error(e)
