"""
Admin endpoints for usage statistics.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from mediarelay.auth.dependencies import require_operator
from mediarelay.schemas.admin import StatsDeleteRequest, StatsResponse, SuccessResponse
from mediarelay.storage.kv_store import StoreError, StoreUnavailableError
from mediarelay.state import AppServices, get_services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_operator)])


@router.get("", response_model=StatsResponse)
async def list_stats(services: AppServices = Depends(get_services)):
    """
    Every per-identity usage record plus the global summary.

    Returns empty results when the store is not configured.
    """
    listing = await services.usage.list_usage()
    return StatsResponse(**listing.to_response())


@router.delete("", response_model=SuccessResponse)
async def delete_stats(
    request: StatsDeleteRequest,
    services: AppServices = Depends(get_services)
):
    """Remove one identity's usage record."""
    if not request.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stats id")

    try:
        await services.usage.delete(request.id)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except StoreError as e:
        logger.error(f"Stats delete error: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return SuccessResponse()
