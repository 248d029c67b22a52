"""
Admin endpoints for API key management.
All routes require the operator token from /api/auth.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from mediarelay.auth.dependencies import require_operator
from mediarelay.schemas.admin import (
    ApiKeyCreateRequest,
    ApiKeyCreateResponse,
    ApiKeyDeleteRequest,
    ApiKeyListResponse,
    SuccessResponse,
)
from mediarelay.services.api_key_service import ApiKeyGenerationError
from mediarelay.storage.kv_store import StoreError, StoreUnavailableError
from mediarelay.state import AppServices, get_services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_operator)])


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(services: AppServices = Depends(get_services)):
    """List every API key, newest first."""
    keys = await services.api_keys.list()
    return ApiKeyListResponse(keys=[record.to_response() for record in keys])


@router.post("", response_model=ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: ApiKeyCreateRequest,
    services: AppServices = Depends(get_services)
):
    """Issue a new API key. The key value is only shown in this response."""
    try:
        record = await services.api_keys.create(label=request.label, created_by="admin")
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except (ApiKeyGenerationError, StoreError) as e:
        logger.error(f"Create api key error: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return ApiKeyCreateResponse(key=record.to_response())


@router.delete("", response_model=SuccessResponse)
async def delete_api_key(
    request: ApiKeyDeleteRequest,
    services: AppServices = Depends(get_services)
):
    """Revoke an API key. Unknown keys are a no-op."""
    if not request.key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing API key")

    try:
        await services.api_keys.delete(request.key)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except StoreError as e:
        logger.error(f"Delete api key error: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return SuccessResponse()
