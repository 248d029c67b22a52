"""
Upload endpoint.

POST /api/upload with a multipart "file" field. An API key may be sent
as X-API-Key or as "Authorization: Bearer tap_..."; a valid key raises the
rate limit ceiling, an invalid one is treated as no key at all.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Header, Request, UploadFile
from fastapi.responses import JSONResponse

from mediarelay.schemas.file import ErrorResponse, UploadResponse
from mediarelay.services.upload_service import UploadRequest
from mediarelay.state import AppServices, get_services

router = APIRouter()


def extract_api_key(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """API key from X-API-Key, else from a Bearer Authorization header."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def read_bounded(file: UploadFile, limit: int) -> bytes:
    """Read at most limit + 1 bytes: enough for the size check to reject an oversized body."""
    return await file.read(limit + 1)


@router.post(
    "",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    x_api_key: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    services: AppServices = Depends(get_services)
):
    """
    Relay an uploaded file and return its public URL.

    Size and type are checked before any store or network call.
    """
    content = (
        await read_bounded(file, services.settings.max_upload_bytes)
        if file is not None else None
    )

    result = await services.uploads.upload(UploadRequest(
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        content=content,
        headers=request.headers,
        api_key=extract_api_key(x_api_key, authorization),
        base_url=str(request.base_url),
    ))

    return JSONResponse(status_code=result.status_code, content=result.body)
