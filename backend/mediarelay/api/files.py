"""
Public object retrieval.

GET /file/{encoded_id} serves, depending on the query string:
- ?info=true  JSON metadata
- ?a=view     the frontend's HTML preview page
- otherwise   the raw bytes, inline, cacheable for a year

Every mode first looks the id up with the relay; unknown ids are a 404.
"""
import logging
from pathlib import Path

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, StreamingResponse
from starlette.background import BackgroundTask

from mediarelay.schemas.file import ErrorResponse, FileInfoResponse
from mediarelay.services.rate_limit_service import now_ms
from mediarelay.storage.relay_client import sanitize_filename
from mediarelay.state import AppServices, get_services
from mediarelay.utils.file_id import decode_file_id

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_CONTROL = "public, max-age=31536000"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")


@router.get(
    "/{encoded_id}",
    responses={
        200: {"model": FileInfoResponse, "description": "Raw bytes, preview HTML, or metadata with info=true"},
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def get_file(
    encoded_id: str,
    request: Request,
    info: bool = False,
    a: str = "",
    services: AppServices = Depends(get_services)
):
    """Resolve an encoded id through the relay."""
    file_id = decode_file_id(encoded_id)
    if file_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file reference")

    try:
        metadata = await services.relay.get_metadata(file_id)
    except httpx.RequestError as e:
        logger.error(f"Relay unreachable while resolving {encoded_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream relay unreachable")

    if metadata is None:
        raise _not_found()

    if a == "view":
        return _preview_page(services)

    public_url = services.uploads.public_url(encoded_id, str(request.base_url))

    if info:
        return FileInfoResponse(
            fileId=file_id,
            encodedFileId=encoded_id,
            url=public_url,
            originalName=metadata.filename,
            fileType=metadata.mime_type,
            size=metadata.size,
            # The relay does not keep upload times
            uploadedAt=now_ms(),
        )

    try:
        resolved = await services.relay.open_stream(metadata)
    except httpx.RequestError as e:
        logger.error(f"Relay unreachable while streaming {encoded_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream relay unreachable")

    if resolved is None:
        raise _not_found()

    headers = {
        "Cache-Control": CACHE_CONTROL,
        "Content-Disposition": f'inline; filename="{sanitize_filename(metadata.filename)}"',
    }

    return StreamingResponse(
        resolved.stream,
        media_type=resolved.metadata.mime_type,
        headers=headers,
        background=BackgroundTask(resolved.aclose),
    )


def _preview_page(services: AppServices) -> HTMLResponse:
    """Pass the built frontend's index.html through; it renders the preview."""
    index_path = services.settings.preview_index_path
    if not index_path or not Path(index_path).is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preview not available")
    return HTMLResponse(content=Path(index_path).read_text(encoding="utf-8"))
