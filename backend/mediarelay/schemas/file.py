"""
Pydantic schemas for upload and retrieval responses.
"""
from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Successful upload."""
    success: bool = True
    url: str = Field(..., description="Public, cacheable URL of the object")
    fileId: str = Field(..., description="Opaque id returned by the relay")
    encodedFileId: str = Field(..., description="Path-safe form of fileId")
    originalName: str
    size: int
    fileType: str
    uploadedAt: int = Field(..., description="Epoch milliseconds")
    viaApiKey: bool

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "url": "https://files.example.com/file/QWdBQ0FnSUFBeGtCQUFJ",
                "fileId": "AgACAgIAAxkBAAI",
                "encodedFileId": "QWdBQ0FnSUFBeGtCQUFJ",
                "originalName": "cat.jpg",
                "size": 1048576,
                "fileType": "image/jpeg",
                "uploadedAt": 1767225600000,
                "viaApiKey": False
            }
        }


class FileInfoResponse(BaseModel):
    """Metadata-only view of a stored object."""
    success: bool = True
    fileId: str
    encodedFileId: str
    url: str
    originalName: str
    fileType: str
    size: int
    uploadedAt: int


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
