"""
Pydantic schemas for API request/response validation.
"""
from mediarelay.schemas.admin import (
    LoginRequest,
    LoginResponse,
    ApiKeyCreateRequest,
    ApiKeyDeleteRequest,
    ApiKeyListResponse,
    ApiKeyCreateResponse,
    StatsDeleteRequest,
    StatsResponse,
    SuccessResponse,
)
from mediarelay.schemas.file import (
    UploadResponse,
    FileInfoResponse,
    ErrorResponse,
)

__all__ = [
    "LoginRequest",
    "LoginResponse",
    "ApiKeyCreateRequest",
    "ApiKeyDeleteRequest",
    "ApiKeyListResponse",
    "ApiKeyCreateResponse",
    "StatsDeleteRequest",
    "StatsResponse",
    "SuccessResponse",
    "UploadResponse",
    "FileInfoResponse",
    "ErrorResponse",
]
