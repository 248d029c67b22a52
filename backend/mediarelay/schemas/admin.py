"""
Pydantic schemas for operator endpoints.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional


class LoginRequest(BaseModel):
    """Operator credentials."""
    username: Optional[str] = None
    password: Optional[str] = None


class LoginUser(BaseModel):
    username: str


class LoginResponse(BaseModel):
    """Token to send back as the Authorization header."""
    success: bool = True
    token: str = Field(..., description="Value for the Authorization header")
    user: LoginUser


class ApiKeyCreateRequest(BaseModel):
    """Request schema for issuing an API key."""
    label: Optional[str] = Field(None, description="Human readable label")

    class Config:
        json_schema_extra = {
            "example": {"label": "CI uploader"}
        }


class ApiKeyDeleteRequest(BaseModel):
    """Request schema for revoking an API key."""
    key: Optional[str] = Field(None, description="The API key to revoke")


class ApiKeyListResponse(BaseModel):
    success: bool = True
    keys: list[dict[str, Any]]


class ApiKeyCreateResponse(BaseModel):
    success: bool = True
    key: dict[str, Any]


class StatsDeleteRequest(BaseModel):
    """Request schema for removing one identity's usage record."""
    id: Optional[str] = Field(None, description="Fingerprint identity")


class StatsResponse(BaseModel):
    success: bool = True
    items: list[dict[str, Any]]
    summary: Optional[dict[str, Any]] = None


class SuccessResponse(BaseModel):
    success: bool = True
