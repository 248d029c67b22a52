"""
API key record.

Keyed by the credential itself (``apikey:{token}``). The token is not part
of the stored value; it is attached when the record is read back.
"""
from typing import Optional

from pydantic import Field

from mediarelay.models.base import StoredRecord


API_KEY_PREFIX = "apikey:"


def api_key_store_key(token: str) -> str:
    return f"{API_KEY_PREFIX}{token}"


class ApiKeyRecord(StoredRecord):
    """Opaque bearer credential issued by an operator."""
    key: str = Field(default="", exclude=True)
    label: str = "Untitled Key"
    created_at: int
    created_by: str = "admin"
    usage_count: int = 0
    last_used: Optional[int] = None

    def to_response(self) -> dict:
        """Stored fields plus the key itself, for admin listings."""
        return {"key": self.key, **self.to_store()}
