"""
Records kept in the key-value store and request-scoped value types.
"""
from mediarelay.models.base import StoredRecord
from mediarelay.models.fingerprint import Fingerprint
from mediarelay.models.usage import RateWindow, UsageRecord, GlobalUsage
from mediarelay.models.api_key import ApiKeyRecord

__all__ = [
    "StoredRecord",
    "Fingerprint",
    "RateWindow",
    "UsageRecord",
    "GlobalUsage",
    "ApiKeyRecord",
]
