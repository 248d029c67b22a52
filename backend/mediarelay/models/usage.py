"""
Rate-window and usage records.

A single document per fingerprint identity, stored at ``stats:{identity}``,
holds both the fixed-window counters used for admission and the lifetime
upload counters. The global summary lives at ``stats:global``.
"""
from typing import Optional

from mediarelay.models.base import StoredRecord


STATS_PREFIX = "stats:"
GLOBAL_STATS_KEY = "stats:global"


def stats_key(identity: str) -> str:
    """Store key for an identity's usage record."""
    return f"{STATS_PREFIX}{identity}"


class RateWindow(StoredRecord):
    """Fixed-window counters (epoch milliseconds)."""
    window_start: int
    window_count: int = 0


class UsageRecord(RateWindow):
    """Per-identity usage, a superset of the rate window."""
    id: str
    created_at: int
    uploads: int = 0
    total_bytes: int = 0
    api_uploads: int = 0
    last_upload: Optional[int] = None
    last_file_name: Optional[str] = None
    last_file_type: Optional[str] = None
    via_api_key: bool = False

    # Copies of fingerprint attributes for operator inspection
    ip_hash: Optional[str] = None
    user_agent: Optional[str] = None
    country: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None


class GlobalUsage(StoredRecord):
    """Aggregate counters across every identity."""
    uploads: int = 0
    bytes: int = 0
    api_uploads: int = 0
    last_upload: Optional[int] = None
