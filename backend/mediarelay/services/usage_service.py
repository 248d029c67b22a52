"""
Usage ledger: per-identity and global upload counters.

Every successful relay merges into two documents:
- stats:{identity}  lifetime counters, last-file descriptors, fingerprint
                    attributes and the committed rate window
- stats:global      totals across all identities

Both updates are read-modify-write without transactions. Concurrent
writers to the same key can lose increments (last write wins); the
counters are approximate. If exact counts are ever needed, swap
the per-key documents for an atomic increment in the store without
changing record()'s contract.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from mediarelay.models.fingerprint import Fingerprint
from mediarelay.models.usage import (
    GLOBAL_STATS_KEY,
    STATS_PREFIX,
    GlobalUsage,
    UsageRecord,
    stats_key,
)
from mediarelay.services.rate_limit_service import AdmissionDecision, now_ms
from mediarelay.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class UploadInfo:
    """Descriptor of one accepted upload."""
    file_name: str
    file_type: str
    bytes: int
    via_api_key: bool = False


@dataclass
class UsageListing:
    items: list[UsageRecord]
    summary: Optional[GlobalUsage]

    def to_response(self) -> dict:
        return {
            "items": [item.to_store() for item in self.items],
            "summary": self.summary.to_store() if self.summary else None,
        }


class UsageService:
    """Reads and writes usage records in the key-value store."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], int] = now_ms):
        self._store = store
        self._clock = clock

    async def record(
        self,
        fingerprint: Fingerprint,
        info: UploadInfo,
        decision: AdmissionDecision
    ) -> Optional[UsageRecord]:
        """
        Merge a successful upload into the identity and global records.

        Args:
            fingerprint: Caller fingerprint
            info: What was uploaded
            decision: The admission decision this upload was allowed under;
                its committed window is what gets persisted

        Returns:
            The updated identity record, or None when no store is configured

        Raises:
            StoreError: If a read or write fails. A failed read aborts the
                merge so it is never written back as an empty record.
        """
        if not self._store.is_configured:
            return None

        now = self._clock()
        key = stats_key(fingerprint.identity)
        raw = await self._store.get_json(key, strict=True) or {}
        previous = UsageRecord.model_validate({
            "id": fingerprint.identity,
            "createdAt": now,
            "windowStart": now,
            **raw,
        })
        window = decision.committed_window()

        record = UsageRecord(
            id=fingerprint.identity,
            created_at=previous.created_at,
            uploads=previous.uploads + 1,
            total_bytes=previous.total_bytes + info.bytes,
            api_uploads=previous.api_uploads + (1 if info.via_api_key else 0),
            last_upload=now,
            last_file_name=info.file_name,
            last_file_type=info.file_type,
            via_api_key=info.via_api_key,
            ip_hash=fingerprint.ip_hash,
            user_agent=fingerprint.user_agent,
            country=fingerprint.country,
            device=fingerprint.device,
            browser=fingerprint.browser,
            window_start=window.window_start,
            window_count=window.window_count,
        )
        await self._store.put_json(key, record.to_store())

        summary = await self.get_summary(strict=True) or GlobalUsage()
        summary.uploads += 1
        summary.bytes += info.bytes
        summary.api_uploads += 1 if info.via_api_key else 0
        summary.last_upload = now
        await self._store.put_json(GLOBAL_STATS_KEY, summary.to_store())

        return record

    async def get(self, identity: str) -> Optional[UsageRecord]:
        raw = await self._store.get_json(stats_key(identity))
        return UsageRecord.model_validate(raw) if raw else None

    async def get_summary(self, strict: bool = False) -> Optional[GlobalUsage]:
        raw = await self._store.get_json(GLOBAL_STATS_KEY, strict=strict)
        return GlobalUsage.model_validate(raw) if raw else None

    async def list_usage(self) -> UsageListing:
        """All identity records, most recent upload first, plus the summary."""
        summary = await self.get_summary()

        items: dict[str, UsageRecord] = {}
        async for key in self._store.iter_keys(STATS_PREFIX):
            if key == GLOBAL_STATS_KEY or key in items:
                continue
            raw = await self._store.get_json(key)
            if raw:
                items[key] = UsageRecord.model_validate(raw)

        ordered = sorted(items.values(), key=lambda r: r.last_upload or 0, reverse=True)
        return UsageListing(items=ordered, summary=summary)

    async def delete(self, identity: str) -> None:
        """Remove one identity's record (operator action)."""
        await self._store.delete(stats_key(identity))
        logger.info(f"Usage record deleted: {identity[:12]}")
