"""
Fixed-window upload rate limiting keyed by fingerprint identity.

Admission is two-phase:
1. check_and_reserve() reads the current window and decides. It never
   writes.
2. On a successful upload the caller persists decision.committed_window()
   through the usage ledger.

An upload that is admitted but then fails upstream therefore consumes no
quota. Windows expire lazily at read time: a window older than the window
duration is treated as a fresh one starting now. Because the reset is a
fixed window rather than a sliding log, up to twice the limit can pass
across a window boundary.

Concurrent requests for one identity can read the same window and both
commit count + 1; counts are approximate under contention.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from mediarelay.config import Settings
from mediarelay.models.usage import RateWindow, stats_key
from mediarelay.storage.kv_store import KeyValueStore
from mediarelay.utils.logging import log_rate_limited
from mediarelay.utils.metrics import rate_limit_denials_total

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of the admission check (the reserved, not yet committed state)."""
    allowed: bool
    window_start: int
    window_count: int
    limit: int
    retry_after_ms: Optional[int] = None

    def committed_window(self) -> RateWindow:
        """Window state to persist once the upload has succeeded."""
        return RateWindow(window_start=self.window_start, window_count=self.window_count + 1)


class RateLimitService:
    """Two-tier fixed-window limiter on top of the key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        clock: Callable[[], int] = now_ms
    ):
        self._store = store
        self._window_ms = settings.rate_window_ms
        self._anonymous_limit = settings.anonymous_upload_limit
        self._privileged_limit = settings.api_key_upload_limit
        self._clock = clock

    def limit_for(self, is_privileged: bool) -> int:
        return self._privileged_limit if is_privileged else self._anonymous_limit

    @staticmethod
    def evaluate(
        window: Optional[RateWindow],
        now: int,
        window_ms: int,
        limit: int
    ) -> AdmissionDecision:
        """
        Pure admission decision from the prior window state.

        Args:
            window: Stored window, or None if the identity is new
            now: Current time in epoch milliseconds
            window_ms: Window duration in milliseconds
            limit: Maximum uploads per window

        Returns:
            AdmissionDecision, with retry_after_ms set when denied
        """
        window_start = window.window_start if window else now
        window_count = window.window_count if window else 0

        if now - window_start >= window_ms:
            window_start = now
            window_count = 0

        if window_count >= limit:
            return AdmissionDecision(
                allowed=False,
                window_start=window_start,
                window_count=window_count,
                limit=limit,
                retry_after_ms=max(0, window_ms - (now - window_start)),
            )

        return AdmissionDecision(
            allowed=True,
            window_start=window_start,
            window_count=window_count,
            limit=limit,
        )

    async def check_and_reserve(self, identity: str, is_privileged: bool) -> AdmissionDecision:
        """
        Decide whether identity may upload now. Does not persist anything.

        Fails open when the store is not configured or cannot be read.
        """
        now = self._clock()
        limit = self.limit_for(is_privileged)

        if not self._store.is_configured:
            return AdmissionDecision(allowed=True, window_start=now, window_count=0, limit=limit)

        raw = await self._store.get_json(stats_key(identity))
        window = RateWindow.model_validate(raw) if raw else None

        decision = self.evaluate(window, now, self._window_ms, limit)
        if not decision.allowed:
            tier = "api_key" if is_privileged else "anonymous"
            rate_limit_denials_total.labels(tier=tier).inc()
            log_rate_limited(logger, identity, limit, decision.retry_after_ms, tier=tier)

        return decision
