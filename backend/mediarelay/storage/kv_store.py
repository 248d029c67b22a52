"""
Key-value store accessor backed by Redis.

Stores JSON documents under flat string keys and enumerates them by prefix
with a resumable cursor (Redis SCAN). The store is eventually consistent
from the point of view of callers: there are no transactions, and every
read-modify-write done on top of it is last-write-wins.

Failure policy:
- Store not configured: reads return nothing, writes raise
  StoreUnavailableError.
- Backend errors on plain reads are logged and reported as "absent";
  strict reads (the read half of a read-modify-write) raise StoreError.
- Backend errors on writes raise StoreError.
- A stored value that is not valid JSON is a genuine fault and propagates.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from mediarelay.config import Settings
from mediarelay.utils.logging import log_store_failure

logger = logging.getLogger(__name__)

SCAN_PAGE_SIZE = 100


class StoreError(Exception):
    """Raised when a write against the backing store fails."""


class StoreUnavailableError(StoreError):
    """Raised when a write is attempted without a configured store."""


@dataclass
class KeyPage:
    """One page of a prefix listing. cursor is None once exhausted."""
    keys: list[str] = field(default_factory=list)
    cursor: Optional[str] = None


class KeyValueStore:
    """
    Typed JSON access to the shared key-value store.

    Either pass an existing client (tests, shared pools) or let the store
    build one from settings.redis_url. Without either, the store runs in
    "not configured" mode.
    """

    def __init__(self, settings: Settings, client: Optional[Redis] = None):
        self._client = client

        if self._client is None and settings.redis_url:
            self._client = Redis.from_url(settings.redis_url, decode_responses=True)
            logger.info("Key-value store client initialized")

        if self._client is None:
            logger.warning(
                "Key-value store not configured. "
                "Set REDIS_URL to enable rate limiting, usage stats and API keys."
            )

    @property
    def is_configured(self) -> bool:
        """Check if a backing store is available."""
        return self._client is not None

    async def get_json(self, key: str, strict: bool = False) -> Optional[Any]:
        """
        Read and parse the JSON document stored under key.

        Args:
            key: Store key
            strict: Raise on backend errors instead of reporting "absent".
                Read-modify-write callers must pass True so a failed read
                is never written back as an empty record.

        Returns:
            Parsed value, or None if absent (or unreadable, when not strict)

        Raises:
            json.JSONDecodeError: If the stored value is not valid JSON
            StoreError: If strict and the backend read fails
        """
        if not self.is_configured:
            return None

        try:
            raw = await self._client.get(key)
        except RedisError as e:
            log_store_failure(logger, "get", key, str(e))
            if strict:
                raise StoreError(f"Failed to read {key}: {e}") from e
            return None

        if raw is None:
            return None
        return json.loads(raw)

    async def exists(self, key: str) -> bool:
        """Direct lookup without parsing the value."""
        if not self.is_configured:
            return False

        try:
            return bool(await self._client.exists(key))
        except RedisError as e:
            log_store_failure(logger, "exists", key, str(e))
            return False

    async def put_json(self, key: str, value: Any) -> None:
        """
        Overwrite key with the JSON encoding of value.

        Raises:
            StoreUnavailableError: If no store is configured
            StoreError: If the backend rejects the write
        """
        if not self.is_configured:
            raise StoreUnavailableError("Key-value store not configured")

        try:
            await self._client.set(key, json.dumps(value, separators=(",", ":")))
        except RedisError as e:
            raise StoreError(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        """
        Remove key. Deleting a missing key is not an error.

        Raises:
            StoreUnavailableError: If no store is configured
            StoreError: If the backend rejects the delete
        """
        if not self.is_configured:
            raise StoreUnavailableError("Key-value store not configured")

        try:
            await self._client.delete(key)
        except RedisError as e:
            raise StoreError(f"Failed to delete {key}: {e}") from e

    async def list_keys(
        self,
        prefix: str,
        cursor: Optional[str] = None,
        limit: int = SCAN_PAGE_SIZE
    ) -> KeyPage:
        """
        List one page of keys starting with prefix.

        Args:
            prefix: Key prefix to match
            cursor: Cursor returned by the previous page, None to start
            limit: Hint for the number of keys per page

        Returns:
            KeyPage with the matched keys and the cursor for the next page
            (None when the listing is complete)
        """
        if not self.is_configured:
            return KeyPage()

        try:
            next_cursor, keys = await self._client.scan(
                cursor=int(cursor or 0),
                match=f"{prefix}*",
                count=limit
            )
        except RedisError as e:
            log_store_failure(logger, "scan", prefix, str(e))
            return KeyPage()

        next_cursor = int(next_cursor)
        return KeyPage(
            keys=sorted(keys),
            cursor=str(next_cursor) if next_cursor else None
        )

    async def iter_keys(self, prefix: str) -> AsyncIterator[str]:
        """Walk every page of a prefix listing until the cursor is exhausted."""
        cursor = None
        while True:
            page = await self.list_keys(prefix, cursor=cursor)
            for key in page.keys:
                yield key
            cursor = page.cursor
            if cursor is None:
                break

    async def ping(self) -> bool:
        """Round-trip to the backend. Raises on connection errors."""
        if not self.is_configured:
            return False
        return bool(await self._client.ping())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
