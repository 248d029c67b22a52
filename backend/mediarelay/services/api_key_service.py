"""
API key registry.

Keys are opaque bearer credentials of the form ``tap_`` + 48 hex chars
(192 random bits), stored at ``apikey:{token}``. The registry is the only
owner of the token -> record mapping; callers hold just the token.

Uniqueness is checked by direct lookup before writing, with a bounded
number of regenerations. It is a probabilistic guarantee, not a
transactional reservation, which is fine for a 192-bit namespace.
"""
import logging
import secrets
from typing import Callable, Optional

from mediarelay.models.api_key import API_KEY_PREFIX, ApiKeyRecord, api_key_store_key
from mediarelay.services.rate_limit_service import now_ms
from mediarelay.storage.kv_store import KeyValueStore, StoreUnavailableError

logger = logging.getLogger(__name__)

KEY_PREFIX = "tap_"
MAX_GENERATION_ATTEMPTS = 5
DEFAULT_LABEL = "Untitled Key"
DEFAULT_CREATOR = "admin"


class ApiKeyGenerationError(Exception):
    """Raised when no unused key could be generated within the attempt bound."""


def generate_api_key() -> str:
    """Random, unambiguous (lowercase hex) token with the registry prefix."""
    return f"{KEY_PREFIX}{secrets.token_hex(24)}"


class ApiKeyService:
    """Create, verify, track and revoke API keys."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = now_ms,
        generator: Callable[[], str] = generate_api_key
    ):
        self._store = store
        self._clock = clock
        self._generate = generator

    async def create(self, label: Optional[str] = None, created_by: Optional[str] = None) -> ApiKeyRecord:
        """
        Issue a new key.

        Args:
            label: Human readable label
            created_by: Operator who created it

        Returns:
            The stored record, including the token

        Raises:
            StoreUnavailableError: If no store is configured
            ApiKeyGenerationError: If every generated token collided
            StoreError: If the write fails
        """
        if not self._store.is_configured:
            raise StoreUnavailableError("Key-value store not configured")

        for attempt in range(MAX_GENERATION_ATTEMPTS):
            token = self._generate()
            if await self._store.exists(api_key_store_key(token)):
                logger.warning(f"API key collision on attempt {attempt + 1}, regenerating")
                continue

            record = ApiKeyRecord(
                key=token,
                label=label or DEFAULT_LABEL,
                created_at=self._clock(),
                created_by=created_by or DEFAULT_CREATOR,
                usage_count=0,
            )
            await self._store.put_json(api_key_store_key(token), record.to_store())
            logger.info(f"API key created: {token[:8]}... ({record.label})")
            return record

        raise ApiKeyGenerationError("Failed to generate unique API key")

    async def verify(self, token: Optional[str]) -> Optional[ApiKeyRecord]:
        """Direct lookup. None for missing, unknown or unreadable keys."""
        if not token or not token.startswith(KEY_PREFIX):
            return None

        raw = await self._store.get_json(api_key_store_key(token))
        if not raw:
            return None
        return ApiKeyRecord.model_validate({**raw, "key": token})

    async def touch_usage(self, record: ApiKeyRecord) -> ApiKeyRecord:
        """
        Count one use of the key. Full overwrite, last write wins.

        Raises:
            StoreError: If the write fails
        """
        updated = record.model_copy(update={
            "usage_count": record.usage_count + 1,
            "last_used": self._clock(),
        })
        await self._store.put_json(api_key_store_key(record.key), updated.to_store())
        return updated

    async def list(self) -> list[ApiKeyRecord]:
        """Every key, newest first. Follows the store cursor to the end."""
        records: dict[str, ApiKeyRecord] = {}
        cursor = None

        while True:
            page = await self._store.list_keys(API_KEY_PREFIX, cursor=cursor)
            for store_key in page.keys:
                token = store_key[len(API_KEY_PREFIX):]
                if token in records:
                    continue
                raw = await self._store.get_json(store_key)
                if raw:
                    records[token] = ApiKeyRecord.model_validate({**raw, "key": token})
            cursor = page.cursor
            if cursor is None:
                break

        return sorted(records.values(), key=lambda r: r.created_at, reverse=True)

    async def delete(self, token: str) -> None:
        """Revoke a key. Deleting an unknown key succeeds."""
        await self._store.delete(api_key_store_key(token))
        logger.info(f"API key deleted: {token[:8]}...")
