"""
Process-wide service wiring.

Components are built once at startup from a single Settings object and
kept on app.state. Routes reach them through the FastAPI dependencies
below, never through module globals.
"""
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request
from redis.asyncio import Redis

from mediarelay.auth.operator import OperatorAuth
from mediarelay.config import Settings
from mediarelay.services.api_key_service import ApiKeyService
from mediarelay.services.rate_limit_service import RateLimitService
from mediarelay.services.upload_service import UploadService
from mediarelay.services.usage_service import UsageService
from mediarelay.storage.kv_store import KeyValueStore
from mediarelay.storage.relay_client import RelayClient

RELAY_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


@dataclass
class AppServices:
    settings: Settings
    store: KeyValueStore
    http_client: httpx.AsyncClient
    relay: RelayClient
    rate_limiter: RateLimitService
    usage: UsageService
    api_keys: ApiKeyService
    uploads: UploadService
    operator_auth: OperatorAuth

    async def aclose(self) -> None:
        await self.http_client.aclose()
        await self.store.close()


def build_services(
    settings: Settings,
    kv_client: Optional[Redis] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> AppServices:
    """
    Construct every component from one Settings instance.

    Args:
        settings: Application settings
        kv_client: Existing Redis client (built from settings when omitted)
        http_client: Existing httpx client for the relay
    """
    store = KeyValueStore(settings, client=kv_client)
    http_client = http_client or httpx.AsyncClient(timeout=RELAY_TIMEOUT)
    relay = RelayClient(settings, http_client)
    rate_limiter = RateLimitService(store, settings)
    usage = UsageService(store)
    api_keys = ApiKeyService(store)

    return AppServices(
        settings=settings,
        store=store,
        http_client=http_client,
        relay=relay,
        rate_limiter=rate_limiter,
        usage=usage,
        api_keys=api_keys,
        uploads=UploadService(settings, relay, rate_limiter, usage, api_keys),
        operator_auth=OperatorAuth(settings),
    )


def get_services(request: Request) -> AppServices:
    """
    Dependency for FastAPI routes to get the wired components.
    Usage: services: AppServices = Depends(get_services)
    """
    return request.app.state.services
