"""
Test configuration and fixtures.

The key-value store is an in-memory stand-in for redis.asyncio.Redis and
the upstream relay is an httpx.MockTransport, so no external services are
needed.
"""
import fnmatch
import json
from typing import AsyncGenerator, Optional

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError

from mediarelay.config import Settings
from mediarelay.storage.kv_store import KeyValueStore


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) for the store."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.scan_calls = 0

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.data)

    async def scan(self, cursor: int = 0, match: Optional[str] = None, count: Optional[int] = None):
        self.scan_calls += 1
        keys = sorted(k for k in self.data if match is None or fnmatch.fnmatchcase(k, match))
        page_size = count or 10
        page = keys[cursor:cursor + page_size]
        next_cursor = cursor + page_size if cursor + page_size < len(keys) else 0
        return next_cursor, page

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class BrokenRedis(FakeRedis):
    """Every call fails as if the server were unreachable."""

    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value):
        raise RedisConnectionError("connection refused")

    async def delete(self, *keys):
        raise RedisConnectionError("connection refused")

    async def exists(self, *keys):
        raise RedisConnectionError("connection refused")

    async def scan(self, cursor=0, match=None, count=None):
        raise RedisConnectionError("connection refused")

    async def ping(self):
        raise RedisConnectionError("connection refused")


def photo_response(file_id: str = "photo-file-id") -> dict:
    return {
        "ok": True,
        "result": {
            "message_id": 1,
            "photo": [
                {"file_id": f"{file_id}-small", "file_size": 1000},
                {"file_id": file_id, "file_size": 90000},
                {"file_id": f"{file_id}-medium", "file_size": 20000},
            ],
        },
    }


def document_response(file_id: str = "document-file-id") -> dict:
    return {"ok": True, "result": {"message_id": 2, "document": {"file_id": file_id}}}


class FakeRelay:
    """
    Scripted upstream relay.

    Each bot method maps to a list of responders consumed in order; the
    last one repeats. A responder is either a (status, json) tuple or an
    exception instance to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.script: dict[str, list] = {
            "sendPhoto": [(200, photo_response())],
            "sendVideo": [(200, {"ok": True, "result": {"video": {"file_id": "video-file-id"}}})],
            "sendAudio": [(200, {"ok": True, "result": {"audio": {"file_id": "audio-file-id"}}})],
            "sendDocument": [(200, document_response())],
            "getFile": [(200, {"ok": True, "result": {
                "file_id": "photo-file-id",
                "file_size": 11,
                "file_path": "photos/file_7.jpg",
            }})],
        }
        self.file_bytes = b"hello world"

    def on(self, method: str, *responders) -> None:
        self.script[method] = list(responders)

    def calls(self, method: Optional[str] = None) -> list[httpx.Request]:
        if method is None:
            return list(self.requests)
        return [r for r in self.requests if r.url.path.endswith(f"/{method}")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.startswith("/file/"):
            return httpx.Response(200, content=self.file_bytes, headers={"content-type": "image/jpeg"})

        method = path.rsplit("/", 1)[-1]
        responders = self.script.get(method) or [(404, {"ok": False, "description": "Not Found"})]
        responder = responders.pop(0) if len(responders) > 1 else responders[0]

        if isinstance(responder, Exception):
            raise responder
        status, body = responder
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, content=json.dumps(body), headers={"content-type": "application/json"})


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def settings() -> Settings:
    """Settings with a configured relay and operator, no env file."""
    return Settings(
        _env_file=None,
        environment="test",
        redis_url=None,
        relay_api_base="https://relay.test",
        relay_bot_token="TEST_TOKEN",
        relay_chat_id="-100123",
        relay_retry_base_delay=0.0,
        admin_username="admin",
        admin_password="s3cret",
        public_base_url=None,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(settings: Settings, fake_redis: FakeRedis) -> KeyValueStore:
    return KeyValueStore(settings, client=fake_redis)


@pytest.fixture
def fake_relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
async def relay_http(fake_relay: FakeRelay) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_relay.handler)) as http:
        yield http


class Clock:
    """Manually advanced epoch-milliseconds clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> Clock:
    return Clock()


def get_test_app(settings: Settings, kv_client, relay_http: httpx.AsyncClient):
    """Create an app wired to the fake store and relay."""
    from mediarelay.main import create_app

    app = create_app(settings, kv_client=kv_client, http_client=relay_http)
    app.state.services.relay._sleep = no_sleep
    return app


@pytest.fixture
def app(settings: Settings, fake_redis: FakeRedis, relay_http: httpx.AsyncClient):
    """App wired to the in-memory store and the scripted relay."""
    return get_test_app(settings, fake_redis, relay_http)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with a configured store."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def client_no_store(
    settings: Settings,
    relay_http: httpx.AsyncClient
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app without a key-value store."""
    app = get_test_app(settings, None, relay_http)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def operator_headers() -> dict:
    from mediarelay.auth.operator import build_token

    return {"Authorization": build_token("admin", "s3cret")}


def make_file(size: int, content_type: str = "image/jpeg", name: str = "photo.jpg") -> dict:
    return {"file": (name, b"\xff" * size, content_type)}
