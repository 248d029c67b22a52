"""
Upstream object relay client (Telegram Bot API compatible).

The relay is the system of record for uploaded bytes. We post each upload
to a chat through the bot API and keep only the opaque file id it returns.

Endpoint selection by media kind:
- image    -> sendPhoto
- video    -> sendVideo
- audio    -> sendAudio
- anything -> sendDocument

Failure handling is a small state machine with two independent bounds:
- content rejection on sendPhoto falls back to sendDocument, once
- transport failures retry the current endpoint up to MAX_RETRIES times,
  sleeping attempt * base delay in between (the bound restarts when the
  fallback endpoint takes over)
"""
import asyncio
import enum
import logging
import mimetypes
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx

from mediarelay.config import Settings
from mediarelay.utils.logging import log_relay_attempt, log_relay_failure
from mediarelay.utils.metrics import relay_attempts_total, relay_latency_seconds

logger = logging.getLogger(__name__)

MAX_RETRIES = 2

NETWORK_ERROR = "Network error occurred"
UPLOAD_FAILED = "Upload to relay failed"
NOT_CONFIGURED = "Relay not configured"
NO_FILE_ID = "Failed to resolve relay file id"


@dataclass(frozen=True)
class RelayEndpoint:
    """Bot API method plus the multipart field carrying the file."""
    method: str
    field: str


PHOTO = RelayEndpoint("sendPhoto", "photo")
VIDEO = RelayEndpoint("sendVideo", "video")
AUDIO = RelayEndpoint("sendAudio", "audio")
DOCUMENT = RelayEndpoint("sendDocument", "document")

ENDPOINTS_BY_KIND = {
    "image": PHOTO,
    "video": VIDEO,
    "audio": AUDIO,
}


class RelayState(str, enum.Enum):
    """States of a single send() call."""
    TRY_PRIMARY = "try_primary"
    TRY_FALLBACK_ONCE = "try_fallback_once"
    RETRY_NETWORK = "retry_network"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def media_kind(content_type: str) -> str:
    """Major type of a MIME type: image, video, audio, or document."""
    major = (content_type or "").split("/", 1)[0].lower()
    return major if major in ENDPOINTS_BY_KIND else "document"


def endpoint_for(kind: str) -> RelayEndpoint:
    return ENDPOINTS_BY_KIND.get(kind, DOCUMENT)


def extract_file_id(data: Any) -> Optional[str]:
    """
    Pull the stored file id out of a successful bot API response.

    Photos come back as several sizes; the largest one is kept.
    """
    if not isinstance(data, dict) or not data.get("ok"):
        return None
    result = data.get("result")
    if not isinstance(result, dict):
        return None

    for field in ("document", "video", "audio"):
        item = result.get(field)
        if isinstance(item, dict) and item.get("file_id"):
            return item["file_id"]

    photos = result.get("photo")
    if isinstance(photos, list) and photos:
        largest = max(photos, key=lambda p: p.get("file_size") or 0)
        return largest.get("file_id")

    return None


def sanitize_filename(name: str) -> str:
    """Strip characters that would break a Content-Disposition header."""
    return name.replace("\r", "").replace("\n", "").replace('"', "")


def guess_mime(filename: str) -> str:
    mime, _ = mimetypes.guess_type(filename)
    return mime or "application/octet-stream"


@dataclass
class RelayPayload:
    """Bytes to relay plus the metadata the client declared."""
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class RelayResult:
    """Outcome of send(). stored_id is set only on success."""
    success: bool
    stored_id: Optional[str] = None
    error: Optional[str] = None
    endpoint: Optional[str] = None
    attempts: int = 0


@dataclass
class ObjectMetadata:
    """What the relay knows about a stored object."""
    file_id: str
    file_path: str
    filename: str
    mime_type: str
    size: int


@dataclass
class ResolvedObject:
    """Metadata plus an open byte stream. Call aclose() when done."""
    metadata: ObjectMetadata
    stream: AsyncIterator[bytes]
    aclose: Callable[[], Awaitable[None]]


@dataclass
class _AttemptOutcome:
    state: RelayState
    data: Any = None
    description: Optional[str] = None


class RelayClient:
    """
    Async client for the upstream relay.

    The httpx client is injected so the application can share one
    connection pool, and tests can plug in httpx.MockTransport.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self._base = settings.relay_api_base.rstrip("/")
        self._token = settings.relay_bot_token
        self._chat_id = settings.relay_chat_id
        self._base_delay = settings.relay_retry_base_delay
        self._http = http_client
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self._token and self._chat_id)

    def _method_url(self, method: str) -> str:
        return f"{self._base}/bot{self._token}/{method}"

    def _file_url(self, file_path: str) -> str:
        return f"{self._base}/file/bot{self._token}/{file_path}"

    async def _post(self, endpoint: RelayEndpoint, payload: RelayPayload) -> _AttemptOutcome:
        """
        Make one upstream call and classify it.

        A response that is not JSON counts as a transport failure, the
        same as a dropped connection; only a well-formed reply can be a
        rejection.
        """
        start_time = time.time()
        try:
            response = await self._http.post(
                self._method_url(endpoint.method),
                data={"chat_id": self._chat_id},
                files={endpoint.field: (payload.filename, payload.content, payload.content_type)},
            )
            data = response.json()
        except (httpx.RequestError, ValueError) as e:
            logger.warning(f"Relay transport error on {endpoint.method}: {type(e).__name__}")
            return _AttemptOutcome(RelayState.RETRY_NETWORK)
        finally:
            relay_latency_seconds.labels(endpoint=endpoint.method).observe(time.time() - start_time)

        if response.is_success and isinstance(data, dict) and data.get("ok"):
            return _AttemptOutcome(RelayState.SUCCEEDED, data=data)

        description = data.get("description") if isinstance(data, dict) else None
        return _AttemptOutcome(RelayState.FAILED, data=data, description=description)

    async def send(self, payload: RelayPayload, kind: Optional[str] = None) -> RelayResult:
        """
        Relay payload upstream, applying fallback and retry bounds.

        Args:
            payload: Bytes and declared metadata
            kind: Media kind; derived from payload.content_type when omitted

        Returns:
            RelayResult with the stored id on success, or the upstream's
            reason (else a generic network reason) on failure
        """
        if not self.is_configured:
            log_relay_failure(logger, "-", NOT_CONFIGURED)
            return RelayResult(success=False, error=NOT_CONFIGURED)

        endpoint = endpoint_for(kind or media_kind(payload.content_type))
        state = RelayState.TRY_PRIMARY
        network_attempt = 0
        attempts = 0

        while True:
            outcome = await self._post(endpoint, payload)
            attempts += 1
            relay_attempts_total.labels(endpoint=endpoint.method, outcome=outcome.state.value).inc()
            log_relay_attempt(
                logger,
                endpoint=endpoint.method,
                attempt=network_attempt,
                outcome=outcome.state.value,
                state=state.value,
            )

            if outcome.state is RelayState.SUCCEEDED:
                stored_id = extract_file_id(outcome.data)
                if stored_id is None:
                    log_relay_failure(logger, endpoint.method, NO_FILE_ID)
                    return RelayResult(
                        success=False, error=NO_FILE_ID,
                        endpoint=endpoint.method, attempts=attempts
                    )
                return RelayResult(
                    success=True, stored_id=stored_id,
                    endpoint=endpoint.method, attempts=attempts
                )

            if outcome.state is RelayState.RETRY_NETWORK:
                if network_attempt < MAX_RETRIES:
                    network_attempt += 1
                    state = RelayState.RETRY_NETWORK
                    await self._sleep(network_attempt * self._base_delay)
                    continue
                log_relay_failure(logger, endpoint.method, NETWORK_ERROR, attempts=attempts)
                return RelayResult(
                    success=False, error=NETWORK_ERROR,
                    endpoint=endpoint.method, attempts=attempts
                )

            # Well-formed rejection
            if endpoint is PHOTO and state is not RelayState.TRY_FALLBACK_ONCE:
                logger.info("Photo rejected by relay, retrying as document")
                endpoint = DOCUMENT
                state = RelayState.TRY_FALLBACK_ONCE
                network_attempt = 0
                continue

            error = outcome.description or UPLOAD_FAILED
            log_relay_failure(logger, endpoint.method, error, attempts=attempts)
            return RelayResult(
                success=False, error=error,
                endpoint=endpoint.method, attempts=attempts
            )

    async def get_metadata(self, file_id: str) -> Optional[ObjectMetadata]:
        """
        Look up a stored object.

        A non-2xx status, a body that is not JSON, or a reply without a
        file path all mean "not found".

        Raises:
            httpx.RequestError: If the relay cannot be reached or its reply
                cannot be decoded
        """
        if not self.is_configured:
            return None

        response = await self._http.get(self._method_url("getFile"), params={"file_id": file_id})
        if not response.is_success:
            return None

        try:
            data = response.json()
        except ValueError:
            return None

        result = data.get("result") if isinstance(data, dict) and data.get("ok") else None
        if not isinstance(result, dict) or not result.get("file_path"):
            return None

        file_path = result["file_path"]
        filename = file_path.rsplit("/", 1)[-1] or file_id
        return ObjectMetadata(
            file_id=file_id,
            file_path=file_path,
            filename=filename,
            mime_type=result.get("mime_type") or guess_mime(filename),
            size=result.get("file_size") or 0,
        )

    async def open_stream(self, metadata: ObjectMetadata) -> Optional[ResolvedObject]:
        """Start streaming the raw bytes. None if the relay refuses."""
        request = self._http.build_request("GET", self._file_url(metadata.file_path))
        response = await self._http.send(request, stream=True)
        if not response.is_success:
            await response.aclose()
            return None

        if metadata.mime_type == "application/octet-stream":
            metadata.mime_type = response.headers.get("content-type") or metadata.mime_type

        return ResolvedObject(
            metadata=metadata,
            stream=response.aiter_bytes(),
            aclose=response.aclose,
        )

    async def resolve(self, file_id: str) -> Optional[ResolvedObject]:
        """Metadata first, then the byte stream. None means not found."""
        metadata = await self.get_metadata(file_id)
        if metadata is None:
            return None
        return await self.open_stream(metadata)
