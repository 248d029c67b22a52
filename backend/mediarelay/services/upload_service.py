"""
Upload orchestration.

Flow per request:
1. Validate payload presence, size ceiling and declared type (no I/O yet)
2. Resolve the API key, if one was presented
3. Fingerprint the caller
4. Admission check; stop on denial with a retry hint
5. Relay the bytes upstream; stop on failure with the upstream's reason
6. Commit usage and touch the API key
7. Encode the stored id and build the public URL

Steps 4-6 run in this order so quota is consumed and history recorded
only for uploads the relay actually accepted.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from mediarelay.config import Settings
from mediarelay.services.api_key_service import ApiKeyService
from mediarelay.services.fingerprint_service import FingerprintService
from mediarelay.services.rate_limit_service import RateLimitService, now_ms
from mediarelay.services.usage_service import UploadInfo, UsageService
from mediarelay.storage.kv_store import StoreError
from mediarelay.storage.relay_client import NO_FILE_ID, RelayClient, RelayPayload, media_kind
from mediarelay.utils.file_id import encode_file_id
from mediarelay.utils.logging import log_upload_accepted, log_upload_rejected
from mediarelay.utils.metrics import upload_bytes_total, uploads_total

logger = logging.getLogger(__name__)


@dataclass
class UploadRequest:
    """Everything the orchestrator needs from the HTTP layer."""
    filename: Optional[str]
    content_type: Optional[str]
    content: Optional[bytes]
    headers: Mapping[str, str] = field(default_factory=dict)
    api_key: Optional[str] = None
    base_url: str = ""


@dataclass
class UploadResult:
    """HTTP status plus JSON body."""
    status_code: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        return self.status_code == 200


def _error(message: str, status_code: int) -> UploadResult:
    return UploadResult(status_code=status_code, body={"success": False, "error": message})


def retry_hint(retry_after_ms: Optional[int]) -> str:
    seconds = math.ceil((retry_after_ms or 0) / 1000)
    return f"Upload rate limit reached. Retry after {seconds}s"


class UploadService:
    """Sequences fingerprinting, admission, relay and accounting."""

    def __init__(
        self,
        settings: Settings,
        relay: RelayClient,
        rate_limiter: RateLimitService,
        usage: UsageService,
        api_keys: ApiKeyService
    ):
        self._max_bytes = settings.max_upload_bytes
        self._allowed_types = {t.lower() for t in settings.allowed_content_types}
        self._public_base_url = settings.public_base_url
        self._relay = relay
        self._rate_limiter = rate_limiter
        self._usage = usage
        self._api_keys = api_keys

    def validate(self, request: UploadRequest) -> Optional[UploadResult]:
        """Admission checks that need no I/O. Returns an error result or None."""
        if request.content is None:
            return _error("No file uploaded", 400)

        if len(request.content) > self._max_bytes:
            limit_mib = self._max_bytes // (1024 * 1024)
            return _error(f"File size exceeds {limit_mib}MB limit", 413)

        if (request.content_type or "").lower() not in self._allowed_types:
            return _error("File type not supported", 400)

        return None

    def public_url(self, encoded_id: str, base_url: str) -> str:
        origin = (self._public_base_url or base_url).rstrip("/")
        return f"{origin}/file/{encoded_id}"

    async def upload(self, request: UploadRequest) -> UploadResult:
        """
        Run the full upload flow. Never raises.

        Returns:
            UploadResult: 200 with the public URL, or 400/413/429/502/500
        """
        start_time = time.time()

        rejection = self.validate(request)
        if rejection is not None:
            uploads_total.labels(outcome="invalid").inc()
            log_upload_rejected(logger, rejection.body["error"], rejection.status_code)
            return rejection

        try:
            return await self._admit_and_relay(request, start_time)
        except Exception as e:
            uploads_total.labels(outcome="error").inc()
            logger.exception(f"Unexpected upload failure: {e}")
            return _error("Internal server error", 500)

    async def _admit_and_relay(self, request: UploadRequest, start_time: float) -> UploadResult:
        content = request.content
        content_type = request.content_type.lower()
        filename = request.filename or "upload"

        # Absent and invalid keys are both anonymous for rate limiting
        api_key = await self._api_keys.verify(request.api_key)
        via_api_key = api_key is not None

        fingerprint = FingerprintService.fingerprint(request.headers)

        decision = await self._rate_limiter.check_and_reserve(fingerprint.identity, via_api_key)
        if not decision.allowed:
            uploads_total.labels(outcome="rate_limited").inc()
            return _error(retry_hint(decision.retry_after_ms), 429)

        relay_result = await self._relay.send(
            RelayPayload(filename=filename, content_type=content_type, content=content),
            media_kind(content_type),
        )
        if not relay_result.success:
            # An ok reply without a usable file id is a 500, not a relay refusal
            status_code = 500 if relay_result.error == NO_FILE_ID else 502
            uploads_total.labels(outcome="relay_failed").inc()
            log_upload_rejected(
                logger, relay_result.error, status_code,
                identity=fingerprint.identity, attempts=relay_result.attempts
            )
            return _error(relay_result.error or "Upload failed", status_code)

        # The bytes are stored upstream from here on; accounting failures
        # are logged but do not fail the upload.
        try:
            await self._usage.record(
                fingerprint,
                UploadInfo(
                    file_name=filename,
                    file_type=content_type,
                    bytes=len(content),
                    via_api_key=via_api_key,
                ),
                decision,
            )
            if api_key is not None:
                await self._api_keys.touch_usage(api_key)
        except StoreError as e:
            logger.error(f"Failed to commit usage for {fingerprint.identity[:12]}: {e}")

        encoded_id = encode_file_id(relay_result.stored_id)
        uploads_total.labels(outcome="success").inc()
        upload_bytes_total.inc(len(content))
        log_upload_accepted(
            logger,
            identity=fingerprint.identity,
            size=len(content),
            file_type=content_type,
            via_api_key=via_api_key,
            duration_ms=(time.time() - start_time) * 1000,
        )

        return UploadResult(
            status_code=200,
            body={
                "success": True,
                "url": self.public_url(encoded_id, request.base_url),
                "fileId": relay_result.stored_id,
                "encodedFileId": encoded_id,
                "originalName": filename,
                "size": len(content),
                "fileType": content_type,
                "uploadedAt": now_ms(),
                "viaApiKey": via_api_key,
            },
        )
