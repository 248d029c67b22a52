"""
Tests for the upstream relay client.
"""
import httpx
import pytest

from mediarelay.config import Settings
from mediarelay.storage.relay_client import (
    MAX_RETRIES,
    NETWORK_ERROR,
    NOT_CONFIGURED,
    RelayClient,
    RelayPayload,
    endpoint_for,
    extract_file_id,
    media_kind,
)

from conftest import document_response, no_sleep, photo_response

JPEG = RelayPayload(filename="cat.jpg", content_type="image/jpeg", content=b"\xff\xd8jpegbytes")
REJECTED = (400, {"ok": False, "error_code": 400, "description": "Bad Request: IMAGE_PROCESS_FAILED"})


def relay_for(settings: Settings, relay_http: httpx.AsyncClient, sleeps: list = None) -> RelayClient:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RelayClient(settings, relay_http, sleep=record_sleep if sleeps is not None else no_sleep)


class TestEndpointSelection:

    @pytest.mark.parametrize("content_type,method", [
        ("image/jpeg", "sendPhoto"),
        ("image/webp", "sendPhoto"),
        ("video/mp4", "sendVideo"),
        ("audio/mpeg", "sendAudio"),
        ("application/pdf", "sendDocument"),
        ("", "sendDocument"),
    ])
    def test_endpoint_by_media_kind(self, content_type, method):
        assert endpoint_for(media_kind(content_type)).method == method

    def test_extract_largest_photo(self):
        """Test the largest photo size is the stored id."""
        assert extract_file_id(photo_response("big")) == "big"

    def test_extract_document(self):
        assert extract_file_id(document_response("doc")) == "doc"

    def test_extract_without_file(self):
        assert extract_file_id({"ok": True, "result": {"message_id": 3}}) is None
        assert extract_file_id({"ok": False}) is None
        assert extract_file_id("nope") is None


class TestRelaySend:
    """Tests for RelayClient.send."""

    @pytest.mark.asyncio
    async def test_photo_success(self, settings, relay_http, fake_relay):
        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert result.stored_id == "photo-file-id"
        assert result.endpoint == "sendPhoto"
        assert result.attempts == 1

        request = fake_relay.calls("sendPhoto")[0]
        assert request.url.path == "/botTEST_TOKEN/sendPhoto"
        body = request.content
        assert b'name="chat_id"' in body
        assert b"-100123" in body
        assert b'name="photo"; filename="cat.jpg"' in body

    @pytest.mark.asyncio
    async def test_photo_rejection_falls_back_to_document(self, settings, relay_http, fake_relay):
        """Test a rejected photo is re-sent once as a document with the same bytes."""
        fake_relay.on("sendPhoto", REJECTED)

        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert result.stored_id == "document-file-id"
        assert result.endpoint == "sendDocument"
        assert len(fake_relay.calls("sendPhoto")) == 1
        assert len(fake_relay.calls("sendDocument")) == 1
        document_body = fake_relay.calls("sendDocument")[0].content
        assert JPEG.content in document_body
        assert b'name="document"' in document_body

    @pytest.mark.asyncio
    async def test_fallback_happens_once(self, settings, relay_http, fake_relay):
        fake_relay.on("sendPhoto", REJECTED)
        fake_relay.on("sendDocument", (400, {"ok": False, "description": "Bad Request: file is empty"}))

        result = await relay_for(settings, relay_http).send(JPEG)

        assert not result.success
        assert result.error == "Bad Request: file is empty"
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_document_rejection_is_final(self, settings, relay_http, fake_relay):
        """Test non-photo endpoints do not fall back."""
        fake_relay.on("sendVideo", (413, {"ok": False, "description": "Request Entity Too Large"}))
        payload = RelayPayload(filename="a.mp4", content_type="video/mp4", content=b"v")

        result = await relay_for(settings, relay_http).send(payload)

        assert not result.success
        assert result.error == "Request Entity Too Large"
        assert fake_relay.calls("sendDocument") == []

    @pytest.mark.asyncio
    async def test_network_failures_retry_with_backoff(self, settings, relay_http, fake_relay):
        """Test three transport failures give up with a network error."""
        fake_relay.on("sendPhoto", httpx.ConnectError("boom"))
        sleeps = []
        settings.relay_retry_base_delay = 1.0

        result = await relay_for(settings, relay_http, sleeps).send(JPEG)

        assert not result.success
        assert result.error == NETWORK_ERROR
        assert result.attempts == MAX_RETRIES + 1
        assert len(fake_relay.calls("sendPhoto")) == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_network_failure_then_success(self, settings, relay_http, fake_relay):
        fake_relay.on("sendPhoto", httpx.ReadTimeout("slow"), (200, photo_response("late")))

        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert result.stored_id == "late"
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_corrupt_reply_is_retried(self, settings, relay_http, fake_relay):
        """Test an undecodable compressed reply is retried like a transport failure."""
        fake_relay.on("sendPhoto", httpx.DecodingError("corrupt gzip stream"), (200, photo_response()))

        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_corrupt_replies_exhaust_retries(self, settings, relay_http, fake_relay):
        fake_relay.on("sendPhoto", httpx.DecodingError("corrupt gzip stream"))

        result = await relay_for(settings, relay_http).send(JPEG)

        assert not result.success
        assert result.error == NETWORK_ERROR
        assert result.attempts == MAX_RETRIES + 1

    @pytest.mark.asyncio
    async def test_non_json_reply_is_retried(self, settings, relay_http, fake_relay):
        """Test an HTML error page is treated like a dropped connection."""
        fake_relay.on("sendPhoto", (502, b"<html>Bad Gateway</html>"), (200, photo_response()))

        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert len(fake_relay.calls("sendPhoto")) == 2

    @pytest.mark.asyncio
    async def test_fallback_has_its_own_retry_budget(self, settings, relay_http, fake_relay):
        """Test network retries restart on the fallback endpoint."""
        fake_relay.on("sendPhoto", REJECTED)
        fake_relay.on(
            "sendDocument",
            httpx.ConnectError("boom"),
            httpx.ConnectError("boom"),
            (200, document_response("after-retries")),
        )

        result = await relay_for(settings, relay_http).send(JPEG)

        assert result.success
        assert result.stored_id == "after-retries"
        assert result.attempts == 4

    @pytest.mark.asyncio
    async def test_ok_without_file_id_fails(self, settings, relay_http, fake_relay):
        fake_relay.on("sendDocument", (200, {"ok": True, "result": {"message_id": 9}}))
        payload = RelayPayload(filename="a.pdf", content_type="application/pdf", content=b"%PDF")

        result = await relay_for(settings, relay_http).send(payload)

        assert not result.success
        assert result.stored_id is None

    @pytest.mark.asyncio
    async def test_not_configured(self, settings, relay_http, fake_relay):
        settings.relay_bot_token = None
        result = await relay_for(settings, relay_http).send(JPEG)

        assert not result.success
        assert result.error == NOT_CONFIGURED
        assert fake_relay.calls() == []


class TestRelayResolve:
    """Tests for metadata lookup and streaming."""

    @pytest.mark.asyncio
    async def test_get_metadata(self, settings, relay_http, fake_relay):
        metadata = await relay_for(settings, relay_http).get_metadata("photo-file-id")

        assert metadata.file_path == "photos/file_7.jpg"
        assert metadata.filename == "file_7.jpg"
        assert metadata.mime_type == "image/jpeg"
        assert metadata.size == 11
        assert fake_relay.calls("getFile")[0].url.params["file_id"] == "photo-file-id"

    @pytest.mark.asyncio
    async def test_get_metadata_not_found(self, settings, relay_http, fake_relay):
        fake_relay.on("getFile", (400, {"ok": False, "description": "Bad Request: invalid file_id"}))
        assert await relay_for(settings, relay_http).get_metadata("nope") is None

    @pytest.mark.asyncio
    async def test_get_metadata_without_path(self, settings, relay_http, fake_relay):
        fake_relay.on("getFile", (200, {"ok": True, "result": {"file_id": "x"}}))
        assert await relay_for(settings, relay_http).get_metadata("x") is None

    @pytest.mark.asyncio
    async def test_get_metadata_transport_error_propagates(self, settings, relay_http, fake_relay):
        fake_relay.on("getFile", httpx.ConnectError("down"))
        with pytest.raises(httpx.TransportError):
            await relay_for(settings, relay_http).get_metadata("x")

    @pytest.mark.asyncio
    async def test_resolve_streams_bytes(self, settings, relay_http, fake_relay):
        resolved = await relay_for(settings, relay_http).resolve("photo-file-id")
        try:
            chunks = [chunk async for chunk in resolved.stream]
        finally:
            await resolved.aclose()

        assert b"".join(chunks) == b"hello world"
        assert fake_relay.calls()[-1].url.path == "/file/botTEST_TOKEN/photos/file_7.jpg"

    @pytest.mark.asyncio
    async def test_resolve_missing(self, settings, relay_http, fake_relay):
        fake_relay.on("getFile", (404, {"ok": False}))
        assert await relay_for(settings, relay_http).resolve("gone") is None
