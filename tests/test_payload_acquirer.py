import base64

import httpx
import pytest

from conftest import PNG_BYTES
from media_processor.app.schemas.media import MediaIngestionRequest
from media_processor.app.services.errors import AcquisitionError
from media_processor.app.services.payload_acquirer import (
    acquire_payload,
    decode_base64_payload,
    is_private_host,
    split_data_url,
)


def test_data_url_round_trip():
    encoded = base64.b64encode(PNG_BYTES).decode()
    data, declared = decode_base64_payload(f"data:image/png;base64,{encoded}")
    assert data == PNG_BYTES
    assert declared == "image/png"
    assert base64.b64encode(data).decode() == encoded


def test_plain_base64_has_no_declared_type():
    data, declared = decode_base64_payload(base64.b64encode(b"hello world").decode())
    assert data == b"hello world"
    assert declared is None


def test_data_url_with_codec_parameters():
    declared, payload = split_data_url("data:audio/ogg; codecs=opus;base64,T2dnUw==")
    assert declared == "audio/ogg; codecs=opus"
    assert payload == "T2dnUw=="


def test_whitespace_and_missing_padding_are_tolerated():
    data, _ = decode_base64_payload("aGVs\nbG8")
    assert data == b"hello"


def test_invalid_base64_raises():
    with pytest.raises(AcquisitionError, match="invalid base64"):
        decode_base64_payload("data:image/png;base64,@@not-base64@@")


@pytest.mark.asyncio
async def test_empty_base64_payload_rejected():
    request = MediaIngestionRequest(message_id="wamid.1", base64="data:image/png;base64,")
    with pytest.raises(AcquisitionError, match="empty payload"):
        await acquire_payload(request)


@pytest.mark.asyncio
async def test_base64_takes_precedence_over_url(mock_remote):
    captured = mock_remote(lambda request: httpx.Response(200, content=b"remote"))
    request = MediaIngestionRequest(
        message_id="wamid.1",
        base64=base64.b64encode(b"inline").decode(),
        media_url="https://cdn.example.com/file.jpg",
    )
    payload = await acquire_payload(request)
    assert payload.data == b"inline"
    assert payload.source == "base64"
    assert captured == []


@pytest.mark.asyncio
async def test_remote_fetch_sends_headers_and_keeps_content_type(mock_remote):
    captured = mock_remote(
        lambda request: httpx.Response(200, content=b"OggS-audio", headers={"content-type": "audio/ogg; codecs=opus"})
    )
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/voice")
    payload = await acquire_payload(request)
    assert payload.data == b"OggS-audio"
    assert payload.source == "url"
    assert payload.declared_mime_type == "audio/ogg; codecs=opus"
    assert captured[0].headers["accept"] == "*/*"
    assert "MediaProcessor" in captured[0].headers["user-agent"]


@pytest.mark.asyncio
async def test_remote_fetch_non_2xx_carries_status(mock_remote):
    mock_remote(lambda request: httpx.Response(404))
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/missing.jpg")
    with pytest.raises(AcquisitionError) as excinfo:
        await acquire_payload(request)
    assert excinfo.value.status_code == 404
    assert "404 Not Found" in str(excinfo.value)


@pytest.mark.asyncio
async def test_remote_empty_body_rejected(mock_remote):
    mock_remote(lambda request: httpx.Response(200, content=b""))
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/empty.jpg")
    with pytest.raises(AcquisitionError, match="empty payload"):
        await acquire_payload(request)


@pytest.mark.asyncio
async def test_network_error_is_wrapped(mock_remote):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    mock_remote(handler)
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/file.jpg")
    with pytest.raises(AcquisitionError, match="failed to download media"):
        await acquire_payload(request)


@pytest.mark.asyncio
async def test_private_hosts_are_blocked():
    request = MediaIngestionRequest(message_id="wamid.1", media_url="http://127.0.0.1:8080/file.jpg")
    with pytest.raises(AcquisitionError, match="private"):
        await acquire_payload(request)


@pytest.mark.asyncio
async def test_payload_size_cap(settings_env):
    settings_env(MEDIA_MAX_BYTES="4")
    request = MediaIngestionRequest(message_id="wamid.1", base64=base64.b64encode(b"too big").decode())
    with pytest.raises(AcquisitionError, match="too large"):
        await acquire_payload(request)


def test_is_private_host():
    assert is_private_host("localhost")
    assert is_private_host("10.0.0.4:9000")
    assert not is_private_host("mmg.whatsapp.net")


@pytest.mark.asyncio
async def test_redirect_to_private_host_is_refused(mock_remote):
    def handler(request):
        if request.url.host == "cdn.example.com":
            return httpx.Response(302, headers={"location": "http://169.254.169.254/latest/meta-data"})
        return httpx.Response(200, content=b"instance-secret")

    captured = mock_remote(handler)
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/a.jpg")
    with pytest.raises(AcquisitionError, match="private"):
        await acquire_payload(request)
    assert [str(r.url) for r in captured] == ["https://cdn.example.com/a.jpg"]


@pytest.mark.asyncio
async def test_public_redirects_are_followed(mock_remote):
    def handler(request):
        if request.url.path == "/old.jpg":
            return httpx.Response(301, headers={"location": "https://media.example.com/new.jpg"})
        return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg"})

    captured = mock_remote(handler)
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/old.jpg")
    payload = await acquire_payload(request)
    assert payload.data == b"jpeg-bytes"
    assert payload.declared_mime_type == "image/jpeg"
    assert len(captured) == 2


@pytest.mark.asyncio
async def test_remote_download_stops_at_size_cap(settings_env, mock_remote):
    settings_env(MEDIA_MAX_BYTES="8")
    chunks_sent = []

    async def body():
        for chunk in (b"0123", b"4567", b"89ab", b"cdef"):
            chunks_sent.append(chunk)
            yield chunk

    mock_remote(lambda request: httpx.Response(200, content=body()))
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/big.mp4")
    with pytest.raises(AcquisitionError, match="too large"):
        await acquire_payload(request)
    assert len(chunks_sent) < 4


@pytest.mark.asyncio
async def test_remote_download_refused_on_declared_length(settings_env, mock_remote):
    settings_env(MEDIA_MAX_BYTES="8")
    mock_remote(lambda request: httpx.Response(200, content=b"x" * 32))
    request = MediaIngestionRequest(message_id="wamid.1", media_url="https://cdn.example.com/big.mp4")
    with pytest.raises(AcquisitionError, match="more than 8 bytes"):
        await acquire_payload(request)


def test_is_private_host_covers_metadata_and_ipv6():
    assert is_private_host("169.254.169.254")
    assert is_private_host("::1")
    assert is_private_host("0.0.0.0")
    assert is_private_host("api.localhost")
    assert not is_private_host("8.8.8.8")
