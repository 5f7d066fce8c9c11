"""Obtain the raw media bytes from an inline base64 payload or a remote URL."""

import base64
import binascii
import ipaddress
import logging
import re
from dataclasses import dataclass
from typing import Literal, Optional, Tuple
from urllib.parse import urlparse

import httpx

from media_processor.app.core.config import get_settings
from media_processor.app.schemas.media import MediaIngestionRequest
from media_processor.app.services.errors import AcquisitionError

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:([^,]*?);base64,(.*)$", re.IGNORECASE | re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class AcquiredPayload:
    data: bytes
    source: Literal["base64", "url"]
    # data-URL media type or response content-type; a hint, not authoritative
    declared_mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


def split_data_url(value: str) -> Tuple[Optional[str], str]:
    """Split ``data:<mime>;base64,<data>`` into ``(mime, data)``.

    Plain base64 strings come back as ``(None, value)``.
    """
    match = DATA_URL_RE.match(value.strip())
    if not match:
        return None, value
    declared = match.group(1).strip() or None
    return declared, match.group(2)


def decode_base64_payload(value: str) -> Tuple[bytes, Optional[str]]:
    declared, encoded = split_data_url(value)
    encoded = _WHITESPACE_RE.sub("", encoded)
    encoded += "=" * (-len(encoded) % 4)
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AcquisitionError(f"invalid base64: {exc}") from exc
    return data, declared


def is_private_host(host: str) -> bool:
    """Check if a host is private/localhost."""
    hostname = host.strip("[]")
    if hostname.count(":") == 1:
        hostname = hostname.split(":")[0]
    try:
        ip = ipaddress.ip_address(hostname)
        return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_unspecified
    except ValueError:
        hostname = hostname.lower().rstrip(".")
        return hostname == "localhost" or hostname.endswith(".localhost")


async def _refuse_private_hosts(request: httpx.Request) -> None:
    # runs for the first request and for every redirect hop
    if is_private_host(request.url.host):
        raise AcquisitionError("media URL points to a private or disallowed host")


def _too_large(limit: int) -> AcquisitionError:
    return AcquisitionError(f"payload too large (more than {limit} bytes)")


async def fetch_remote_media(url: str) -> Tuple[bytes, Optional[str]]:
    """Download ``url`` and return its body and content-type header.

    The body is streamed so a download stops as soon as it passes
    ``MEDIA_MAX_BYTES``.
    """
    settings = get_settings()
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise AcquisitionError("invalid media URL")
    if settings.media_fetch_block_private_hosts and is_private_host(parsed.hostname or ""):
        raise AcquisitionError("media URL points to a private or disallowed host")

    headers = {
        "User-Agent": settings.media_fetch_user_agent,
        "Accept": "*/*",
    }
    timeout = httpx.Timeout(settings.media_fetch_timeout_seconds, connect=10.0)
    event_hooks = {"request": [_refuse_private_hosts]} if settings.media_fetch_block_private_hosts else {}
    limit = settings.media_max_bytes
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, headers=headers, event_hooks=event_hooks
        ) as client:
            async with client.stream("GET", url) as response:
                if not response.is_success:
                    raise AcquisitionError(
                        f"failed to download media: {response.status_code} {response.reason_phrase}",
                        status_code=response.status_code,
                    )
                declared_length = response.headers.get("content-length", "")
                if limit and declared_length.isdigit() and int(declared_length) > limit:
                    raise _too_large(limit)
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if limit and len(body) > limit:
                        raise _too_large(limit)
                content_type = response.headers.get("content-type")
    except httpx.HTTPError as exc:
        logger.warning("Media download failed for %s: %s", url, exc)
        raise AcquisitionError(f"failed to download media: {exc}") from exc

    if response.history:
        logger.info("Followed %s redirect(s) for %s to %s", len(response.history), url, response.url)
    return bytes(body), content_type


async def acquire_payload(request: MediaIngestionRequest) -> AcquiredPayload:
    """Produce the media bytes for ``request``; ``base64`` wins over ``mediaUrl``."""
    settings = get_settings()
    if request.base64:
        data, declared = decode_base64_payload(request.base64)
        source: Literal["base64", "url"] = "base64"
    elif request.media_url:
        logger.info("Downloading media for message %s from %s", request.message_id, request.media_url)
        data, declared = await fetch_remote_media(request.media_url)
        source = "url"
    else:
        raise AcquisitionError("no media source provided (base64 or mediaUrl)")

    if not data:
        raise AcquisitionError("empty payload")
    if settings.media_max_bytes and len(data) > settings.media_max_bytes:
        raise AcquisitionError(f"payload too large ({len(data)} bytes)")

    logger.info(
        "Acquired %s bytes for message %s",
        len(data),
        request.message_id,
        extra={"source": source, "declared_mime_type": declared},
    )
    return AcquiredPayload(data=data, source=source, declared_mime_type=declared)
