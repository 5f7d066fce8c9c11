"""Resolve the canonical MIME type and file extension of an inbound attachment.

Resolution is an ordered list of strategies. Each strategy looks at one
signal and either returns a ``ResolvedMime`` or ``None``; the first hit wins.
Every hit goes through ``finalize_mime`` so normalisation and the Ogg/Opus
remap apply whatever signal the type came from.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
UNKNOWN_EXTENSION = "unknown"

# type/subtype restricted to RFC 6838 name characters; anything else is not a MIME type
_MIME_RE = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+-]*/[a-z0-9][a-z0-9!#$&^_.+-]*$")
_EXTENSION_RE = re.compile(r"[a-z0-9][a-z0-9-]*")

# The storage bucket does not accept Ogg/Opus containers.
UNSUPPORTED_AUDIO_REMAP = {
    "audio/ogg": ("audio/mpeg", "mp3"),
    "audio/opus": ("audio/mpeg", "mp3"),
}

MIME_TO_EXTENSION = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/svg+xml": "svg",
    "image/x-icon": "ico",
    "image/vnd.microsoft.icon": "ico",
    "image/heic": "heic",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/x-msvideo": "avi",
    "video/x-matroska": "mkv",
    "video/webm": "webm",
    "video/3gpp": "3gp",
    "video/x-flv": "flv",
    "video/x-ms-wmv": "wmv",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/aac": "aac",
    "audio/flac": "flac",
    "audio/x-ms-wma": "wma",
    "audio/webm": "webm",
    "audio/amr": "amr",
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "application/vnd.ms-powerpoint": "ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "pptx",
    "text/plain": "txt",
    "text/csv": "csv",
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "application/zip": "zip",
    "application/vnd.rar": "rar",
    "application/x-rar-compressed": "rar",
    "application/x-7z-compressed": "7z",
    OCTET_STREAM: "bin",
}

EXTENSION_TO_MIME = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "3gp": "video/3gpp",
    "flv": "video/x-flv",
    "wmv": "video/x-ms-wmv",
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wma": "audio/x-ms-wma",
    "opus": "audio/opus",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
    "xml": "application/xml",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
}


@dataclass(frozen=True)
class MimeSignals:
    mime_type: Optional[str] = None
    file_name: Optional[str] = None
    media_url: Optional[str] = None
    declared_mime_type: Optional[str] = None
    data: bytes = b""


@dataclass(frozen=True)
class ResolvedMime:
    mime_type: str
    extension: str
    strategy: str


def normalize_mime_type(value: Optional[str]) -> str:
    """Drop parameters (``;codecs=opus``) and lower-case."""
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()


def clean_extension(value: Optional[str]) -> Optional[str]:
    """Leading ``[a-z0-9-]`` run of ``value``: ``"pdf (1)"`` gives ``"pdf"``."""
    if not value:
        return None
    match = _EXTENSION_RE.match(value.strip().lower())
    if not match:
        return None
    return match.group(0).rstrip("-") or None


def finalize_mime(mime_type: str, strategy: str, extension: Optional[str] = None) -> ResolvedMime:
    mime = normalize_mime_type(mime_type)
    if mime in UNSUPPORTED_AUDIO_REMAP:
        remapped, remapped_ext = UNSUPPORTED_AUDIO_REMAP[mime]
        logger.info("Remapping unsupported audio type %s to %s", mime, remapped)
        return ResolvedMime(remapped, remapped_ext, strategy)
    if extension is None:
        extension = MIME_TO_EXTENSION.get(mime) or mime.split("/", 1)[-1]
    return ResolvedMime(mime, clean_extension(extension) or UNKNOWN_EXTENSION, strategy)


def mime_from_extension(extension: str) -> str:
    return EXTENSION_TO_MIME.get(extension.lower().lstrip("."), OCTET_STREAM)


def _from_mime_value(value: Optional[str], strategy: str) -> Optional[ResolvedMime]:
    mime = normalize_mime_type(value)
    if not _MIME_RE.match(mime):
        return None
    return finalize_mime(mime, strategy)


def _from_extension(extension: str, strategy: str) -> ResolvedMime:
    extension = extension.lower()
    mime = mime_from_extension(extension)
    # unknown extensions stay opaque blobs but keep their own suffix
    return finalize_mime(mime, strategy, extension=extension if mime == OCTET_STREAM else None)


def _extension_of(name: str) -> Optional[str]:
    if "." not in name:
        return None
    return clean_extension(name.rsplit(".", 1)[1])


def explicit_mime(signals: MimeSignals) -> Optional[ResolvedMime]:
    return _from_mime_value(signals.mime_type, "explicit_mime")


def file_name_extension(signals: MimeSignals) -> Optional[ResolvedMime]:
    if not signals.file_name:
        return None
    extension = _extension_of(signals.file_name)
    if not extension:
        return None
    return _from_extension(extension, "file_name_extension")


def media_url_extension(signals: MimeSignals) -> Optional[ResolvedMime]:
    if not signals.media_url:
        return None
    # urlparse drops the query string and fragment
    segment = urlparse(signals.media_url).path.rsplit("/", 1)[-1]
    extension = _extension_of(segment)
    if not extension:
        return None
    return _from_extension(extension, "media_url_extension")


def declared_mime(signals: MimeSignals) -> Optional[ResolvedMime]:
    if normalize_mime_type(signals.declared_mime_type) == OCTET_STREAM:
        return None
    return _from_mime_value(signals.declared_mime_type, "declared_mime")


def sniff_mime_type(data: bytes) -> Optional[str]:
    """Detect a handful of common containers from their leading bytes."""
    head = data[:16]
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    if head.startswith(b"RIFF") and head[8:12] == b"WAVE":
        return "audio/wav"
    if head.startswith(b"%PDF"):
        return "application/pdf"
    if head.startswith(b"OggS"):
        return "audio/ogg"
    if head.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm"
    if head.startswith(b"ID3") or head[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return "audio/mpeg"
    if head[4:8] == b"ftyp":
        brand = head[8:12]
        if brand.startswith(b"3gp"):
            return "video/3gpp"
        if brand == b"qt  ":
            return "video/quicktime"
        if brand == b"M4A ":
            return "audio/mp4"
        return "video/mp4"
    return None


def magic_bytes(signals: MimeSignals) -> Optional[ResolvedMime]:
    sniffed = sniff_mime_type(signals.data)
    if sniffed is None:
        return None
    return finalize_mime(sniffed, "magic_bytes")


MimeStrategy = Callable[[MimeSignals], Optional[ResolvedMime]]

RESOLUTION_STRATEGIES: Sequence[MimeStrategy] = (
    explicit_mime,
    file_name_extension,
    media_url_extension,
    declared_mime,
    magic_bytes,
)


def resolve_mime(signals: MimeSignals, strategies: Sequence[MimeStrategy] = RESOLUTION_STRATEGIES) -> ResolvedMime:
    for strategy in strategies:
        resolved = strategy(signals)
        if resolved is not None:
            logger.debug("Resolved MIME %s via %s", resolved.mime_type, resolved.strategy)
            return resolved
    return ResolvedMime(OCTET_STREAM, UNKNOWN_EXTENSION, "default")
