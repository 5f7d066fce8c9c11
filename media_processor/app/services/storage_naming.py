import re
import secrets
import time
import unicodedata
from typing import Callable, Optional

_UNSAFE_CHARS_RE = re.compile(r"[^\w\s.-]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")
_UNDERSCORES_RE = re.compile(r"_+")
_EXTENSION_UNSAFE_RE = re.compile(r"[^A-Za-z0-9-]")


def sanitize_file_name(name: str) -> str:
    """Reduce ``name`` to ``[A-Za-z0-9_.-]``.

    Accents are folded to ASCII first so ``promoção.pdf`` keeps its letters.
    """
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    cleaned = _UNSAFE_CHARS_RE.sub("", folded).strip()
    cleaned = _WHITESPACE_RE.sub("_", cleaned)
    cleaned = _UNDERSCORES_RE.sub("_", cleaned)
    return cleaned.strip("_")


def _base_name(file_name: str) -> str:
    sanitized = sanitize_file_name(file_name)
    if "." in sanitized:
        sanitized = sanitized.rsplit(".", 1)[0]
    return sanitized.strip("._")


def _millis() -> int:
    return int(time.time() * 1000)


def _random_suffix() -> str:
    return secrets.token_hex(4)


def build_storage_name(
    file_name: Optional[str],
    extension: str,
    clock: Callable[[], int] = _millis,
    random_suffix: Callable[[], str] = _random_suffix,
) -> str:
    """``{millis}_{8 hex}[_{base}].{extension}``; unique at write time in practice."""
    parts = [str(clock()), random_suffix()]
    base = _base_name(file_name) if file_name else ""
    if base:
        parts.append(base)
    extension = _EXTENSION_UNSAFE_RE.sub("", extension or "") or "unknown"
    return f"{'_'.join(parts)}.{extension}"


def build_storage_key(storage_name: str, prefix: str = "messages") -> str:
    return f"{prefix}/{storage_name}" if prefix else storage_name
