import logging
from pathlib import Path
from typing import Iterable, Optional

from media_processor.app.services.storage.base import (
    ObjectExistsError,
    ObjectStoreError,
    StorageProvider,
    UnsupportedContentTypeError,
)

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProvider):
    """Filesystem-backed bucket used for local development and tests.

    Objects live under ``<root>/<bucket>/<key>``. An optional allow-list of
    content types reproduces the MIME restrictions a hosted bucket enforces.
    """

    def __init__(
        self,
        root: Path,
        bucket: str = "whatsapp-media",
        public_base_url: str = "http://localhost:54321/storage/v1/object/public",
        allowed_mime_types: Optional[Iterable[str]] = None,
    ):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.allowed_mime_types = {m.lower() for m in (allowed_mime_types or [])}
        self.content_types: dict[str, str] = {}
        (self.root / self.bucket).mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe = key.strip("/").replace("..", "")
        return self.root / self.bucket / safe

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        if self.allowed_mime_types and content_type.lower() not in self.allowed_mime_types:
            raise UnsupportedContentTypeError(f"mime type {content_type} is not supported")
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "xb" fails if the file exists, so concurrent writers cannot clobber each other.
            with path.open("xb") as buffer:
                buffer.write(data)
        except FileExistsError:
            raise ObjectExistsError(f"The resource already exists: {key}") from None
        except OSError as exc:
            logger.exception("Local upload failed for key=%s", key)
            raise ObjectStoreError(f"Local upload failed: {exc}") from exc
        self.content_types[key] = content_type

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self._path(key).exists()
