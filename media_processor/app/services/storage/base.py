from abc import ABC, abstractmethod
from urllib.parse import quote


class ObjectStoreError(Exception):
    """Generic store-level failure; never retried."""


class ObjectExistsError(ObjectStoreError):
    """The key is already taken. Objects are never overwritten."""


class UnsupportedContentTypeError(ObjectStoreError):
    """The bucket does not accept the requested content type."""


def build_public_url(public_base_url: str, bucket: str, key: str) -> str:
    return f"{public_base_url.rstrip('/')}/{bucket}/{quote(key)}"


class StorageProvider(ABC):
    bucket: str
    public_base_url: str

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        return build_public_url(self.public_base_url, self.bucket, key)
