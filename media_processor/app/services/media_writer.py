"""Upload media to the bucket, never overwriting an existing object.

Retries are declared as ``RetryStep`` values: which store error a step
handles, how it rewrites the attempt, and how many times it may fire. The
default policy falls back to ``application/octet-stream`` once when the store
rejects the content type, and picks a fresh name once on a key collision.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Type

from media_processor.app.services.errors import StorageError
from media_processor.app.services.mime_resolver import OCTET_STREAM
from media_processor.app.services.storage.base import (
    ObjectExistsError,
    ObjectStoreError,
    StorageProvider,
    UnsupportedContentTypeError,
)
from media_processor.app.services.storage_naming import build_storage_key, build_storage_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadAttempt:
    file_name: str
    key: str
    content_type: str
    extension: str
    prefix: str = "messages"
    original_file_name: Optional[str] = None

    @classmethod
    def new(
        cls,
        original_file_name: Optional[str],
        extension: str,
        content_type: str,
        prefix: str = "messages",
    ) -> "UploadAttempt":
        file_name = build_storage_name(original_file_name, extension)
        return cls(
            file_name=file_name,
            key=build_storage_key(file_name, prefix),
            content_type=content_type,
            extension=extension,
            prefix=prefix,
            original_file_name=original_file_name,
        )


@dataclass(frozen=True)
class StoredObject:
    key: str
    file_name: str
    content_type: str
    public_url: str
    size: int


@dataclass(frozen=True)
class RetryStep:
    name: str
    handles: Type[ObjectStoreError]
    transform: Callable[[UploadAttempt], UploadAttempt]
    max_attempts: int = 1


def use_octet_stream(attempt: UploadAttempt) -> UploadAttempt:
    return replace(attempt, content_type=OCTET_STREAM)


def pick_fresh_name(attempt: UploadAttempt) -> UploadAttempt:
    return UploadAttempt.new(attempt.original_file_name, attempt.extension, attempt.content_type, attempt.prefix)


content_type_fallback = RetryStep("content_type_fallback", UnsupportedContentTypeError, use_octet_stream)
rename_on_collision = RetryStep("rename_on_collision", ObjectExistsError, pick_fresh_name)

DEFAULT_RETRY_STEPS: Sequence[RetryStep] = (content_type_fallback, rename_on_collision)


def write_media(
    storage: StorageProvider,
    data: bytes,
    attempt: UploadAttempt,
    steps: Sequence[RetryStep] = DEFAULT_RETRY_STEPS,
) -> StoredObject:
    """Upload ``data`` and return where it landed.

    The returned key and file name belong to the attempt that succeeded and
    are authoritative for everything downstream.
    """
    used = {step.name: 0 for step in steps}
    failures: List[str] = []
    current = attempt

    while True:
        try:
            storage.upload(current.key, data, current.content_type)
            break
        except ObjectStoreError as exc:
            failures.append(str(exc))
            step = next((s for s in steps if isinstance(exc, s.handles)), None)
            if step is None or used[step.name] >= step.max_attempts:
                logger.error(
                    "Upload failed for key=%s after %s attempt(s)",
                    current.key,
                    len(failures),
                    extra={"failures": failures},
                )
                raise StorageError("upload failed: " + "; ".join(failures)) from exc
            used[step.name] += 1
            previous = current
            current = step.transform(current)
            logger.warning(
                "Retrying upload (%s): %s -> %s as %s",
                step.name,
                previous.key,
                current.key,
                current.content_type,
            )

    public_url = storage.public_url(current.key)
    logger.info("Stored %s bytes at %s", len(data), current.key)
    return StoredObject(
        key=current.key,
        file_name=current.file_name,
        content_type=current.content_type,
        public_url=public_url,
        size=len(data),
    )
