"""
Object store backed by S3-compatible storage (Supabase Storage S3, AWS S3, MinIO).

Uploads are conditional (``If-None-Match: *``) so an existing key is never
overwritten. Store responses are mapped onto the typed errors of
``media_processor.app.services.storage.base`` so the writer can decide which
failures are worth a retry.
"""
import logging
from functools import lru_cache

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from media_processor.app.core.config import get_settings
from media_processor.app.services.storage.base import (
    ObjectExistsError,
    ObjectStoreError,
    StorageProvider,
    UnsupportedContentTypeError,
)

logger = logging.getLogger(__name__)

_COLLISION_CODES = {"PreconditionFailed", "ConditionalRequestConflict", "KeyAlreadyExists", "Duplicate"}
_UNSUPPORTED_TYPE_CODES = {"InvalidMimeType", "UnsupportedMediaType", "InvalidContentType"}


@lru_cache
def _get_s3_client() -> BaseClient:
    """
    Get or create a boto3 S3 client.

    Configuration is determined by environment variables:
    - S3_ENDPOINT_URL: custom S3-compatible endpoint (Supabase, MinIO)
    - S3_FORCE_PATH_STYLE: use path-style addressing
    - S3_REGION: region (default: us-east-1)
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_SESSION_TOKEN
    """
    settings = get_settings()

    client_kwargs = {}
    if settings.s3_force_path_style:
        client_kwargs["config"] = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )
    if settings.s3_endpoint_url:
        client_kwargs["endpoint_url"] = settings.s3_endpoint_url
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
    if settings.aws_session_token:
        client_kwargs["aws_session_token"] = settings.aws_session_token

    region = settings.s3_region or "us-east-1"
    return boto3.client("s3", region_name=region, **client_kwargs)


def classify_client_error(exc: ClientError) -> ObjectStoreError:
    """Map a botocore ``ClientError`` onto the storage error taxonomy."""
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    message = str(error.get("Message", "")) or str(exc)
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

    if code in _COLLISION_CODES or status in (409, 412):
        return ObjectExistsError(message)
    if code in _UNSUPPORTED_TYPE_CODES or status == 415 or "mime type" in message.lower():
        return UnsupportedContentTypeError(message)
    return ObjectStoreError(f"S3 upload failed: {code or status}: {message}")


class S3StorageProvider(StorageProvider):
    def __init__(self, bucket: str, public_base_url: str, client: BaseClient | None = None):
        self.bucket = bucket
        self.public_base_url = public_base_url
        self._client = client

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = _get_s3_client()
        return self._client

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as exc:
            mapped = classify_client_error(exc)
            logger.warning("Upload to %s rejected: %s", uri_for(self.bucket, key), mapped)
            raise mapped from exc
        except BotoCoreError as exc:
            logger.exception("Unexpected error uploading object to %s", uri_for(self.bucket, key))
            raise ObjectStoreError(f"S3 upload failed: {exc}") from exc
        logger.debug("Uploaded object to %s", uri_for(self.bucket, key))


def uri_for(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"
