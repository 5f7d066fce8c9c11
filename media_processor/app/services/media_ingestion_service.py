import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from media_processor.app.core.config import get_settings
from media_processor.app.schemas.media import MediaIngestionData, MediaIngestionRequest
from media_processor.app.services.media_writer import StoredObject, UploadAttempt, write_media
from media_processor.app.services.message_classifier import classify_mime_type
from media_processor.app.services.message_reconciler import (
    MediaAttachment,
    MessageKey,
    ReconciliationResult,
    reconcile_message,
)
from media_processor.app.services.mime_resolver import MimeSignals, ResolvedMime, resolve_mime
from media_processor.app.services.payload_acquirer import acquire_payload
from media_processor.app.services.storage.base import StorageProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaIngestionResult:
    stored: StoredObject
    resolved: ResolvedMime
    reconciliation: ReconciliationResult

    def to_data(self) -> MediaIngestionData:
        return MediaIngestionData(
            public_url=self.stored.public_url,
            file_name=self.stored.file_name,
            storage_path=self.stored.key,
            size=self.stored.size,
            mime_type=self.resolved.mime_type,
        )


async def process_media(
    request: MediaIngestionRequest, db: Session, storage: StorageProvider
) -> MediaIngestionResult:
    """Acquire, type, store, classify and reconcile one attachment.

    Storage and the messages table commit independently: a failure after the
    upload leaves the object in the bucket without a message linked to it.
    The upload and the database work are blocking and run in the threadpool.
    """
    settings = get_settings()
    key = MessageKey.from_message_id(request.message_id)

    payload = await acquire_payload(request)
    resolved = resolve_mime(
        MimeSignals(
            mime_type=request.mime_type,
            file_name=request.file_name,
            media_url=request.media_url,
            declared_mime_type=payload.declared_mime_type,
            data=payload.data,
        )
    )
    logger.info(
        "Resolved media for message %s as %s (.%s) via %s",
        request.message_id,
        resolved.mime_type,
        resolved.extension,
        resolved.strategy,
    )

    attempt = UploadAttempt.new(
        request.file_name,
        resolved.extension,
        resolved.mime_type,
        prefix=settings.storage_key_prefix,
    )
    stored = await run_in_threadpool(write_media, storage, payload.data, attempt)

    message_type = classify_mime_type(resolved.mime_type)
    attachment = MediaAttachment(
        file_url=stored.public_url,
        file_name=stored.file_name,
        mime_type=resolved.mime_type,
        message_type=message_type,
        storage_path=stored.key,
        size=stored.size,
        stored_content_type=stored.content_type,
        source_url=request.media_url,
        original_file_name=request.file_name,
    )
    reconciliation = await run_in_threadpool(
        reconcile_message,
        db,
        key,
        attachment,
        direction=request.direction,
        conversation_id=request.conversation_id,
        workspace_id=request.workspace_id,
    )
    logger.info(
        "Processed media for message %s",
        request.message_id,
        extra={
            "storage_path": stored.key,
            "message_type": message_type.value,
            "reconciliation": reconciliation.action,
        },
    )
    return MediaIngestionResult(stored=stored, resolved=resolved, reconciliation=reconciliation)
