import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from media_processor.app.db import models
from media_processor.app.services.errors import ReconciliationError

logger = logging.getLogger(__name__)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)
PROCESSOR_TAG = "n8n-media-processor"


@dataclass(frozen=True)
class MessageKey:
    """How a message is addressed: our primary key or the messaging system's id."""

    kind: Literal["internal", "external"]
    value: str

    @classmethod
    def from_message_id(cls, message_id: str) -> "MessageKey":
        if UUID_RE.match(message_id):
            # ids are stored lower-case and compared case-sensitively
            return cls("internal", message_id.lower())
        return cls("external", message_id)

    @property
    def column(self):
        return models.Message.id if self.kind == "internal" else models.Message.external_id

    def identity(self) -> Dict[str, Optional[str]]:
        """``id``/``external_id`` for a freshly inserted row."""
        if self.kind == "internal":
            return {"id": self.value, "external_id": None}
        return {"id": str(uuid.uuid4()), "external_id": self.value}


@dataclass(frozen=True)
class MediaAttachment:
    file_url: str
    file_name: str
    mime_type: str
    message_type: models.MessageType
    storage_path: str
    size: int
    stored_content_type: str
    source_url: Optional[str] = None
    original_file_name: Optional[str] = None

    def metadata(self) -> Dict[str, Any]:
        return {
            "source_url": self.source_url,
            "storage_path": self.storage_path,
            "processor": PROCESSOR_TAG,
            "original_file_name": self.original_file_name,
            "file_size": self.size,
            "stored_content_type": self.stored_content_type,
            "processed_at": datetime.now(timezone.utc).isoformat(),
        }


@dataclass(frozen=True)
class ReconciliationResult:
    action: Literal["updated", "inserted", "unlinked", "skipped"]
    message_id: Optional[str] = None


def _update_media(db: Session, key: MessageKey, attachment: MediaAttachment) -> int:
    stmt = (
        update(models.Message)
        .where(key.column == key.value)
        .values(
            {
                models.Message.file_url: attachment.file_url,
                models.Message.file_name: attachment.file_name,
                models.Message.mime_type: attachment.mime_type,
                models.Message.message_type: attachment.message_type,
                models.Message.message_metadata: attachment.metadata(),
                models.Message.updated_at: datetime.utcnow(),
            }
        )
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount or 0


def _insert_message(
    db: Session, key: MessageKey, attachment: MediaAttachment, conversation_id: str, workspace_id: str
) -> models.Message:
    message = models.Message(
        **key.identity(),
        conversation_id=conversation_id,
        workspace_id=workspace_id,
        content=f"[{attachment.message_type.value}]",
        sender_type=models.SenderType.CONTACT,
        message_type=attachment.message_type,
        file_url=attachment.file_url,
        file_name=attachment.file_name,
        mime_type=attachment.mime_type,
        message_metadata=attachment.metadata(),
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def reconcile_message(
    db: Session,
    key: MessageKey,
    attachment: MediaAttachment,
    direction: str = "inbound",
    conversation_id: Optional[str] = None,
    workspace_id: Optional[str] = None,
) -> ReconciliationResult:
    """Attach ``attachment`` to the message addressed by ``key``.

    Outbound media is skipped. A missing row is inserted only when both
    ``conversation_id`` and ``workspace_id`` are known; otherwise the media
    stays stored but unlinked, which is logged and not an error.
    """
    if direction != "inbound":
        logger.info("Skipping reconciliation for %s message %s", direction, key.value)
        return ReconciliationResult("skipped")

    try:
        affected = _update_media(db, key, attachment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update message %s=%s", key.column.key, key.value)
        raise ReconciliationError(f"failed to update message: {exc}") from exc

    if affected:
        logger.info("Attached media to message %s=%s", key.column.key, key.value)
        return ReconciliationResult("updated", key.value)

    if not (conversation_id and workspace_id):
        logger.warning(
            "No message found for %s=%s and no conversation/workspace to create one; media left unlinked",
            key.column.key,
            key.value,
            extra={"storage_path": attachment.storage_path},
        )
        return ReconciliationResult("unlinked")

    try:
        message = _insert_message(db, key, attachment, conversation_id, workspace_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Fallback insert failed for message %s=%s", key.column.key, key.value)
        raise ReconciliationError(f"failed to create message: {exc}") from exc

    logger.info("Created message %s for %s=%s", message.id, key.column.key, key.value)
    return ReconciliationResult("inserted", message.id)
