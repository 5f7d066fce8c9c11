from datetime import datetime
import enum

from sqlalchemy import JSON, Column, DateTime, Enum, Index, String, Text

from media_processor.app.db.base import Base


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    FILE = "file"


class SenderType(str, enum.Enum):
    CONTACT = "contact"
    AGENT = "agent"
    SYSTEM = "system"


class Message(Base):
    """Row of the shared ``messages`` table.

    The table belongs to the CRM backend; this service only attaches media to
    existing rows and, when enough context is given, inserts a missing one.
    """

    __tablename__ = "messages"
    __table_args__ = (Index("ix_messages_external_id", "external_id"),)

    id = Column(String(36), primary_key=True)
    external_id = Column(String(255))
    conversation_id = Column(String(36), index=True)
    workspace_id = Column(String(36), index=True)
    content = Column(Text)
    sender_type = Column(Enum(SenderType, native_enum=False, values_callable=lambda e: [m.value for m in e]))
    message_type = Column(
        Enum(MessageType, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MessageType.TEXT,
    )
    file_url = Column(Text)
    file_name = Column(String(512))
    mime_type = Column(String(255))
    # "metadata" is reserved on declarative classes.
    message_metadata = Column("metadata", JSON)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
