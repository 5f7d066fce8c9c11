from typing import Literal, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class MediaIngestionRequest(BaseModel):
    """Body posted by the messaging automation.

    camelCase keys come from direct API calls; the snake_case aliases are the
    field names the n8n workflow forwards unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message_id: str = Field(validation_alias=AliasChoices("messageId", "external_id"))
    base64: Optional[str] = Field(default=None, validation_alias=AliasChoices("base64", "content"))
    media_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("mediaUrl", "media_url"))
    file_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("fileName", "file_name"))
    mime_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("mimeType", "mime_type"))
    conversation_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("conversationId", "conversation_id")
    )
    workspace_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("workspaceId", "workspace_id"))
    phone_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("phoneNumber", "phone_number"))
    direction: Literal["inbound", "outbound"] = "inbound"

    @field_validator(
        "message_id",
        "base64",
        "media_url",
        "file_name",
        "mime_type",
        "conversation_id",
        "workspace_id",
        "phone_number",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("direction", mode="before")
    @classmethod
    def _default_direction(cls, value):
        if value is None or value == "":
            return "inbound"
        return value.lower() if isinstance(value, str) else value

    @field_validator("media_url")
    @classmethod
    def _check_media_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("mediaUrl must be an http(s) URL")
        return value

    @model_validator(mode="after")
    def _require_media_source(self) -> "MediaIngestionRequest":
        if not self.base64 and not self.media_url:
            raise ValueError("one of base64 or mediaUrl is required")
        return self

    @property
    def source(self) -> Literal["base64", "url"]:
        return "base64" if self.base64 else "url"


class MediaIngestionData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_url: str = Field(serialization_alias="publicUrl")
    file_name: str = Field(serialization_alias="fileName")
    storage_path: str = Field(serialization_alias="storagePath")
    size: int
    mime_type: str = Field(serialization_alias="mimeType")
    processed_by: str = "n8n"


class MediaIngestionResponse(BaseModel):
    success: bool = True
    data: MediaIngestionData
