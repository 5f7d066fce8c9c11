import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./media_processor.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    function_jwt_secret: str | None = Field(None, alias="FUNCTION_JWT_SECRET")
    function_jwt_algorithm: str = Field("HS256", alias="FUNCTION_JWT_ALGORITHM")

    storage_provider: Literal["local", "s3"] = Field("local", alias="STORAGE_PROVIDER")
    storage_bucket: str = Field("whatsapp-media", alias="STORAGE_BUCKET")
    storage_key_prefix: str = Field("messages", alias="STORAGE_KEY_PREFIX")
    storage_public_base_url: str = Field(
        "http://localhost:54321/storage/v1/object/public", alias="STORAGE_PUBLIC_BASE_URL"
    )
    # Comma separated; empty means the bucket accepts any content type.
    storage_allowed_mime_types: str = Field("", alias="STORAGE_ALLOWED_MIME_TYPES")
    local_storage_root: Path = Field(Path("media"), alias="LOCAL_STORAGE_ROOT")

    s3_endpoint_url: str | None = Field(None, alias="S3_ENDPOINT_URL")
    s3_region: str | None = Field(None, alias="S3_REGION")
    s3_force_path_style: bool = Field(False, alias="S3_FORCE_PATH_STYLE")
    aws_access_key_id: str | None = Field(None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(None, alias="AWS_SECRET_ACCESS_KEY")
    aws_session_token: str | None = Field(None, alias="AWS_SESSION_TOKEN")

    media_fetch_user_agent: str = Field(
        "Mozilla/5.0 (compatible; MediaProcessor/1.0; +https://n8n.io)", alias="MEDIA_FETCH_USER_AGENT"
    )
    media_fetch_timeout_seconds: float = Field(30.0, alias="MEDIA_FETCH_TIMEOUT_SECONDS")
    media_fetch_block_private_hosts: bool = Field(True, alias="MEDIA_FETCH_BLOCK_PRIVATE_HOSTS")
    media_max_bytes: int = Field(50 * 1024 * 1024, alias="MEDIA_MAX_BYTES")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def allowed_mime_types(self) -> List[str]:
        return [item.strip().lower() for item in self.storage_allowed_mime_types.split(",") if item.strip()]

    @field_validator("storage_key_prefix")
    @classmethod
    def _strip_prefix_slashes(cls, value: str) -> str:
        return value.strip("/")

    @field_validator("storage_public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
