from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from media_processor.app.core.config import get_settings
from media_processor.app.db.session import get_db
from media_processor.app.services.storage.base import StorageProvider
from media_processor.app.services.storage.local import LocalStorageProvider
from media_processor.app.storage.object_store import S3StorageProvider

security = HTTPBearer(auto_error=False)


def verify_invocation(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Optional[dict]:
    """Require a JWT signed with FUNCTION_JWT_SECRET when one is configured."""
    settings = get_settings()
    if not settings.function_jwt_secret:
        return None
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return jwt.decode(
            credentials.credentials,
            settings.function_jwt_secret,
            algorithms=[settings.function_jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_db_session(db: Session = Depends(get_db)) -> Session:
    return db


def get_storage_provider() -> StorageProvider:
    settings = get_settings()
    if settings.storage_provider == "s3":
        return S3StorageProvider(settings.storage_bucket, settings.storage_public_base_url)
    return LocalStorageProvider(
        settings.local_storage_root,
        bucket=settings.storage_bucket,
        public_base_url=settings.storage_public_base_url,
        allowed_mime_types=settings.allowed_mime_types,
    )
