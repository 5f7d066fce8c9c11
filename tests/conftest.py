import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from media_processor.app.api.deps import get_db_session, get_storage_provider
from media_processor.app.core.config import get_settings
from media_processor.app.db import models  # noqa: F401
from media_processor.app.db.base import Base
from media_processor.app.main import create_app
from media_processor.app.services.storage.local import LocalStorageProvider

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
OGG_BYTES = b"OggS\x00\x02\x00\x00\x00\x00\x00\x00\x00\x00opus-voice-note"

_real_async_client = httpx.AsyncClient


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(bind=connection, autocommit=False, autoflush=False, future=True)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(tmp_path, bucket="whatsapp-media", public_base_url="https://project.supabase.co/storage/v1/object/public")


@pytest.fixture
def app(db_session, storage):
    app = create_app()

    def override_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_storage_provider] = lambda: storage
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def settings_env(monkeypatch):
    """Set environment variables and rebuild the cached settings."""

    def _apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        get_settings.cache_clear()
        return get_settings()

    yield _apply
    get_settings.cache_clear()


@pytest.fixture
def mock_remote(monkeypatch):
    """Route every ``httpx.AsyncClient`` through a MockTransport.

    Returns the list of captured requests.
    """
    captured = []

    def _install(handler):
        def recording_handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler)

        def client_factory(*args, **kwargs):
            kwargs["transport"] = transport
            return _real_async_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)
        return captured

    return _install


def make_token(secret: str, role: str = "service_role") -> str:
    return jwt.encode({"role": role, "iss": "supabase"}, secret, algorithm="HS256")


@pytest.fixture
def token_for():
    return make_token
