"""Pytest configuration and fixtures."""

import io
import os
from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import bizmedia.models  # noqa: F401  (registers tables on Base.metadata)
from bizmedia.api.deps import get_storage_gateway
from bizmedia.config import Settings
from bizmedia.database import Base, get_db
from bizmedia.main import app
from bizmedia.services.media_manager import BusinessMediaManager, UploadedImage
from bizmedia.storage.base import StorageError
from bizmedia.storage.gateway import ObjectStoreGateway
from bizmedia.storage.local_driver import LocalStorageDriver

PUBLIC_BASE_URL = "http://testserver/media/business-images"


class FlakyStorageDriver(LocalStorageDriver):
    """Local driver that records calls and fails on demand."""

    def __init__(self, config):
        super().__init__(config)
        self.uploads: List[str] = []
        self.deletes: List[str] = []
        self.fail_upload_if: Optional[Callable[[str, bytes], bool]] = None
        self.fail_delete_if: Optional[Callable[[str], bool]] = None

    async def upload_file(self, file_path, content, content_type=None):
        self.uploads.append(file_path)
        if self.fail_upload_if and self.fail_upload_if(file_path, content):
            raise StorageError("simulated upload failure")
        return await super().upload_file(file_path, content, content_type)

    async def delete_file(self, file_path):
        self.deletes.append(file_path)
        if self.fail_delete_if and self.fail_delete_if(file_path):
            raise StorageError("simulated delete failure")
        return await super().delete_file(file_path)


@pytest.fixture
def test_engine():
    """Create test database engine."""
    # Use in-memory SQLite for tests, shared across threads
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_db(test_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a temporary local store."""
    return Settings(
        storage_provider="local",
        storage_base_path=str(tmp_path / "store"),
        storage_public_base_url=PUBLIC_BASE_URL,
    )


@pytest.fixture
def storage_driver(test_settings):
    """Local storage driver that can be told to fail."""
    return FlakyStorageDriver(
        {
            "base_path": test_settings.storage_base_path,
            "public_base_url": test_settings.storage_public_base_url,
        }
    )


@pytest.fixture
def gateway(storage_driver):
    return ObjectStoreGateway(storage_driver)


@pytest.fixture
def manager(test_db, gateway, test_settings):
    return BusinessMediaManager(test_db, gateway, test_settings)


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Build encoded image bytes.

    ``noise=True`` fills the image with random pixels, which barely
    compress, to get large files from modest dimensions.
    """

    def _make(width=64, height=48, fmt="PNG", noise=False, color=(200, 40, 40), **save_kwargs) -> bytes:
        if noise:
            img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        else:
            img = Image.new("RGB", (width, height), color)
        buffer = io.BytesIO()
        img.save(buffer, format=fmt, **save_kwargs)
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_upload(make_image) -> Callable[..., UploadedImage]:
    def _make(filename="photo.png", content_type="image/png", content=None, **image_kwargs) -> UploadedImage:
        if content is None:
            content = make_image(**image_kwargs)
        return UploadedImage(filename=filename, content_type=content_type, content=content)

    return _make


@pytest.fixture
def client(test_db, gateway):
    """Create a test client with database and storage overrides."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
