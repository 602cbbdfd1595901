# tests/conftest.py
import io
import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from axioscan.main import app
from axioscan.api.deps import get_blob_store
from axioscan.config import settings
from axioscan.database import Base, enable_sqlite_foreign_keys, get_db
from axioscan.services import DocumentRepository
from axioscan.storage import LocalBlobStore, SqlRecordStore

SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"

# Page colors far enough apart to tell pages apart after JPEG re-encoding
PALETTE = [
    (200, 40, 40),
    (40, 160, 40),
    (40, 40, 200),
    (220, 200, 30),
    (30, 200, 210),
    (150, 50, 170),
]


def make_image(color=(200, 40, 40), size=(120, 80)) -> Image.Image:
    """Solid page with a white marker in the top-left corner so orientation is visible"""
    image = Image.new("RGB", size, color)
    ImageDraw.Draw(image).rectangle((0, 0, size[0] // 6, size[1] // 6), fill=(255, 255, 255))
    return image


def image_bytes(image: Image.Image, format: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    return buffer.getvalue()


def center_color(image: Image.Image):
    return image.convert("RGB").getpixel((image.width // 2, image.height // 2))


def assert_color_close(actual, expected, tolerance=24):
    assert all(abs(a - e) <= tolerance for a, e in zip(actual, expected)), f"{actual} != {expected}"


@pytest.fixture
def engine():
    """Fresh in-memory database per test; the record store commits and rolls back on its own"""
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool  # Needed for SQLite in-memory database
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def temp_storage_dir():
    """Create temporary storage directory for test files"""
    temp_dir = tempfile.mkdtemp()
    for subdir in ["blobs", "exports"]:
        Path(temp_dir, subdir).mkdir(parents=True, exist_ok=True)
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture(autouse=True)
def override_settings(temp_storage_dir):
    """Override settings for testing"""
    original_storage = settings.STORAGE_PATH
    original_blobs = settings.BLOBS_PATH
    original_exports = settings.EXPORTS_PATH

    settings.STORAGE_PATH = temp_storage_dir
    settings.BLOBS_PATH = temp_storage_dir / "blobs"
    settings.EXPORTS_PATH = temp_storage_dir / "exports"

    yield

    settings.STORAGE_PATH = original_storage
    settings.BLOBS_PATH = original_blobs
    settings.EXPORTS_PATH = original_exports


@pytest.fixture
def owner_id():
    return OWNER_ID


@pytest.fixture
def other_owner_id():
    return OTHER_OWNER_ID


@pytest.fixture
def blob_store(temp_storage_dir):
    return LocalBlobStore(root=temp_storage_dir)


@pytest.fixture
def record_store(db_session):
    return SqlRecordStore(db_session)


@pytest.fixture
def repository(blob_store, record_store):
    return DocumentRepository(blob_store, record_store)


@pytest.fixture
def make_document(repository, owner_id):
    """Factory creating a document whose page i is a solid PALETTE[i] image"""
    async def _make_document(page_count=3, name="Test Document", owner=None, colors=None):
        colors = colors or [PALETTE[i % len(PALETTE)] for i in range(page_count)]
        images = [make_image(color) for color in colors]
        return await repository.create_document(owner or owner_id, name, images)
    return _make_document


@pytest.fixture
def corrupt_blob(temp_storage_dir):
    """Overwrite the stored bytes behind a locator with something undecodable"""
    def _corrupt(locator: str):
        (temp_storage_dir / locator).write_bytes(b"not an image")
    return _corrupt


@pytest.fixture
def client(db_session, blob_store, owner_id):
    """Test client using the test database and blob store, acting as owner_id"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    with TestClient(app) as test_client:
        test_client.headers.update({"X-Owner-Id": owner_id})
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def upload_document(client):
    """Create a document through the API from solid-color PNG uploads"""
    def _upload(page_count=3, name="Test Document", folder_id=None):
        files = [
            ("files", (f"page{i + 1}.png", image_bytes(make_image(PALETTE[i % len(PALETTE)])), "image/png"))
            for i in range(page_count)
        ]
        data = {"name": name}
        if folder_id is not None:
            data["folder_id"] = str(folder_id)
        response = client.post("/api/documents", data=data, files=files)
        assert response.status_code == 201, response.text
        return response.json()
    return _upload
