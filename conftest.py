import io
import os

# Settings are read at import time, so the test environment must be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AWS_BUCKET"] = "citizenx-test"
os.environ["STORAGE_PUBLIC_URL"] = "https://citizenx-test.s3.eu-west-3.amazonaws.com"
for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN", "STORAGE_ENDPOINT"):
    os.environ.pop(name, None)

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from citizen_reports.infrastructure.database import Base, get_db
from citizen_reports.infrastructure import models
from citizen_reports.infrastructure.storage import StorageError, get_storage_service
from citizen_reports.core.config import settings
from citizen_reports.domain.services.security import create_access_token, hash_password
from citizen_reports.main import app


class FakeStorageService:
    """Records uploads instead of calling the bucket."""

    def __init__(self):
        self.uploads = []
        self.error = None

    async def upload_file(self, content: bytes, filename: str) -> str:
        if self.error:
            raise StorageError(self.error)
        self.uploads.append((filename, content))
        return f"{settings.bucket_host}/{filename}"


def png_bytes(size=(4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_storage():
    return FakeStorageService()


@pytest.fixture(scope="function")
def client(test_db, fake_storage):
    """Create a test client with database and storage overrides."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_no_db():
    """Create a test client without database override for basic endpoint tests."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def make_user(test_db):
    """Factory inserting a user with a known password ("password123")."""
    counter = {"n": 0}

    def _make_user(**overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "fullname": f"Test User {n}",
            "username": f"user{n}",
            "email": f"user{n}@example.com",
            "hashed_password": hash_password("password123"),
            "lga_name": "Ikeja",
            "state_name": "Lagos",
        }
        fields.update(overrides)
        user = models.User(**fields)
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user id."""
    def _auth_headers(user_id):
        token = create_access_token(data={"id": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def png_image():
    return png_bytes()
