"""
Shared fixtures for the API tests.

Every test gets its own app wired to fresh in-memory backends: mock
Snowflake, mock storage and the FFmpeg-free processor.
"""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_storage_client, get_video_processor, get_video_repository
from src.config.settings import Settings
from src.infrastructure.auth.tokens import create_access_token
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories.videos import VideoRepository
from src.infrastructure.storage.client import MockStorageClient
from src.infrastructure.video.processor import MockVideoProcessor
from src.main import create_app

JWT_SECRET = "test-secret"


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings(upload_dir):
    return Settings(
        _env_file=None,
        jwt_secret=JWT_SECRET,
        snowflake_mock_mode=True,
        storage_backend="memory",
        asset_locator_mode="signed",
        video_processor_mock_mode=True,
        upload_temp_dir=str(upload_dir),
        s3_bucket="mock-bucket",
    )


@pytest.fixture
def connection():
    return MockSnowflakeConnection()


@pytest.fixture
def repository(connection):
    return VideoRepository(connection)


@pytest.fixture
def storage():
    return MockStorageClient(bucket_name="mock-bucket")


@pytest.fixture
def processor():
    return MockVideoProcessor()


@pytest.fixture
def app(settings, connection, storage, processor):
    app = create_app(settings)
    app.dependency_overrides[get_video_repository] = lambda: VideoRepository(connection)
    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_video_processor] = lambda: processor
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def auth_headers():
    """Build an Authorization header for any user (and optionally any secret)."""
    def build(user_id, secret=JWT_SECRET):
        return {"Authorization": f"Bearer {create_access_token(user_id, secret)}"}
    return build


@pytest.fixture
def headers(auth_headers, user_id):
    return auth_headers(user_id)


@pytest.fixture
def video_id(client, headers):
    """A draft record owned by the default test user."""
    response = client.post("/api/videos", json={"title": "Boat day"}, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]
