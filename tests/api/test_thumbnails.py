"""
API tests for POST /api/thumbnails/{video_id}.
"""

from uuid import uuid4

from src.api.dependencies import get_storage_client
from src.infrastructure.storage.client import MockStorageClient, StorageError

PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image"


def thumbnail_file(content_type="image/png", data=PNG_BYTES):
    return {"thumbnail": ("thumb", data, content_type)}


class BrokenStorage(MockStorageClient):
    async def put_object(self, key, body, content_type):
        raise StorageError("Upload failed: access denied")


class TestThumbnailUpload:
    """Tests for the thumbnail upload endpoint."""

    def test_png_upload(self, client, headers, storage, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file(),
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == video_id
        assert storage.objects[f"{video_id}.png"] == (PNG_BYTES, "image/png")
        assert body["thumbnail_url"].startswith(f"mock://mock-bucket/{video_id}.png?")

    def test_extension_follows_content_type(self, client, headers, storage, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file("image/jpeg"),
            headers=headers,
        )

        assert response.status_code == 200
        assert f"{video_id}.jpeg" in storage.objects

    def test_non_image_rejected(self, client, headers, storage, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file("application/pdf"),
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file metadata"
        assert storage.objects == {}

    def test_missing_field(self, client, headers, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files={"image": ("thumb", PNG_BYTES, "image/png")},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Couldn't read file data"

    def test_too_large(self, client, headers, settings, video_id):
        data = b"x" * (settings.max_thumbnail_upload_bytes + 1)

        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file(data=data),
            headers=headers,
        )

        assert response.status_code == 400

    def test_bad_video_id_is_checked_before_auth(self, client):
        """No token at all, yet the malformed ID is what gets reported."""
        response = client.post("/api/thumbnails/not-a-uuid", files=thumbnail_file())

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid video ID"

    def test_missing_token(self, client, video_id):
        response = client.post(f"/api/thumbnails/{video_id}", files=thumbnail_file())

        assert response.status_code == 401
        assert response.json()["detail"] == "Couldn't find JWT"

    def test_token_signed_with_wrong_secret(self, client, auth_headers, user_id, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file(),
            headers=auth_headers(user_id, secret="wrong-secret"),
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Couldn't validate JWT"

    def test_unknown_video(self, client, headers):
        response = client.post(
            f"/api/thumbnails/{uuid4()}",
            files=thumbnail_file(),
            headers=headers,
        )

        assert response.status_code == 404

    def test_not_owner(self, client, auth_headers, storage, video_id):
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file(),
            headers=auth_headers(uuid4()),
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "User is not owner of video"
        assert storage.objects == {}

    def test_storage_failure(self, app, client, headers, video_id):
        app.dependency_overrides[get_storage_client] = lambda: BrokenStorage(bucket_name="mock-bucket")

        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file(),
            headers=headers,
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save thumbnail data"

    def test_thumbnail_survives_on_read(self, client, headers, video_id):
        client.post(f"/api/thumbnails/{video_id}", files=thumbnail_file(), headers=headers)

        response = client.get(f"/api/videos/{video_id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["thumbnail_url"].startswith(f"mock://mock-bucket/{video_id}.png?")

    def test_content_type_is_checked_before_ownership(self, client, auth_headers, storage, video_id):
        """A non-image is a 400 for anyone, owner or not."""
        response = client.post(
            f"/api/thumbnails/{video_id}",
            files=thumbnail_file("application/pdf"),
            headers=auth_headers(uuid4()),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file metadata"
        assert storage.objects == {}
