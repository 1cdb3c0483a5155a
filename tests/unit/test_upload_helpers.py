"""
Unit tests for the request-side upload helpers.
"""

import os

import pytest
from fastapi import HTTPException

from src.api.uploads import TEMP_FILE_PREFIX, image_extension, require_mp4, temporary_upload
from src.infrastructure.video.processor import processed_path_for


class TestContentTypes:
    """Tests for content type checks."""

    @pytest.mark.parametrize("content_type,extension", [
        ("image/png", "png"),
        ("image/jpeg", "jpeg"),
        ("IMAGE/WebP", "webp"),
        ("image/svg+xml", "svg+xml"),
        ("image/png; charset=binary", "png"),
    ])
    def test_image_extension(self, content_type, extension):
        assert image_extension(content_type) == extension

    @pytest.mark.parametrize("content_type", [
        "application/pdf",
        "image",
        "image/",
        "image/../../etc",
        "text/plain",
    ])
    def test_non_images_rejected(self, content_type):
        with pytest.raises(HTTPException) as exc_info:
            image_extension(content_type)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid file metadata"

    def test_missing_content_type(self):
        with pytest.raises(HTTPException) as exc_info:
            image_extension(None)

        assert exc_info.value.detail == "Improper file metadata"

    def test_only_mp4_video(self):
        require_mp4("video/mp4")

        with pytest.raises(HTTPException) as exc_info:
            require_mp4("video/quicktime")
        assert exc_info.value.status_code == 400


class TestTemporaryUpload:
    """Tests for the per-request staging file."""

    def test_removes_file_and_processed_copy(self, tmp_path):
        with temporary_upload(directory=str(tmp_path)) as staged:
            staged.write(b"data")
            staged.close()
            with open(processed_path_for(staged.name), "wb") as f:
                f.write(b"processed")

            assert os.path.basename(staged.name).startswith(TEMP_FILE_PREFIX)

        assert os.listdir(tmp_path) == []

    def test_removes_file_when_body_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            with temporary_upload(directory=str(tmp_path)):
                raise RuntimeError("boom")

        assert os.listdir(tmp_path) == []
