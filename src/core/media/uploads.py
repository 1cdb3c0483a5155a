"""
Upload workflow for thumbnails and videos.

MediaUploadService owns the steps that happen after a request has been
authenticated and its payload staged locally:
1. (video only) rewrite the MP4 for fast start, probe its orientation
2. push the bytes to the storage backend under a generated key
3. attach a locator to the video record and persist it

It knows nothing about HTTP. Failures surface as the exceptions raised by
the collaborators (processing, storage, repository) and nothing is retried:
a failed upload is terminal for the request and the client retries the
whole thing.
"""

import base64
import logging
import secrets
from typing import BinaryIO, Optional, Protocol, Union
from uuid import UUID

from .locators import LocatorMode, PresignedUrlSource, build_locator, resolve_locator
from .models import AspectRatio, Video

logger = logging.getLogger(__name__)

VIDEO_EXTENSION = "mp4"
VIDEO_CONTENT_TYPE = "video/mp4"
OBJECT_NAME_BYTES = 32


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class MediaProcessor(Protocol):
    """External media tooling: fast-start rewrite and orientation probe."""

    async def process_for_fast_start(self, file_path: str) -> str:
        """Write a fast-start copy next to file_path and return its path."""
        ...

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """Classify the first stream of a local media file."""
        ...


class StorageBackend(PresignedUrlSource, Protocol):
    """Object storage as seen by the upload workflow."""

    async def put_object(
        self,
        key: str,
        body: Union[bytes, BinaryIO],
        content_type: str,
    ) -> None:
        ...


class VideoStore(Protocol):
    """Metadata collaborator for video records."""

    def get_video(self, video_id: UUID) -> Video: ...

    def update_video(self, video: Video) -> None: ...


def new_object_name() -> str:
    """Random URL-safe object name: 32 random bytes, base64url, no padding."""
    raw = secrets.token_bytes(OBJECT_NAME_BYTES)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def video_object_key(aspect_ratio: AspectRatio, name: str) -> str:
    return f"{aspect_ratio.value}/{name}.{VIDEO_EXTENSION}"


def thumbnail_object_key(video_id: UUID, extension: str) -> str:
    return f"{video_id}.{extension}"


# ---------------------------------------------------------------------------
# Upload Service
# ---------------------------------------------------------------------------

class MediaUploadService:
    """
    Stores processed assets and records where they went.

    One storage backend and one locator mode are fixed at construction,
    so every record written through a service instance uses the same
    strategy. Reading works for any locator form (see locators.py).
    """

    def __init__(
        self,
        repository: VideoStore,
        storage: StorageBackend,
        processor: MediaProcessor,
        locator_mode: LocatorMode = "signed",
        cdn_base_url: Optional[str] = None,
        signed_url_expiry_seconds: int = 3600,
    ) -> None:
        self._repository = repository
        self._storage = storage
        self._processor = processor
        self._locator_mode = locator_mode
        self._cdn_base_url = cdn_base_url
        self._signed_url_expiry_seconds = signed_url_expiry_seconds

    async def upload_thumbnail(
        self,
        video: Video,
        body: Union[bytes, BinaryIO],
        extension: str,
        content_type: str,
    ) -> Video:
        """Store thumbnail bytes and point the record at them."""
        key = thumbnail_object_key(video.id, extension)

        locator = build_locator(key, self._locator_mode, self._storage, self._cdn_base_url)

        await self._storage.put_object(key, body, content_type)

        video.thumbnail_url = locator.encode()
        video.touch()
        self._repository.update_video(video)

        logger.info(
            "Thumbnail stored",
            extra={"video_id": str(video.id), "key": key},
        )

        return video

    async def upload_video(self, video: Video, staged_path: str) -> Video:
        """
        Process a staged MP4 and store it.

        The fast-start copy is written next to staged_path with a
        ".processed" suffix. Removing both files is the caller's job.
        """
        processed_path = await self._processor.process_for_fast_start(staged_path)
        aspect_ratio = await self._processor.get_aspect_ratio(processed_path)

        key = video_object_key(aspect_ratio, new_object_name())
        locator = build_locator(key, self._locator_mode, self._storage, self._cdn_base_url)

        with open(processed_path, "rb") as processed:
            await self._storage.put_object(key, processed, VIDEO_CONTENT_TYPE)

        video.video_url = locator.encode()
        video.touch()
        self._repository.update_video(video)

        logger.info(
            "Video stored",
            extra={
                "video_id": str(video.id),
                "key": key,
                "aspect_ratio": aspect_ratio.value,
            },
        )

        return video

    async def resolve_video(self, video: Video) -> Video:
        """
        Copy of the record with locators a client can fetch.

        Bucket/key locators get a freshly signed URL on every call.
        """
        thumbnail_url = await resolve_locator(
            video.thumbnail_url, self._storage, self._signed_url_expiry_seconds
        )
        video_url = await resolve_locator(
            video.video_url, self._storage, self._signed_url_expiry_seconds
        )
        return video.with_locators(thumbnail_url, video_url)
