"""
Video record and video upload endpoints.

Flow for a video:
1. Client creates a draft record: POST /api/videos
2. Client uploads the MP4: POST /api/videos/{video_id}
   - staged to a temp file
   - rewritten with ffmpeg so the moov atom comes first (fast start)
   - probed with ffprobe and filed under landscape/, portrait/ or other/
   - pushed to storage, locator saved on the record
3. Client reads the record: GET /api/videos/{video_id}
   - bucket/key locators come back as freshly signed URLs on every read

Errors are terminal for the request. Nothing here retries; the client
re-uploads.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from ...core.media.locators import LocatorError
from ...core.media.models import Video
from ...infrastructure.snowflake.repositories.videos import VideoNotFoundError
from ...infrastructure.storage.client import StorageError
from ...infrastructure.video.processor import ProcessingError
from ..dependencies import (
    CurrentUserDep,
    SettingsDep,
    UploadServiceDep,
    VideoIdDep,
    VideoRepositoryDep,
)
from ..uploads import get_upload_field, read_form, require_mp4, stage_upload, temporary_upload

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateVideoRequest(BaseModel):
    """Draft video record. Assets are attached by the upload endpoints."""
    title: str = Field(min_length=1, max_length=200, description="Video title")
    description: str = Field(default="", max_length=5000, description="Video description")


class VideoResponse(BaseModel):
    """A video record with client-usable asset URLs."""
    id: UUID = Field(description="Video identifier")
    user_id: UUID = Field(description="Owner")
    title: str
    description: str
    thumbnail_url: Optional[str] = Field(None, description="Thumbnail URL, if uploaded")
    video_url: Optional[str] = Field(None, description="Video URL, if uploaded")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def load_owned_video(repository, video_id: UUID, user_id: UUID) -> Video:
    """
    Fetch a record and check the caller owns it.

    404 if it doesn't exist. A non-owner gets 401, not 403; clients
    depend on that status.
    """
    try:
        video = repository.get_video(video_id)
    except VideoNotFoundError:
        logger.info(
            "Video not found",
            extra={"video_id": str(video_id), "user_id": str(user_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Couldn't find video",
        )

    if not video.is_owned_by(user_id):
        logger.warning(
            "User is not owner of video",
            extra={"video_id": str(video_id), "user_id": str(user_id)},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is not owner of video",
        )

    return video


async def to_response(service, video: Video) -> VideoResponse:
    """Resolve locators and build the response body."""
    try:
        resolved = await service.resolve_video(video)
    except (StorageError, LocatorError) as e:
        logger.error(
            "Failed to generate URL for video access",
            extra={"video_id": str(video.id), "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate URL for video access",
        )

    return VideoResponse.from_video(resolved)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a video record",
)
async def create_video(
    request: CreateVideoRequest,
    user_id: CurrentUserDep,
    repository: VideoRepositoryDep,
    service: UploadServiceDep,
) -> VideoResponse:
    title = request.title.strip()
    if not title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title cannot be empty",
        )

    video = Video(user_id=user_id, title=title, description=request.description)
    repository.create_video(video)

    logger.info(
        "Video record created",
        extra={"video_id": str(video.id), "user_id": str(user_id)},
    )

    return await to_response(service, video)


@router.get(
    "",
    response_model=list[VideoResponse],
    summary="List my videos",
)
async def list_videos(
    user_id: CurrentUserDep,
    repository: VideoRepositoryDep,
    service: UploadServiceDep,
) -> list[VideoResponse]:
    videos = repository.list_videos_for_user(user_id)
    return [await to_response(service, video) for video in videos]


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Get a video",
    description="Asset URLs stored as bucket/key pairs are returned as fresh signed URLs.",
)
async def get_video(
    video_id: VideoIdDep,
    user_id: CurrentUserDep,
    repository: VideoRepositoryDep,
    service: UploadServiceDep,
) -> VideoResponse:
    video = load_owned_video(repository, video_id, user_id)
    return await to_response(service, video)


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a video record",
)
async def delete_video(
    video_id: VideoIdDep,
    user_id: CurrentUserDep,
    repository: VideoRepositoryDep,
) -> Response:
    load_owned_video(repository, video_id, user_id)

    try:
        repository.delete_video(video_id)
    except VideoNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Couldn't find video",
        )

    logger.info("Video record deleted", extra={"video_id": str(video_id)})

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Upload a video",
    description=(
        "Multipart upload, field 'video', content type video/mp4. The file is "
        "rewritten for fast start, classified by aspect ratio and stored."
    ),
)
async def upload_video(
    http_request: Request,
    video_id: VideoIdDep,
    user_id: CurrentUserDep,
    settings: SettingsDep,
    repository: VideoRepositoryDep,
    service: UploadServiceDep,
) -> VideoResponse:
    video = load_owned_video(repository, video_id, user_id)

    logger.info(
        "Uploading video",
        extra={"video_id": str(video_id), "user_id": str(user_id)},
    )

    max_bytes = settings.max_video_upload_bytes
    form = await read_form(http_request, max_bytes)

    try:
        upload = get_upload_field(form, "video")
        require_mp4(upload.content_type)

        with temporary_upload(suffix=".mp4", directory=settings.upload_temp_dir) as staged:
            try:
                size = await stage_upload(upload, staged, max_bytes)
            except OSError as e:
                logger.error(
                    "Failed to stage upload",
                    extra={"video_id": str(video_id), "error": str(e)},
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to upload file",
                )

            # ffmpeg reads the file by path; our handle must be flushed and closed
            staged.close()

            logger.debug(
                "Staged video upload",
                extra={"video_id": str(video_id), "size_bytes": size},
            )

            try:
                video = await service.upload_video(video, staged.name)
            except ProcessingError as e:
                logger.error(
                    "Failed to process video",
                    extra={"video_id": str(video_id), "error": str(e)},
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to process video",
                )
            except StorageError as e:
                logger.error(
                    "Failed to store video file",
                    extra={"video_id": str(video_id), "error": str(e)},
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to store video file",
                )
            except LocatorError as e:
                logger.error(
                    "Failed to build video locator",
                    extra={"video_id": str(video_id), "error": str(e)},
                )
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to generate URL for video access",
                )
            except VideoNotFoundError:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Couldn't find video",
                )
    finally:
        await form.close()

    return await to_response(service, video)
