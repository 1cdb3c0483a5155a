"""
Thumbnail upload endpoint.

Thumbnails are small (bounded by MAX_THUMBNAIL_UPLOAD_MB), so the part is
read into memory and handed to storage in one piece. The extension comes
from the part's "image/<subtype>" content type.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from ...core.media.locators import LocatorError
from ...infrastructure.snowflake.repositories.videos import VideoNotFoundError
from ...infrastructure.storage.client import StorageError
from ..dependencies import (
    CurrentUserDep,
    SettingsDep,
    UploadServiceDep,
    VideoIdDep,
    VideoRepositoryDep,
)
from ..uploads import get_upload_field, image_extension, read_form, read_upload
from .videos import VideoResponse, load_owned_video, to_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Upload a thumbnail",
    description="Multipart upload, field 'thumbnail', any image/* content type.",
)
async def upload_thumbnail(
    http_request: Request,
    video_id: VideoIdDep,
    user_id: CurrentUserDep,
    settings: SettingsDep,
    repository: VideoRepositoryDep,
    service: UploadServiceDep,
) -> VideoResponse:
    logger.info(
        "Uploading thumbnail",
        extra={"video_id": str(video_id), "user_id": str(user_id)},
    )

    max_bytes = settings.max_thumbnail_upload_bytes
    form = await read_form(http_request, max_bytes)

    try:
        upload = get_upload_field(form, "thumbnail")
        extension = image_extension(upload.content_type)
        data = await read_upload(upload, max_bytes)
        content_type = upload.content_type
    finally:
        await form.close()

    video = load_owned_video(repository, video_id, user_id)

    try:
        video = await service.upload_thumbnail(video, data, extension, content_type)
    except StorageError as e:
        logger.error(
            "Failed to save thumbnail",
            extra={"video_id": str(video_id), "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save thumbnail data",
        )
    except LocatorError as e:
        logger.error(
            "Failed to build thumbnail locator",
            extra={"video_id": str(video_id), "error": str(e)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate URL for thumbnail access",
        )
    except VideoNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Couldn't find video",
        )

    return await to_response(service, video)
