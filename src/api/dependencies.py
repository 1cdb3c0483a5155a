"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be mocked for testing
- Configuration is centralized
- Resource lifecycle (connections, clients) is managed properly

Route signatures list the video ID dependency before the user
dependency. FastAPI resolves dependencies in declaration order, so a
malformed ID is rejected with 400 before any token work happens.
"""

import logging
from typing import Annotated, Generator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config.settings import Settings, get_settings
from ..core.media.uploads import MediaUploadService
from ..infrastructure.auth.tokens import AuthError, validate_access_token
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.video.processor import VideoProcessor, create_video_processor

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must be 401, not HTTPBearer's default
bearer_scheme = HTTPBearer(auto_error=False)

# Shared instances (mock backends must persist across requests)
_mock_snowflake_connection: Optional[MockSnowflakeConnection] = None
_storage_clients: dict[str, StorageClient] = {}


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------

def parse_video_id(video_id: str) -> UUID:
    """Parse the path's video ID, 400 if it isn't a UUID."""
    try:
        return UUID(video_id)
    except ValueError:
        logger.info("Rejected malformed video ID", extra={"video_id": video_id[:64]})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid video ID",
        )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_user_id(
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> UUID:
    """
    Resolve the bearer token to a user ID.

    Raises 401 if the token is missing or fails validation.
    """
    if credentials is None:
        logger.warning("Request missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Couldn't find JWT",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return validate_access_token(
            credentials.credentials,
            settings.jwt_secret,
            issuer=settings.jwt_issuer,
        )
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Couldn't validate JWT",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoRepository, None, None]:
    """
    Provide VideoRepository with database connection.

    This is a generator function (yields instead of returns) because
    we need to manage the connection lifecycle:
    1. Create connection
    2. Create repository
    3. Yield repository (FastAPI injects it)
    4. Close connection (cleanup after request)

    In mock mode, we reuse the same connection across requests
    so that data persists during the testing session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")

        yield VideoRepository(_mock_snowflake_connection)
    else:
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )

        with create_snowflake_connection(config=config) as conn:
            logger.debug("Created VideoRepository with Snowflake connection")
            yield VideoRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide the storage client for the configured backend.

    One client per backend per process: the in-memory backend must keep
    its objects between requests, and boto3 clients are thread-safe and
    expensive to build.
    """
    backend = settings.storage_backend

    if backend not in _storage_clients:
        config = StorageConfig(
            bucket_name=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            timeout_seconds=settings.storage_timeout_seconds,
        )
        _storage_clients[backend] = create_storage_client(
            backend=backend,
            config=config,
            assets_root=settings.assets_root,
            base_url=settings.base_url,
        )
        logger.info("Created storage client", extra={"backend": backend})

    return _storage_clients[backend]


def get_video_processor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> VideoProcessor:
    return create_video_processor(
        mock_mode=settings.video_processor_mock_mode,
        ffmpeg_path=settings.ffmpeg_path,
        ffprobe_path=settings.ffprobe_path,
        timeout_seconds=settings.processing_timeout_seconds,
    )


def get_upload_service(
    settings: Annotated[Settings, Depends(get_settings)],
    repository: Annotated[VideoRepository, Depends(get_video_repository)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    processor: Annotated[VideoProcessor, Depends(get_video_processor)],
) -> MediaUploadService:
    """
    Provide the upload workflow wired to this request's repository.

    The service is stateless, so we create a new instance per request.
    """
    return MediaUploadService(
        repository=repository,
        storage=storage,
        processor=processor,
        locator_mode=settings.asset_locator_mode,
        cdn_base_url=settings.cdn_base_url,
        signed_url_expiry_seconds=settings.signed_url_expiry_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
VideoIdDep = Annotated[UUID, Depends(parse_video_id)]
CurrentUserDep = Annotated[UUID, Depends(get_current_user_id)]
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
VideoProcessorDep = Annotated[VideoProcessor, Depends(get_video_processor)]
UploadServiceDep = Annotated[MediaUploadService, Depends(get_upload_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
