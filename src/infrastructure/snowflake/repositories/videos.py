"""
Snowflake repository for video records.

This module implements the repository pattern for video metadata.
The repository:
1. Translates between the Video domain model and table rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the application layer

Writes are last-writer-wins: update_video overwrites the whole row with
no version check, so two concurrent uploads for the same video race and
the later commit sticks.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID

from src.core.media.models import Video


logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "TUBELY"
    schema: str = "MEDIA"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class VideoNotFoundError(Exception):
    """Raised when a requested video doesn't exist."""
    pass


VIDEO_COLUMNS = """
    video_id,
    user_id,
    title,
    description,
    thumbnail_url,
    video_url,
    created_at,
    updated_at
"""


class VideoRepository:
    """
    Repository for video record persistence.

    Each method corresponds to a use case the application needs:
    - create_video: Persist a new draft record
    - get_video: Load a record by ID
    - list_videos_for_user: A user's records, newest first
    - update_video: Overwrite a record (locators, title, description)
    - delete_video: Remove a record
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_video(self, video: Video) -> Video:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO videos ({VIDEO_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                str(video.id),
                str(video.user_id),
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.created_at,
                video.updated_at,
            ))
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to create video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

        return video

    def get_video(self, video_id: UUID) -> Video:
        """Load a video record by ID."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {VIDEO_COLUMNS}
                FROM videos
                WHERE video_id = %s
            """, (str(video_id),))

            row = cursor.fetchone()
            if not row:
                raise VideoNotFoundError(f"Video {video_id} not found")

            return self._build_video_from_row(row)

        finally:
            cursor.close()

    def list_videos_for_user(self, user_id: UUID) -> list[Video]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {VIDEO_COLUMNS}
                FROM videos
                WHERE user_id = %s
                ORDER BY created_at DESC
            """, (str(user_id),))

            return [self._build_video_from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def update_video(self, video: Video) -> None:
        """
        Overwrite the mutable columns of an existing record.

        Raises VideoNotFoundError if the row is gone (deleted mid-upload).
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE videos SET
                    title = %s,
                    description = %s,
                    thumbnail_url = %s,
                    video_url = %s,
                    updated_at = %s
                WHERE video_id = %s
            """, (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.updated_at,
                str(video.id),
            ))

            if cursor.rowcount == 0:
                raise VideoNotFoundError(f"Video {video.id} not found")

            self._conn.commit()

        except VideoNotFoundError:
            raise
        except Exception as e:
            logger.error(
                "Failed to update video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def delete_video(self, video_id: UUID) -> None:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM videos
                WHERE video_id = %s
            """, (str(video_id),))

            if cursor.rowcount == 0:
                raise VideoNotFoundError(f"Video {video_id} not found")

            self._conn.commit()

        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_video_from_row(self, row) -> Video:
        """Build Video from a SELECT row (column order as VIDEO_COLUMNS)."""
        return Video(
            id=UUID(str(row[0])),
            user_id=UUID(str(row[1])),
            title=row[2],
            description=row[3] or "",
            thumbnail_url=row[4],
            video_url=row[5],
            created_at=self._as_datetime(row[6]),
            updated_at=self._as_datetime(row[7]),
        )

    def _as_datetime(self, value) -> datetime:
        """Snowflake may hand back naive TIMESTAMP_NTZ values; treat them as UTC."""
        if value is None:
            return datetime.now(timezone.utc)
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
