"""
Domain models for uploaded media.

These models have no dependencies on external frameworks, databases, or
APIs. A Video is the metadata record the upload handlers attach assets to;
the actual bytes live wherever the storage backend puts them.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
ASPECT_RATIO_TOLERANCE = 0.01


class AspectRatio(Enum):
    """
    Orientation bucket for a processed video.

    The value becomes the first segment of the object key, so videos are
    grouped by orientation in the bucket.
    """
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


def classify_ratio(ratio: float) -> AspectRatio:
    """Bucket a width/height ratio; 16:9 and 9:16 match within the tolerance."""
    if math.fabs(ratio - LANDSCAPE_RATIO) < ASPECT_RATIO_TOLERANCE:
        return AspectRatio.LANDSCAPE
    if math.fabs(ratio - PORTRAIT_RATIO) < ASPECT_RATIO_TOLERANCE:
        return AspectRatio.PORTRAIT
    return AspectRatio.OTHER


def classify_aspect_ratio(width: int, height: int) -> AspectRatio:
    """Classify stream dimensions. Non-positive dimensions are rejected."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid video dimensions: {width}x{height}")
    return classify_ratio(width / height)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Video:
    """
    Metadata record for one video and its thumbnail.

    thumbnail_url and video_url hold asset locators (see locators.py),
    which may need resolving before they are shown to a client. Both are
    None until the matching upload completes.
    """
    user_id: UUID
    title: str
    description: str = ""
    id: UUID = field(default_factory=uuid4)
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise ValueError("Video title cannot be empty")

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def touch(self) -> None:
        """Mark the record as modified."""
        self.updated_at = _utcnow()

    def with_locators(
        self,
        thumbnail_url: Optional[str],
        video_url: Optional[str],
    ) -> "Video":
        """Copy of the record with different locator values. The original is untouched."""
        return replace(self, thumbnail_url=thumbnail_url, video_url=video_url)
