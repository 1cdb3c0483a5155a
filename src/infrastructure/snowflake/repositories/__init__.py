"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .videos import VideoNotFoundError, VideoRepository

__all__ = ["VideoNotFoundError", "VideoRepository"]
