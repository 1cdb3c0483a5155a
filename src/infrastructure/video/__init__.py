"""
Video processing infrastructure.

Handles server-side video processing using FFmpeg:
- Fast-start rewrite (moov atom moved to the front of the MP4)
- Aspect ratio probe via FFprobe
"""

from .processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    ProcessingError,
    VideoProcessor,
    create_video_processor,
)

__all__ = [
    "FFmpegVideoProcessor",
    "MockVideoProcessor",
    "ProcessingError",
    "VideoProcessor",
    "create_video_processor",
]
