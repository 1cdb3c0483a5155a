"""
Video processing service using FFmpeg.

This module handles the two transformations the upload flow needs:
1. Rewrite an MP4 so the "moov" atom sits before the media data
   (fast start: playback can begin before the download finishes)
2. Probe the first stream's dimensions and bucket the aspect ratio

Both work on local file paths because FFmpeg works best with file paths.
Every invocation has a deadline. If the deadline passes or the request
is cancelled the child process is killed and reaped, so a stuck ffmpeg
can't pin a worker forever.
"""

import asyncio
import json
import logging
import shutil
import subprocess
from typing import Optional, Protocol

from ...core.media.models import AspectRatio, classify_aspect_ratio

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed"
DEFAULT_TIMEOUT_SECONDS = 300.0


class ProcessingError(Exception):
    """Raised when an external media tool fails or its output is unusable."""
    pass


class VideoProcessor(Protocol):
    """Protocol for video processing operations."""

    async def process_for_fast_start(self, file_path: str) -> str:
        """Write a fast-start copy and return its path."""
        ...

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """Classify the video's orientation."""
        ...


def processed_path_for(file_path: str) -> str:
    """Where the fast-start copy of file_path is written."""
    return f"{file_path}{PROCESSED_SUFFIX}"


async def run_command(
    cmd: list[str],
    timeout: float,
) -> tuple[int, bytes, bytes]:
    """
    Run a command and collect its output, killing it on timeout or cancellation.

    Returns (returncode, stdout, stderr). Raises ProcessingError if the
    binary is missing or the deadline passes.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ProcessingError(f"{cmd[0]} not found")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise ProcessingError(f"{cmd[0]} timed out after {timeout:.0f}s")
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    return proc.returncode, stdout, stderr


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        proc.kill()
        await proc.wait()


class FFmpegVideoProcessor:
    """
    Video processor using FFmpeg/FFprobe.

    Neither operation retries. A non-zero exit is treated as a permanent
    failure for the upload; stderr is logged here and never handed back to
    the client.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize processor with FFmpeg paths.

        Args:
            ffmpeg_path: Path to ffmpeg binary (default assumes it's in PATH)
            ffprobe_path: Path to ffprobe binary
            timeout_seconds: Deadline for each external command
        """
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds

        for binary in (self._ffmpeg, self._ffprobe):
            if shutil.which(binary) is None:
                logger.warning(
                    "Media tool not found on PATH",
                    extra={"binary": binary},
                )

        logger.info("FFmpeg video processor initialized")

    async def process_for_fast_start(self, file_path: str) -> str:
        """
        Move the moov atom to the front of an MP4.

        Streams are copied, not re-encoded. Codec compatibility is left
        to ffmpeg: if it refuses the input, so do we.
        """
        output_path = processed_path_for(file_path)

        cmd = [
            self._ffmpeg,
            "-i", file_path,
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            "-y",  # overwrite
            output_path,
        ]

        returncode, _, stderr = await run_command(cmd, self._timeout)

        if returncode != 0:
            logger.error(
                "ffmpeg fast start failed",
                extra={
                    "file_path": file_path,
                    "returncode": returncode,
                    "stderr": stderr.decode(errors="replace")[-2000:],
                }
            )
            raise ProcessingError(f"ffmpeg exited with status {returncode}")

        logger.debug("Rewrote video for fast start", extra={"output_path": output_path})

        return output_path

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        """
        Probe the first stream with FFprobe and classify its width/height.

        FFprobe outputs JSON with a "streams" list; only the first entry
        is considered, matching what the uploader recorded.
        """
        cmd = [
            self._ffprobe,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            file_path,
        ]

        returncode, stdout, stderr = await run_command(cmd, self._timeout)

        if returncode != 0:
            logger.error(
                "ffprobe failed",
                extra={
                    "file_path": file_path,
                    "returncode": returncode,
                    "stderr": stderr.decode(errors="replace")[-2000:],
                }
            )
            raise ProcessingError(f"ffprobe exited with status {returncode}")

        aspect_ratio = parse_probe_output(stdout)

        logger.debug(
            "Probed video aspect ratio",
            extra={"file_path": file_path, "aspect_ratio": aspect_ratio.value},
        )

        return aspect_ratio


def parse_probe_output(output: bytes) -> AspectRatio:
    """Classify ffprobe -show_streams JSON output."""
    try:
        info = json.loads(output)
    except (ValueError, TypeError) as e:
        raise ProcessingError(f"Could not parse ffprobe output: {e}")

    streams = info.get("streams") if isinstance(info, dict) else None
    if not streams:
        raise ProcessingError("ffprobe reported no streams")

    first = streams[0]
    try:
        width = int(first["width"])
        height = int(first["height"])
        return classify_aspect_ratio(width, height)
    except (KeyError, TypeError, ValueError) as e:
        raise ProcessingError(f"Invalid stream dimensions: {e}")


class MockVideoProcessor:
    """
    Mock video processor for local development without FFmpeg.

    "Processing" copies the file byte for byte; every video reports the
    configured orientation. Useful for testing the API flow without
    actual video processing.
    """

    def __init__(self, aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE):
        self._aspect_ratio = aspect_ratio
        logger.info("Initialized mock video processor")

    async def process_for_fast_start(self, file_path: str) -> str:
        output_path = processed_path_for(file_path)
        await asyncio.to_thread(shutil.copyfile, file_path, output_path)
        return output_path

    async def get_aspect_ratio(self, file_path: str) -> AspectRatio:
        return self._aspect_ratio


def create_video_processor(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
    timeout_seconds: Optional[float] = None,
) -> VideoProcessor:
    """
    Factory function for video processor.

    Args:
        mock_mode: If True, return mock processor (no FFmpeg required)
        ffmpeg_path: Path to ffmpeg binary
        ffprobe_path: Path to ffprobe binary
        timeout_seconds: Deadline for each external command

    Returns:
        VideoProcessor implementation
    """
    if mock_mode:
        return MockVideoProcessor()

    return FFmpegVideoProcessor(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        timeout_seconds=timeout_seconds or DEFAULT_TIMEOUT_SECONDS,
    )
