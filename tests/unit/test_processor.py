"""
Unit tests for the FFmpeg wrapper.

The ffmpeg/ffprobe binaries are not required: command construction is
checked by swapping out run_command, and run_command itself is exercised
against the running Python interpreter.
"""

import json
import sys

import pytest

from src.core.media.models import AspectRatio
from src.infrastructure.video import processor as processor_module
from src.infrastructure.video.processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    ProcessingError,
    create_video_processor,
    parse_probe_output,
    processed_path_for,
    run_command,
)


def probe_json(*streams) -> bytes:
    return json.dumps({"streams": list(streams)}).encode()


class FakeRunner:
    """Stands in for run_command and records what would have been run."""

    def __init__(self, returncode=0, stdout=b"", stderr=b""):
        self.calls = []
        self._result = (returncode, stdout, stderr)

    async def __call__(self, cmd, timeout):
        self.calls.append((cmd, timeout))
        return self._result


# ---------------------------------------------------------------------------
# Probe Output Parsing
# ---------------------------------------------------------------------------

class TestParseProbeOutput:
    """Tests for classifying ffprobe JSON."""

    def test_first_stream_decides(self):
        """Audio streams often come second; only the first one counts."""
        output = probe_json(
            {"codec_type": "video", "width": 1080, "height": 1920},
            {"codec_type": "audio"},
        )
        assert parse_probe_output(output) == AspectRatio.PORTRAIT

    def test_landscape(self):
        assert parse_probe_output(probe_json({"width": 1920, "height": 1080})) == AspectRatio.LANDSCAPE

    def test_invalid_json(self):
        with pytest.raises(ProcessingError, match="parse"):
            parse_probe_output(b"not json")

    def test_no_streams(self):
        with pytest.raises(ProcessingError, match="no streams"):
            parse_probe_output(probe_json())

    def test_missing_dimensions(self):
        """An audio-only file has no width/height on its first stream."""
        with pytest.raises(ProcessingError, match="dimensions"):
            parse_probe_output(probe_json({"codec_type": "audio"}))

    def test_zero_height(self):
        with pytest.raises(ProcessingError):
            parse_probe_output(probe_json({"width": 1920, "height": 0}))


# ---------------------------------------------------------------------------
# Subprocess Runner
# ---------------------------------------------------------------------------

class TestRunCommand:
    """Tests for run_command against a real child process."""

    async def test_collects_output_and_status(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stdout.write('out'); sys.stderr.write('err'); sys.exit(3)"],
            timeout=30,
        )

        assert returncode == 3
        assert stdout == b"out"
        assert stderr == b"err"

    async def test_missing_binary(self):
        with pytest.raises(ProcessingError, match="not found"):
            await run_command(["definitely-not-a-real-binary-tubely"], timeout=5)

    async def test_deadline_kills_child(self):
        with pytest.raises(ProcessingError, match="timed out"):
            await run_command(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                timeout=0.5,
            )


# ---------------------------------------------------------------------------
# FFmpeg Processor
# ---------------------------------------------------------------------------

class TestFFmpegVideoProcessor:
    """Tests for the commands the processor builds and how it reads results."""

    async def test_fast_start_command(self, monkeypatch):
        runner = FakeRunner()
        monkeypatch.setattr(processor_module, "run_command", runner)
        processor = FFmpegVideoProcessor("ffmpeg", "ffprobe", timeout_seconds=42)

        output = await processor.process_for_fast_start("/tmp/upload.mp4")

        cmd, timeout = runner.calls[0]
        assert output == "/tmp/upload.mp4.processed"
        assert cmd == [
            "ffmpeg", "-i", "/tmp/upload.mp4",
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            "-y", "/tmp/upload.mp4.processed",
        ]
        assert timeout == 42

    async def test_fast_start_failure_hides_stderr(self, monkeypatch):
        """ffmpeg's stderr is logged, never put in the exception message."""
        runner = FakeRunner(returncode=1, stderr=b"moov atom not found")
        monkeypatch.setattr(processor_module, "run_command", runner)
        processor = FFmpegVideoProcessor()

        with pytest.raises(ProcessingError) as exc_info:
            await processor.process_for_fast_start("/tmp/upload.mp4")

        assert "moov" not in str(exc_info.value)

    async def test_probe_command_and_result(self, monkeypatch):
        runner = FakeRunner(stdout=probe_json({"width": 720, "height": 1280}))
        monkeypatch.setattr(processor_module, "run_command", runner)
        processor = FFmpegVideoProcessor(ffprobe_path="/usr/bin/ffprobe")

        aspect = await processor.get_aspect_ratio("/tmp/upload.mp4.processed")

        cmd, _ = runner.calls[0]
        assert cmd == [
            "/usr/bin/ffprobe", "-v", "error",
            "-print_format", "json",
            "-show_streams",
            "/tmp/upload.mp4.processed",
        ]
        assert aspect == AspectRatio.PORTRAIT

    async def test_probe_failure(self, monkeypatch):
        monkeypatch.setattr(processor_module, "run_command", FakeRunner(returncode=1))
        processor = FFmpegVideoProcessor()

        with pytest.raises(ProcessingError, match="ffprobe"):
            await processor.get_aspect_ratio("/tmp/x.mp4")


# ---------------------------------------------------------------------------
# Mock Processor and Factory
# ---------------------------------------------------------------------------

class TestMockVideoProcessor:
    """Tests for the FFmpeg-free stand-in."""

    async def test_copies_to_processed_path(self, tmp_path):
        source = tmp_path / "upload.mp4"
        source.write_bytes(b"fake mp4 bytes")

        output = await MockVideoProcessor().process_for_fast_start(str(source))

        assert output == processed_path_for(str(source))
        with open(output, "rb") as f:
            assert f.read() == b"fake mp4 bytes"

    async def test_reports_configured_orientation(self, tmp_path):
        processor = MockVideoProcessor(aspect_ratio=AspectRatio.OTHER)
        assert await processor.get_aspect_ratio(str(tmp_path / "x.mp4")) == AspectRatio.OTHER


def test_factory_honours_mock_mode():
    assert isinstance(create_video_processor(mock_mode=True), MockVideoProcessor)
    assert isinstance(create_video_processor(mock_mode=False), FFmpegVideoProcessor)
