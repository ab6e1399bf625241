"""
Tests for the OpenCV video file frame source.
"""

import asyncio

import numpy as np
import pytest

from gifit.core.config import JobConfig
from gifit.core.errors import FrameSourceError
from gifit.core.frames import FrameSource, VideoFileFrameSource
from gifit.core.service import GifService, JobState


class TestVideoFileFrameSource:
    def test_reports_dimensions_and_duration(self, video_file):
        with VideoFileFrameSource(video_file) as source:
            assert (source.width, source.height) == (32, 24)
            assert source.duration_ms == pytest.approx(2000, abs=150)
            assert source.info()["width"] == 32
            assert isinstance(source, FrameSource)

    def test_capture_is_resized_rgba(self, video_file):
        with VideoFileFrameSource(video_file) as source:
            asyncio.run(source.seek(500))
            frame = source.capture_frame(16, 12)

        assert frame.shape == (12, 16, 4)
        assert frame.dtype == np.uint8
        assert (frame[:, :, 3] == 255).all()

    def test_later_frames_are_brighter(self, video_file):
        with VideoFileFrameSource(video_file) as source:
            asyncio.run(source.seek(0))
            early = source.capture_frame(8, 6)
            asyncio.run(source.seek(1500))
            late = source.capture_frame(8, 6)

        assert late[:, :, :3].mean() > early[:, :, :3].mean() + 50

    def test_capture_before_seek_fails(self, video_file):
        with VideoFileFrameSource(video_file) as source, pytest.raises(FrameSourceError):
            source.capture_frame(8, 6)

    def test_seek_after_close_fails(self, video_file):
        source = VideoFileFrameSource(video_file)
        source.close()
        with pytest.raises(FrameSourceError, match="closed"):
            asyncio.run(source.seek(0))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            VideoFileFrameSource(tmp_path / "missing.mp4")

    def test_unreadable_file(self, tmp_path):
        bogus = tmp_path / "bogus.mp4"
        bogus.write_bytes(b"not a video")
        with pytest.raises(FrameSourceError, match="Could not open video"):
            VideoFileFrameSource(bogus)

    def test_converts_a_clip_end_to_end(self, video_file):
        config = JobConfig(start=0, end=500, fps=10, width=16, height=12, quality=2)

        with VideoFileFrameSource(video_file) as source:
            job = asyncio.run(GifService(settle_delay_ms=0).create_gif(config, source))

        assert job.state is JobState.COMPLETE
        assert job.frames_written == 5
        assert job.result.data.startswith(b"GIF8")
