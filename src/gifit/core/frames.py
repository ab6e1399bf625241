from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import cv2
import numpy as np

from gifit.core.errors import FrameSourceError

logger = logging.getLogger(__name__)


@runtime_checkable
class FrameSource(Protocol):
    """Something that can be positioned in time and captured as RGBA pixels."""

    width: int
    height: int
    duration_ms: float

    async def seek(self, timestamp_ms: float) -> None:
        """Move the playback position. Raises on failure."""
        ...

    def capture_frame(self, width: int, height: int) -> np.ndarray:
        """Return the current frame as a ``(height, width, 4)`` uint8 array."""
        ...


class VideoFileFrameSource:
    """
    Frame source reading a video file through OpenCV.

    Seeking decodes the frame at the requested position in a worker thread so
    the event loop stays responsive. ``capture_frame`` resamples the decoded
    frame to the requested output size.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(self.path)

        self._capture: cv2.VideoCapture | None = cv2.VideoCapture(str(self.path))
        if not self._capture.isOpened():
            self._capture.release()
            self._capture = None
            msg = f"Could not open video: {self.path.name}"
            raise FrameSourceError(msg)

        self.width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)
        frame_count = float(self._capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
        self.duration_ms = frame_count / fps * 1000 if fps > 0 else 0.0
        self.current_time_ms = 0.0
        self._frame: np.ndarray | None = None

    def __enter__(self) -> VideoFileFrameSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._frame = None

    async def seek(self, timestamp_ms: float) -> None:
        await asyncio.to_thread(self._decode_at, timestamp_ms)

    def _decode_at(self, timestamp_ms: float) -> None:
        if self._capture is None:
            msg = "Video seeking failed: source is closed"
            raise FrameSourceError(msg)

        # Like a media element, positions past the end land on the last frame.
        target = max(0.0, float(timestamp_ms))
        if self.duration_ms:
            target = min(target, self.duration_ms)

        self._capture.set(cv2.CAP_PROP_POS_MSEC, target)
        ok, frame = self._capture.read()
        if not ok or frame is None:
            msg = f"Video seeking failed: no frame at {target:.0f} ms"
            raise FrameSourceError(msg)
        self._frame = frame
        self.current_time_ms = target

    def capture_frame(self, width: int, height: int) -> np.ndarray:
        if self._frame is None:
            msg = "No decoded frame available, seek first"
            raise FrameSourceError(msg)
        resized = cv2.resize(self._frame, (width, height), interpolation=cv2.INTER_AREA)
        return cv2.cvtColor(resized, cv2.COLOR_BGR2RGBA)

    def info(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "duration_ms": self.duration_ms,
        }


__all__ = ["FrameSource", "VideoFileFrameSource"]
