"""
Shared fakes for the GIF pipeline tests.
"""

import asyncio

import numpy as np
import pytest

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


class FakeFrameSource:
    """Frame source producing uniform frames, with scriptable seeks."""

    def __init__(self, color=(128, 128, 128), fail_at=None, width=64, height=36):
        self.width = width
        self.height = height
        self.duration_ms = 10_000.0
        self.color = color
        self.fail_at = set(fail_at or ())
        self.capture_error = None
        self.seeks = []
        self.captures = []
        self.gates = {}
        self.seek_started = {}
        self.current = None
        self.closed = False

    def gate(self, timestamp_ms):
        """Block the seek to ``timestamp_ms`` until the returned event is set."""
        gate = asyncio.Event()
        self.gates[timestamp_ms] = gate
        self.seek_started[timestamp_ms] = asyncio.Event()
        return gate

    async def seek(self, timestamp_ms):
        self.seeks.append(timestamp_ms)
        if timestamp_ms in self.seek_started:
            self.seek_started[timestamp_ms].set()
        if timestamp_ms in self.gates:
            await self.gates[timestamp_ms].wait()
        if timestamp_ms in self.fail_at:
            msg = f"cannot seek to {timestamp_ms}"
            raise RuntimeError(msg)
        self.current = timestamp_ms

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def capture_frame(self, width, height):
        if self.capture_error is not None:
            raise self.capture_error
        self.captures.append((self.current, width, height))
        color = self.color(self.current) if callable(self.color) else self.color
        frame = np.empty((height, width, 4), dtype=np.uint8)
        frame[:, :, :3] = color
        frame[:, :, 3] = 255
        return frame


class FakeEncoder:
    """Encoder recording every call instead of writing a GIF."""

    def __init__(self):
        self.frames = []
        self.finished = False
        self.closed = 0
        self.finish_error = None
        self.write_error = None

    def write_frame(self, indices, width, height, palette, delay_ms):
        if self.write_error is not None:
            raise self.write_error
        self.frames.append(
            {
                "indices": np.array(indices, copy=True),
                "width": width,
                "height": height,
                "palette": list(palette),
                "delay_ms": delay_ms,
            },
        )

    def finish(self):
        if self.finish_error is not None:
            raise self.finish_error
        self.finished = True

    def getvalue(self):
        return b"GIF89a-fake"

    def close(self):
        self.closed += 1


class FakeQuantizer:
    """Quantizer returning a fixed palette and remembering the requested size."""

    def __init__(self, palette=(BLACK, WHITE)):
        self.palette = list(palette)
        self.requested = []
        self.error = None

    def __call__(self, pixels, max_colors):
        if self.error is not None:
            raise self.error
        self.requested.append(max_colors)
        return self.palette


class SignalRecorder:
    """Collects every job signal in the order it fired."""

    def __init__(self):
        self.events = []

    def observer(self):
        from gifit.core.service import JobObserver

        return JobObserver(
            on_progress=lambda ratio, frames: self.events.append(("progress", ratio, frames)),
            on_frames_complete=lambda: self.events.append(("frames_complete",)),
            on_complete=lambda result: self.events.append(("complete", result)),
            on_aborted=lambda: self.events.append(("aborted",)),
            on_error=lambda message: self.events.append(("error", message)),
        )

    def named(self, name):
        return [event for event in self.events if event[0] == name]

    @property
    def terminal(self):
        return [e for e in self.events if e[0] in ("complete", "aborted", "error")]


@pytest.fixture
def source():
    return FakeFrameSource()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def quantizer():
    return FakeQuantizer()


@pytest.fixture
def signals():
    return SignalRecorder()


@pytest.fixture
def service(encoder, quantizer):
    from gifit.core.service import GifService

    return GifService(
        quantizer=quantizer,
        encoder_factory=lambda: encoder,
        settle_delay_ms=0,
    )


@pytest.fixture
def video_file(tmp_path):
    """A short MJPG clip whose frames brighten every 100 ms, or a skip."""
    cv2 = pytest.importorskip("cv2")

    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10, (32, 24))
    if not writer.isOpened():
        pytest.skip("OpenCV cannot write MJPG video here")
    for i in range(20):
        frame = np.full((24, 32, 3), min(255, i * 12), dtype=np.uint8)
        writer.write(frame)
    writer.release()
    return path
