"""
GIF generation service.

A ``GifService`` runs at most one ``GifJob`` at a time. A job seeks the frame
source through the requested window one frame interval at a time and, for
every frame, captures pixels, builds a palette, dithers, and hands the
indexed frame to the encoder. Callers follow a job through a ``JobObserver``
or by awaiting ``GifJob.wait``.

Exactly one of ``on_complete``, ``on_aborted`` or ``on_error`` fires per job,
after zero or more ``on_progress`` calls.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from gifit.core.constants import SEEK_SETTLE_DELAY_MS
from gifit.core.dither import floyd_steinberg, map_to_indices, normalize_palette
from gifit.core.encoder import Encoder, GifEncoder
from gifit.core.errors import EncodingError, FrameSourceError, GifError, JobAborted
from gifit.core.quantize import quantize
from gifit.core.seek import seek_to

if TYPE_CHECKING:
    from gifit.core.config import JobConfig
    from gifit.core.frames import FrameSource

logger = logging.getLogger(__name__)


class JobState(enum.Enum):
    IDLE = "idle"
    SEEKING = "seeking"
    CAPTURING = "capturing"
    ENCODING = "encoding"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ABORTED = "aborted"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETE, JobState.ABORTED, JobState.ERRORED)


@dataclass(frozen=True)
class JobResult:
    """The finished GIF and its pixel dimensions."""

    data: bytes
    width: int
    height: int

    def save(self, path: Path | str) -> Path:
        target = Path(path)
        target.write_bytes(self.data)
        return target


@dataclass
class JobObserver:
    """Per-job callbacks. Any of them may be left unset."""

    on_progress: Callable[[float, int], Any] | None = None
    on_frames_complete: Callable[[], Any] | None = None
    on_complete: Callable[[JobResult], Any] | None = None
    on_aborted: Callable[[], Any] | None = None
    on_error: Callable[[str], Any] | None = None


class CancellationToken:
    """Cooperative cancellation flag checked between pipeline stages."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            msg = "GIF job was aborted"
            raise JobAborted(msg)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


@contextmanager
def _frame_stage(error_cls: type[GifError]) -> Iterator[None]:
    try:
        yield
    except JobAborted:
        raise
    except Exception as exc:
        msg = f"Error processing frame: {_describe(exc)}"
        raise error_cls(msg) from exc


class GifJob:
    """
    One run of the frame pipeline.

    Created and scheduled by ``GifService.start``. The job owns its encoder
    and a single scratch pixel buffer for its whole lifetime and drops both
    once it reaches a terminal state.
    """

    def __init__(
        self,
        config: JobConfig,
        source: FrameSource,
        observer: JobObserver | None = None,
        *,
        quantizer: Callable[[np.ndarray, int], Any] = quantize,
        encoder_factory: Callable[[], Encoder] = GifEncoder,
        settle_delay_ms: float = SEEK_SETTLE_DELAY_MS,
    ):
        self.config = config
        self.source = source
        self.observer = observer or JobObserver()
        self.state = JobState.IDLE
        self.progress = 0.0
        self.frames_written = 0
        self.result: JobResult | None = None
        self.error: str | None = None
        self.token = CancellationToken()

        self._quantizer = quantizer
        self._encoder_factory = encoder_factory
        self._settle_delay_ms = settle_delay_ms
        self._encoder: Encoder | None = None
        self._scratch: np.ndarray | None = None
        self._done = asyncio.Event()
        self._task: asyncio.Task | None = None

    async def wait(self) -> JobState:
        """Block until the job is complete, aborted or errored."""
        await self._done.wait()
        return self.state

    def abort(self) -> None:
        """Request cancellation. Does nothing once the job has finished."""
        if self.state.is_terminal:
            return
        logger.info("Aborting GIF job at %d frames", self.frames_written)
        self.token.cancel()
        self._release()
        self._terminate(JobState.ABORTED)

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def schedule(self) -> asyncio.Task:
        """Run the job as a task on the current event loop."""
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def detach(self) -> None:
        """Stop delivering signals to the observer."""
        self.observer = JobObserver()

    async def run(self) -> None:
        try:
            await self._run()
        except JobAborted:
            logger.debug("GIF job stopped at a cancellation checkpoint")
        except GifError as exc:
            self._fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure in GIF job")
            self._fail(f"Unexpected error: {_describe(exc)}")
        except asyncio.CancelledError:
            self.abort()
            raise
        finally:
            self._release()

    async def _run(self) -> None:
        config = self.config
        interval = config.frame_interval_ms

        try:
            self._encoder = self._encoder_factory()
        except Exception as exc:
            msg = f"Failed to initialize GIF encoder: {_describe(exc)}"
            raise EncodingError(msg) from exc
        self._scratch = np.empty((config.height, config.width, 4), dtype=np.uint8)

        timestamp = config.start
        try:
            await self._seek(timestamp)
        except FrameSourceError as exc:
            msg = f"Error during initial video seek: {exc}"
            raise FrameSourceError(msg) from exc

        while True:
            self.token.raise_if_cancelled()
            self._process_frame(timestamp)

            next_timestamp = timestamp + interval
            if next_timestamp >= config.end:
                break

            try:
                await self._seek(next_timestamp)
            except FrameSourceError as exc:
                msg = f"Error seeking next frame: {exc}"
                raise FrameSourceError(msg) from exc
            timestamp = next_timestamp
            # Hand control back to the event loop between frames.
            await asyncio.sleep(0)

        self.token.raise_if_cancelled()
        self._emit("on_frames_complete")
        self.token.raise_if_cancelled()
        self._finalize()

    async def _seek(self, timestamp: float) -> None:
        self.token.raise_if_cancelled()
        self.state = JobState.SEEKING
        await seek_to(self.source, timestamp, self._settle_delay_ms)
        self.token.raise_if_cancelled()

    def _process_frame(self, timestamp: float) -> None:
        config = self.config
        width, height = config.width, config.height
        scratch = self._scratch
        encoder = self._encoder

        self.state = JobState.CAPTURING
        with _frame_stage(FrameSourceError):
            frame = self.source.capture_frame(width, height)
            np.copyto(scratch, np.asarray(frame, dtype=np.uint8).reshape(height, width, 4))

        self.state = JobState.ENCODING
        with _frame_stage(EncodingError):
            palette = normalize_palette(self._quantizer(scratch, config.resolved_max_colors))
            if not config.no_dither:
                floyd_steinberg(scratch, width, height, palette, out=scratch)
            indices = map_to_indices(scratch, width, height, palette)
            encoder.write_frame(indices, width, height, palette, config.frame_interval_ms)

        self.frames_written += 1
        true_duration = config.true_duration_ms
        elapsed = timestamp - config.start
        ratio = elapsed / true_duration if true_duration > 0 else 1.0
        self.progress = min(1.0, max(0.0, ratio))
        logger.debug("Wrote frame %d at %.1f ms", self.frames_written, timestamp)
        self._emit("on_progress", self.progress, self.frames_written)

    def _finalize(self) -> None:
        self.state = JobState.FINALIZING
        encoder = self._encoder
        try:
            encoder.finish()
            data = encoder.getvalue()
        except Exception as exc:
            msg = f"GIF finalization failed: {_describe(exc)}"
            raise EncodingError(msg) from exc

        self.result = JobResult(data=data, width=self.config.width, height=self.config.height)
        logger.info(
            "GIF complete: %d frames, %dx%d, %d bytes",
            self.frames_written,
            self.config.width,
            self.config.height,
            len(data),
        )
        self._terminate(JobState.COMPLETE)

    def _fail(self, message: str) -> None:
        if self.state.is_terminal:
            return
        logger.error("GIF job failed: %s", message)
        self.error = message
        self._release()
        self._terminate(JobState.ERRORED)

    def _release(self) -> None:
        if self._encoder is not None:
            self._encoder.close()
            self._encoder = None
        self._scratch = None

    def _terminate(self, state: JobState) -> None:
        if self.state.is_terminal:
            return
        self.state = state
        self._done.set()
        if state is JobState.COMPLETE:
            self._emit("on_complete", self.result)
        elif state is JobState.ABORTED:
            self._emit("on_aborted")
        else:
            self._emit("on_error", self.error)

    def _emit(self, name: str, *args: object) -> None:
        callback = getattr(self.observer, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("GIF job observer %s raised", name)


class GifService:
    """
    Runs GIF jobs one at a time.

    Starting a job aborts whichever job is still running. Quantizer, encoder
    factory and settle delay are passed through to every job.
    """

    def __init__(
        self,
        *,
        quantizer: Callable[[np.ndarray, int], Any] = quantize,
        encoder_factory: Callable[[], Encoder] = GifEncoder,
        settle_delay_ms: float = SEEK_SETTLE_DELAY_MS,
    ):
        self._quantizer = quantizer
        self._encoder_factory = encoder_factory
        self._settle_delay_ms = settle_delay_ms
        self._job: GifJob | None = None

    @property
    def job(self) -> GifJob | None:
        return self._job

    @property
    def state(self) -> JobState:
        return self._job.state if self._job is not None else JobState.IDLE

    def start(
        self,
        config: JobConfig,
        source: FrameSource,
        observer: JobObserver | None = None,
    ) -> GifJob:
        """
        Validate ``config`` and schedule a new job on the running event loop.

        Raises ``ConfigValidationError`` before anything else happens, so an
        invalid job never touches the frame source.
        """
        logger.info("Creating GIF with config: %s", config)
        config.validate()
        self.abort()

        job = GifJob(
            config,
            source,
            observer,
            quantizer=self._quantizer,
            encoder_factory=self._encoder_factory,
            settle_delay_ms=self._settle_delay_ms,
        )
        self._job = job
        job.schedule()
        return job

    async def create_gif(
        self,
        config: JobConfig,
        source: FrameSource,
        observer: JobObserver | None = None,
    ) -> GifJob:
        """Start a job and return it once it has reached a terminal state."""
        job = self.start(config, source, observer)
        await job.wait()
        return job

    def abort(self) -> None:
        if self._job is not None:
            self._job.abort()

    def destroy(self) -> None:
        """Abort any running job and drop every observer."""
        logger.info("Destroying GifService")
        self.abort()
        if self._job is not None:
            self._job.detach()
            self._job = None


__all__ = [
    "CancellationToken",
    "GifJob",
    "GifService",
    "JobObserver",
    "JobResult",
    "JobState",
]
