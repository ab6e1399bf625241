from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import asdict
from pathlib import Path
from typing import Any

from gifit.core.colors import frame_colors
from gifit.core.config import JobConfig
from gifit.core.errors import GifError
from gifit.core.frames import FrameSource, VideoFileFrameSource
from gifit.core.seek import seek_to
from gifit.core.service import GifJob, GifService, JobObserver, JobResult
from gifit.web.utils.files import allocate_export_path
from gifit.web.workers import JOB_LOOP, JOBS

logger = logging.getLogger(__name__)

# One service for the whole worker: a new job aborts the one still running.
SERVICE = GifService()
ACTIVE: dict[str, GifJob] = {}

# Colors are sampled from a small copy of the first frame.
COLOR_SAMPLE_WIDTH = 64

# Submissions are numbered; only the newest one may start a job.
_SEQUENCE_LOCK = threading.Lock()
_latest_sequence = 0


def worker() -> None:
    """
    Run the job event loop forever.

    Meant as the target of a daemon thread. Jobs are scheduled onto the loop
    by ``submit`` and cancelled by ``request_abort``.
    """
    asyncio.set_event_loop(JOB_LOOP)
    try:
        JOB_LOOP.run_forever()
    finally:
        SERVICE.destroy()


def _next_sequence() -> int:
    global _latest_sequence  # noqa: PLW0603
    with _SEQUENCE_LOCK:
        _latest_sequence += 1
        return _latest_sequence


def is_superseded(record: dict[str, Any]) -> bool:
    """Whether a job was queued after this one."""
    return record["sequence"] < _latest_sequence


def new_record(job_id: str, path: Path, config: JobConfig) -> dict[str, Any]:
    """Build the status record for a freshly queued job."""
    return {
        "id": job_id,
        "sequence": _next_sequence(),
        "status": "queued",
        "name": config.name,
        "path": str(path),
        "config": asdict(config),
        "width": config.width,
        "height": config.height,
        "progress": 0.0,
        "frame_count": config.expected_frame_count,
        "processed_frame_count": 0,
        "colors": ["rgb(0,0,0)"] * 4,
        "error": None,
        "result": None,
    }


def submit(job_id: str) -> None:
    """Schedule a queued job on the worker loop."""
    asyncio.run_coroutine_threadsafe(run_job(job_id), JOB_LOOP)


def request_abort(job_id: str) -> None:
    """Ask the worker loop to abort a job. Safe to call from any thread."""
    JOB_LOOP.call_soon_threadsafe(abort_job, job_id)


def abort_job(job_id: str) -> None:
    record = JOBS.get(job_id)
    if record is None:
        return
    job = ACTIVE.get(job_id)
    if job is not None:
        job.abort()
    elif record["status"] in ("queued", "processing"):
        record["status"] = "aborted"


async def _sample_colors(source: FrameSource, config: JobConfig) -> list[str]:
    await seek_to(source, config.start)
    aspect = config.height / config.width
    width = min(COLOR_SAMPLE_WIDTH, config.width)
    height = max(1, round(width * aspect))
    return frame_colors(source.capture_frame(width, height))


def _observer(record: dict[str, Any]) -> JobObserver:
    def on_progress(ratio: float, frames_written: int) -> None:
        record["status"] = "processing"
        record["progress"] = ratio
        record["processed_frame_count"] = frames_written

    def on_complete(result: JobResult) -> None:
        try:
            out_file = result.save(allocate_export_path(record["name"]))
        except OSError as exc:
            logger.error("Could not save GIF for job %s: %s", record["id"], exc)  # noqa: TRY400
            record["status"] = "error"
            record["error"] = f"Could not save GIF: {exc}"
            return
        record["status"] = "complete"
        record["result"] = out_file.name
        record["progress"] = 1.0

    def on_aborted() -> None:
        record["status"] = "aborted"

    def on_error(message: str) -> None:
        record["status"] = "error"
        record["error"] = message

    return JobObserver(
        on_progress=on_progress,
        on_complete=on_complete,
        on_aborted=on_aborted,
        on_error=on_error,
    )


def _supersede(record: dict[str, Any]) -> bool:
    if not is_superseded(record):
        return False
    logger.info("Job %s was replaced by a newer export", record["id"])
    record["status"] = "aborted"
    return True


async def run_job(
    job_id: str,
    source_factory: Callable[[str], FrameSource] = VideoFileFrameSource,
) -> None:
    """
    Convert the video of a queued job and record the outcome in ``JOBS``.

    A job overtaken by a newer submission before it starts is marked aborted
    and never runs.
    """
    record = JOBS[job_id]
    if record["status"] != "queued" or _supersede(record):
        return
    record["status"] = "processing"
    config = JobConfig(**record["config"])

    try:
        source = source_factory(record["path"])
    except (OSError, GifError) as exc:
        record["status"] = "error"
        record["error"] = str(exc)
        return

    with source:
        try:
            record["colors"] = await _sample_colors(source, config)
        except GifError as exc:
            logger.warning("Could not sample colors for job %s: %s", job_id, exc)

        # Aborted while the colors were being sampled.
        if record["status"] != "processing" or _supersede(record):
            return

        job = SERVICE.start(config, source, _observer(record))
        ACTIVE[job_id] = job
        try:
            await job.wait()
            # The source must outlive the job's last pending seek.
            if job.task is not None:
                await asyncio.gather(job.task, return_exceptions=True)
        finally:
            ACTIVE.pop(job_id, None)
    logger.info("Job %s finished with status %s", job_id, record["status"])


__all__ = [
    "SERVICE",
    "abort_job",
    "is_superseded",
    "new_record",
    "request_abort",
    "run_job",
    "submit",
    "worker",
]
