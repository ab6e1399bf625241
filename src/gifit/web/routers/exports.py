import uuid
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse

from gifit.core.config import JobConfig
from gifit.core.constants import (
    DEFAULT_DURATION_MS,
    DEFAULT_FPS,
    DEFAULT_HEIGHT,
    DEFAULT_NAME,
    DEFAULT_QUALITY,
    DEFAULT_WIDTH,
    MAX_QUALITY,
)
from gifit.core.errors import ConfigValidationError
from gifit.web.constants import EXPORT_FOLDER, MAX_DIMENSION, MAX_FPS
from gifit.web.utils.files import (
    list_exported_files,
    resolve_export_file,
    resolve_uploaded_file,
)
from gifit.web.workers import JOBS
from gifit.web.workers.gif import new_record, request_abort, submit

router = APIRouter(
    prefix="/exports",
    tags=["exports"],
)

_STATUS_FIELDS = (
    "status",
    "name",
    "width",
    "height",
    "progress",
    "frame_count",
    "processed_frame_count",
    "colors",
    "error",
    "result",
)


def _get_job(job_id: str) -> dict:
    job = JOBS.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return job


@router.post("/gif/{filename}")
async def export_gif(  # noqa: PLR0913
    filename: str,
    start: Annotated[float, Query(ge=0.0)] = 0.0,
    end: Annotated[float | None, Query(gt=0.0)] = None,
    fps: Annotated[float, Query(gt=0.0, le=MAX_FPS)] = DEFAULT_FPS,
    width: Annotated[int, Query(gt=0, le=MAX_DIMENSION)] = DEFAULT_WIDTH,
    height: Annotated[int, Query(gt=0, le=MAX_DIMENSION)] = DEFAULT_HEIGHT,
    quality: Annotated[float, Query(ge=1, le=MAX_QUALITY)] = DEFAULT_QUALITY,
    max_colors: Annotated[int | None, Query()] = None,
    no_dither: Annotated[bool, Query()] = False,
    name: Annotated[str, Query(max_length=100)] = DEFAULT_NAME,
) -> dict:
    """
    Queue a GIF export of ``[start, end)`` (milliseconds) of an uploaded video.

    Returns a job id for polling. Starting an export aborts the one currently
    running. Invalid settings are rejected with 400 before anything is queued.
    """
    config = JobConfig(
        start=start,
        end=start + DEFAULT_DURATION_MS if end is None else end,
        width=width,
        height=height,
        fps=fps,
        quality=quality,
        max_colors=max_colors,
        no_dither=no_dither,
        name=name,
    )
    try:
        config.validate()
    except ConfigValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    path = resolve_uploaded_file(filename)

    job_id = uuid.uuid4().hex
    JOBS[job_id] = new_record(job_id, path, config)
    submit(job_id)
    return {"job_id": job_id, "status": "queued"}


@router.get("/gif/status/{job_id}")
async def export_gif_status(job_id: str) -> dict:
    job = _get_job(job_id)
    return {"job_id": job_id} | {field: job.get(field) for field in _STATUS_FIELDS}


@router.post("/gif/abort/{job_id}")
async def export_gif_abort(job_id: str) -> dict:
    """Abort a queued or running export. Finished exports are left alone."""
    job = _get_job(job_id)
    request_abort(job_id)
    return {"job_id": job_id, "status": job["status"]}


@router.get("/gif/result/{job_id}")
async def export_gif_result(job_id: str) -> FileResponse:
    job = _get_job(job_id)
    if job.get("status") != "complete":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Job not ready",
        )
    result_name = job.get("result")
    if not result_name:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Result missing",
        )
    result_path = EXPORT_FOLDER / result_name
    return FileResponse(result_path, media_type="image/gif", filename=result_name)


@router.get("/list")
async def exports_list() -> dict:
    """Return a JSON listing of files in the exports folder."""
    return {"exports": list_exported_files()}


@router.get("/{filename:path}")
async def export_file(filename: str) -> FileResponse:
    """Serve a generated GIF from the exports folder."""
    target = resolve_export_file(filename)
    return FileResponse(target, media_type="image/gif", filename=Path(target).name)


__all__ = ["router"]
