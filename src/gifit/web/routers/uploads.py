from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from gifit.core.errors import FrameSourceError
from gifit.core.frames import VideoFileFrameSource
from gifit.utils.timecode import seconds_to_timecode
from gifit.web.constants import CHUNK_SIZE
from gifit.web.utils.files import (
    allocate_upload_path,
    list_uploaded_files,
    resolve_uploaded_file,
    sanitize_extension,
)

router = APIRouter(
    prefix="/uploads",
    tags=["uploads"],
)


def _probe(path: Path) -> dict:
    with VideoFileFrameSource(path) as source:
        info = source.info()
    info["duration"] = seconds_to_timecode(info["duration_ms"] / 1000)
    return info


@router.post("/", status_code=status.HTTP_201_CREATED)
async def upload_video(file: Annotated[UploadFile, File()]) -> dict:
    """Persist an uploaded video and return its stored filename."""
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    ext = sanitize_extension(Path(file.filename).suffix)
    if ext is None:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Unsupported video format",
        )
    dest = allocate_upload_path(ext)

    with dest.open("wb") as buffer:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.write(chunk)
    await file.close()
    return {"filename": dest.name}


@router.get("/")
async def uploads_list() -> dict:
    """Return a JSON listing of the uploaded videos."""
    return {"uploads": list_uploaded_files()}


@router.get("/{filename}/info")
async def upload_info(filename: str) -> dict:
    """Report native width, height and duration of an uploaded video."""
    path = resolve_uploaded_file(filename)
    try:
        return await run_in_threadpool(_probe, path)
    except FrameSourceError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get("/{filename:path}")
async def get_uploaded_video(filename: str) -> FileResponse:
    """Serve original uploaded videos."""
    path = resolve_uploaded_file(filename)
    return FileResponse(path)


__all__ = ["router"]
