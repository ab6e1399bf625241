import re
from pathlib import Path

from fastapi import HTTPException, status

from gifit.web.constants import (
    ALLOWED_EXTENSIONS,
    DEFAULT_EXTENSION,
    EXPORT_FOLDER,
    UPLOAD_FOLDER,
)


def _resolve_inside(folder: Path, filename: str) -> Path:
    clean_name = Path(filename).name
    target = (folder / clean_name).resolve()
    base = folder.resolve()
    try:
        target.relative_to(base)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        ) from exc
    if not target.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )
    return target


def resolve_uploaded_file(filename: str) -> Path:
    """Resolve an uploaded video by name, or raise 404."""
    return _resolve_inside(UPLOAD_FOLDER, filename)


def resolve_export_file(filename: str) -> Path:
    """Resolve an exported GIF by name, or raise 404."""
    return _resolve_inside(EXPORT_FOLDER, filename)


def _next_index(folder: Path, prefix: str) -> int:
    max_index = 0
    for existing in folder.iterdir():
        if existing.is_file() and existing.stem.startswith(prefix):
            suffix = existing.stem[len(prefix) :]
            if suffix.isdigit():
                max_index = max(max_index, int(suffix))
    return max_index + 1


def allocate_upload_path(extension: str) -> Path:
    """Pick the next sequential video<N> filename."""
    return UPLOAD_FOLDER / f"video{_next_index(UPLOAD_FOLDER, 'video')}{extension}"


def slugify(name: str) -> str:
    """Reduce a user supplied GIF name to a safe file stem."""
    slug = re.sub(r"[^A-Za-z0-9]+", "-", name).strip("-").lower()
    return slug or "untitled"


def allocate_export_path(name: str, extension: str = ".gif") -> Path:
    """Pick the next sequential <name>-<N> filename for the exports folder."""
    prefix = f"{slugify(name)}-"
    return EXPORT_FOLDER / f"{prefix}{_next_index(EXPORT_FOLDER, prefix)}{extension}"


def sanitize_extension(extension: str | None) -> str | None:
    """Normalize the user-provided extension, or None if it is not a video."""
    if not extension:
        return DEFAULT_EXTENSION
    extension = extension.lower()
    if extension not in ALLOWED_EXTENSIONS:
        return None
    return extension


def list_exported_files() -> list[str]:
    """Names of the exported GIFs, sorted."""
    return sorted([f.name for f in EXPORT_FOLDER.iterdir() if f.is_file()])


def list_uploaded_files() -> list[str]:
    """Names of the uploaded videos, sorted."""
    return sorted([f.name for f in UPLOAD_FOLDER.iterdir() if f.is_file()])
