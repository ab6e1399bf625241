from pathlib import Path

# Directory used to persist uploaded videos.
UPLOAD_FOLDER = Path.cwd() / "uploads"
"""Directory used to persist uploaded videos"""
UPLOAD_FOLDER.mkdir(
    parents=True,
    exist_ok=True,
)

# Directory for exported GIFs
EXPORT_FOLDER = Path.cwd() / "exports"
"""Directory for exported GIFs"""
EXPORT_FOLDER.mkdir(
    parents=True,
    exist_ok=True,
)

ALLOWED_EXTENSIONS = (
    ".mp4",
    ".m4v",
    ".mov",
    ".webm",
    ".mkv",
    ".avi",
)

DEFAULT_EXTENSION = ".mp4"
CHUNK_SIZE = 1 << 20  # 1 MiB chunks while streaming uploads to disk.
MAX_FPS = 60
MAX_DIMENSION = 2048


__all__ = [
    "ALLOWED_EXTENSIONS",
    "CHUNK_SIZE",
    "DEFAULT_EXTENSION",
    "EXPORT_FOLDER",
    "MAX_DIMENSION",
    "MAX_FPS",
    "UPLOAD_FOLDER",
]
