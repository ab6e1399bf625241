from __future__ import annotations

import threading
from importlib.metadata import version
from os import getenv

from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from gifit.web.routers import api_router
from gifit.web.utils.files import list_exported_files, list_uploaded_files
from gifit.web.workers.gif import worker as worker_gif

app = FastAPI(
    title="GIFit Web",
    version=version("gifit"),
)

# Compress JSON responses larger than 500 bytes.
app.add_middleware(GZipMiddleware, minimum_size=500)

# The GIF job loop lives on its own daemon thread for the life of the app.
_job_thread = threading.Thread(target=worker_gif, daemon=True)
_job_thread.start()


@app.get("/")
async def index() -> dict:
    """List the uploaded videos and the exported GIFs."""
    return {
        "uploads": list_uploaded_files(),
        "exports": list_exported_files(),
    }


app.include_router(
    api_router,
)


def run(
    *,
    port: int | None = None,
    host: str | None = None,
    reload: bool = False,
) -> None:
    """
    Serve the GIFit API with uvicorn.

    An explicit ``port`` wins over the ``PORT`` environment variable, which
    wins over 2025. ``host`` defaults to 127.0.0.1.

    Example:
        >>> run(port=8000, host="0.0.0.0")  # doctest: +SKIP

    """
    if not port:
        port = int(getenv("PORT", "2025"))
    host = host or "127.0.0.1"

    import uvicorn  # noqa: PLC0415

    uvicorn.run("gifit.web:app", host=host, port=port, reload=reload)
