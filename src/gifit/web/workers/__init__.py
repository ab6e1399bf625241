"""
In-memory job registry for GIF exports.

Job records live in `JOBS` and are updated by coroutines running on
`JOB_LOOP`, an event loop owned by a single background worker thread.
Request handlers never touch running jobs directly; they hand work to the
loop with `asyncio.run_coroutine_threadsafe` or `call_soon_threadsafe`.
"""

import asyncio
from typing import Any

JOB_LOOP: asyncio.AbstractEventLoop = asyncio.new_event_loop()
JOBS: dict[str, dict[str, Any]] = {}

__all__ = ["JOBS", "JOB_LOOP"]
