from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from gifit.core.constants import SEEK_SETTLE_DELAY_MS
from gifit.core.errors import FrameSourceError

if TYPE_CHECKING:
    from gifit.core.frames import FrameSource

logger = logging.getLogger(__name__)


async def seek_to(
    source: FrameSource,
    timestamp_ms: float,
    settle_delay_ms: float = SEEK_SETTLE_DELAY_MS,
) -> None:
    """
    Move ``source`` to ``timestamp_ms`` and wait until the frame can be captured.

    The source reporting a finished seek is not enough: the frame is only
    guaranteed to be rendered after ``settle_delay_ms`` more milliseconds.
    Any failure reported by the source is raised as ``FrameSourceError``.
    """
    logger.debug("Seeking to %.1f ms", timestamp_ms)
    try:
        await source.seek(timestamp_ms)
    except FrameSourceError:
        raise
    except Exception as exc:
        msg = f"Video seeking failed: {str(exc) or type(exc).__name__}"
        raise FrameSourceError(msg) from exc
    await asyncio.sleep(max(0.0, settle_delay_ms) / 1000)


__all__ = ["seek_to"]
