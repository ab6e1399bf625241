from __future__ import annotations

import io
import logging
from typing import Protocol

import numpy as np
from PIL import Image

from gifit.core.dither import Palette, normalize_palette
from gifit.core.errors import EncodingError

logger = logging.getLogger(__name__)


class Encoder(Protocol):
    def write_frame(
        self,
        indices: np.ndarray,
        width: int,
        height: int,
        palette: Palette,
        delay_ms: float,
    ) -> None: ...

    def finish(self) -> None: ...

    def getvalue(self) -> bytes: ...

    def close(self) -> None: ...


class GifEncoder:
    """
    Collects indexed frames and writes them out as an animated GIF with Pillow.

    Each frame carries its own palette. Nothing is written until ``finish``;
    ``getvalue`` then returns the GIF bytes.
    """

    def __init__(self, loop: int = 0):
        self.loop = loop
        self._frames: list[Image.Image] = []
        self._durations: list[int] = []
        self._data: bytes | None = None

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def write_frame(
        self,
        indices: np.ndarray,
        width: int,
        height: int,
        palette: Palette,
        delay_ms: float,
    ) -> None:
        if self._data is not None:
            msg = "Cannot add frames to a finished GIF"
            raise EncodingError(msg)

        idx = np.asarray(indices, dtype=np.uint8).reshape(-1)
        if idx.size != width * height:
            msg = f"Expected {width * height} indices for {width}x{height}, got {idx.size}"
            raise EncodingError(msg)
        colors = normalize_palette(palette)
        if len(colors) > 256:  # noqa: PLR2004
            msg = "GIF palettes hold at most 256 colors"
            raise EncodingError(msg)
        if idx.size and int(idx.max()) >= len(colors):
            msg = "Frame references a color outside its palette"
            raise EncodingError(msg)

        frame = Image.frombytes("P", (width, height), idx.tobytes())
        frame.putpalette([channel for color in colors for channel in color])
        self._frames.append(frame)
        self._durations.append(round(delay_ms))

    def finish(self) -> None:
        if self._data is not None:
            return
        if not self._frames:
            msg = "No frames were written"
            raise EncodingError(msg)

        bio = io.BytesIO()
        self._frames[0].save(
            bio,
            format="GIF",
            save_all=True,
            append_images=self._frames[1:],
            loop=self.loop,
            duration=self._durations,
            optimize=False,
        )
        self._data = bio.getvalue()
        logger.debug("Encoded %d frames into %d bytes", len(self._frames), len(self._data))
        self._frames.clear()
        self._durations.clear()

    def getvalue(self) -> bytes:
        if self._data is None:
            msg = "GIF has not been finished"
            raise EncodingError(msg)
        return self._data

    def close(self) -> None:
        self._frames.clear()
        self._durations.clear()


__all__ = ["Encoder", "GifEncoder"]
