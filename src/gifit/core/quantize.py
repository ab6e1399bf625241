from __future__ import annotations

import numpy as np
from PIL import Image

from gifit.core.dither import RgbColor


def quantize(pixels: np.ndarray, max_colors: int) -> list[RgbColor]:
    """
    Build an ordered palette of at most ``max_colors`` colors for a frame.

    ``pixels`` is a ``(height, width, 3|4)`` uint8 array; alpha is ignored.
    Uses Pillow's median cut, which may return fewer colors than requested
    for frames with little color variety.
    """
    arr = np.asarray(pixels, dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):  # noqa: PLR2004
        msg = f"Expected a (height, width, 3|4) pixel array, got shape {arr.shape}"
        raise ValueError(msg)

    image = Image.fromarray(np.ascontiguousarray(arr[:, :, :3]))
    reduced = image.quantize(colors=int(max_colors), method=Image.Quantize.MEDIANCUT)

    used = int(np.asarray(reduced).max()) + 1
    flat = reduced.getpalette() or []
    return [
        (flat[i * 3], flat[i * 3 + 1], flat[i * 3 + 2])
        for i in range(min(used, len(flat) // 3))
    ]


__all__ = ["quantize"]
