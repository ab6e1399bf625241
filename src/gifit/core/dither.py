"""
Floyd-Steinberg error diffusion and nearest palette color lookups.

Pixel buffers are RGBA ``uint8`` arrays, either shaped ``(height, width, 4)``
or flat. Palettes are ordered sequences of ``(r, g, b)`` triples; the position
of a color in the palette is the index written to the GIF encoder.

The per-pixel loops are compiled with numba.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numba import jit

RgbColor = tuple[int, int, int]
Palette = Sequence[RgbColor]

# Colors compared per vectorized chunk in ``map_to_indices``.
_INDEX_CHUNK = 1024
# One slot per RGB565 key.
_CACHE_SIZE = 1 << 16


@jit(nopython=True)
def rgb565(r, g, b):
    """Pack an 8-bit RGB color into 16 bits (5 red, 6 green, 5 blue)."""
    return ((r >> 3) << 11) | ((g >> 2) << 5) | (b >> 3)


@jit(nopython=True)
def _nearest_index(r, g, b, colors):
    nearest = 0
    best = -1
    for index in range(colors.shape[0]):
        distance = (colors[index, 0] - r) ** 2
        if best >= 0 and distance >= best:
            continue
        distance += (colors[index, 1] - g) ** 2
        if best >= 0 and distance >= best:
            continue
        distance += (colors[index, 2] - b) ** 2
        if best < 0 or distance < best:
            best = distance
            nearest = index
            if best == 0:
                break
    return nearest


@jit(nopython=True)
def _cached_index(r, g, b, colors, table):
    key = rgb565(r, g, b)
    index = table[key]
    if index < 0:
        index = _nearest_index(r, g, b, colors)
        table[key] = index
    return index


@jit(nopython=True)
def _saturate(value):
    # Same rule as a clamped byte array: saturate, then round half to even.
    if value <= 0.0:
        return 0
    if value >= 255.0:
        return 255
    return int(np.rint(value))


@jit(nopython=True)
def _spread(buf, target, err_r, err_g, err_b, weight):
    buf[target, 0] = _saturate(buf[target, 0] + err_r * weight)
    buf[target, 1] = _saturate(buf[target, 1] + err_g * weight)
    buf[target, 2] = _saturate(buf[target, 2] + err_b * weight)


@jit(nopython=True)
def _diffuse(buf, width, height, colors, table):
    for y in range(height):
        step = 1 if y % 2 == 0 else -1
        for i in range(width):
            x = i if step == 1 else width - 1 - i
            p = y * width + x

            old_r = np.int64(buf[p, 0])
            old_g = np.int64(buf[p, 1])
            old_b = np.int64(buf[p, 2])
            index = _cached_index(old_r, old_g, old_b, colors, table)
            new_r = colors[index, 0]
            new_g = colors[index, 1]
            new_b = colors[index, 2]

            buf[p, 0] = new_r
            buf[p, 1] = new_g
            buf[p, 2] = new_b
            buf[p, 3] = 255

            err_r = old_r - new_r
            err_g = old_g - new_g
            err_b = old_b - new_b
            if err_r == 0 and err_g == 0 and err_b == 0:
                continue

            # dx is mirrored on right-to-left rows.
            ahead = x + step
            behind = x - step
            if 0 <= ahead < width:
                _spread(buf, p + step, err_r, err_g, err_b, 7.0 / 16.0)
            if y + 1 < height:
                below = p + width
                if 0 <= behind < width:
                    _spread(buf, below - step, err_r, err_g, err_b, 3.0 / 16.0)
                _spread(buf, below, err_r, err_g, err_b, 5.0 / 16.0)
                if 0 <= ahead < width:
                    _spread(buf, below + step, err_r, err_g, err_b, 1.0 / 16.0)


def _palette_array(colors: list[RgbColor]) -> np.ndarray:
    return np.asarray(colors, dtype=np.int64).reshape(-1, 3)


def nearest_color_index(r: int, g: int, b: int, palette: Palette) -> int:
    """
    Return the index of the palette color closest to ``(r, g, b)``.

    Distance is squared Euclidean over the three channels. When two entries
    are equally close the first one in palette order wins.
    """
    colors = _palette_array(normalize_palette(palette))
    return int(_nearest_index(int(r), int(g), int(b), colors))


class NearestColorCache:
    """
    Memoized ``nearest_color_index`` for one palette.

    Colors are keyed by their RGB565 packing, so colors sharing the high
    order bits of every channel share an answer. A cache must never outlive
    the palette it was built for.
    """

    def __init__(self, palette: Palette):
        self.palette = normalize_palette(palette)
        self.colors = _palette_array(self.palette)
        self.table = np.full(_CACHE_SIZE, -1, dtype=np.int32)

    def lookup(self, r: int, g: int, b: int) -> int:
        return int(_cached_index(int(r), int(g), int(b), self.colors, self.table))

    def __len__(self) -> int:
        return int(np.count_nonzero(self.table >= 0))


def normalize_palette(palette: Palette | np.ndarray) -> list[RgbColor]:
    """Return the palette as a list of int triples, dropping any alpha."""
    colors = [(int(c[0]), int(c[1]), int(c[2])) for c in palette]
    if not colors:
        msg = "Palette must contain at least one color."
        raise ValueError(msg)
    return colors


def _as_rgba(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    arr = np.asarray(pixels, dtype=np.uint8)
    expected = width * height * 4
    if arr.size != expected:
        msg = f"Expected {expected} RGBA bytes for {width}x{height}, got {arr.size}."
        raise ValueError(msg)
    return arr


def floyd_steinberg(
    pixels: np.ndarray,
    width: int,
    height: int,
    palette: Palette,
    out: np.ndarray | None = None,
) -> np.ndarray:
    """
    Dither an RGBA buffer onto ``palette`` with serpentine Floyd-Steinberg.

    Even rows are scanned left to right and odd rows right to left, with the
    diffusion pattern mirrored to match. Every output pixel is an exact
    palette color with alpha 255. The result has the shape of ``pixels``.

    Error diffusion runs on a private copy, so ``pixels`` is left untouched
    unless it is also passed as ``out``, in which case it is overwritten
    with the result.
    """
    cache = NearestColorCache(palette)
    src = _as_rgba(pixels, width, height)
    buf = src.reshape(-1, 4).copy()

    _diffuse(buf, int(width), int(height), cache.colors, cache.table)

    result = buf.reshape(src.shape)
    if out is None:
        return result
    np.copyto(out, result.reshape(out.shape))
    return out


def map_to_indices(
    pixels: np.ndarray,
    width: int,
    height: int,
    palette: Palette,
) -> np.ndarray:
    """
    Map every pixel to the index of its nearest palette color.

    No error is diffused. Ties resolve to the first palette entry, as in
    ``nearest_color_index``. Returns ``width * height`` ``uint8`` indices in
    row-major order.
    """
    colors = np.asarray(normalize_palette(palette), dtype=np.int64)
    if len(colors) > 256:  # noqa: PLR2004
        msg = "Indexed frames support at most 256 palette colors."
        raise ValueError(msg)

    rgb = _as_rgba(pixels, width, height).reshape(-1, 4)[:, :3]
    unique, inverse = np.unique(rgb, axis=0, return_inverse=True)

    nearest = np.empty(len(unique), dtype=np.uint8)
    for start in range(0, len(unique), _INDEX_CHUNK):
        chunk = unique[start : start + _INDEX_CHUNK].astype(np.int64)
        distances = ((chunk[:, None, :] - colors[None, :, :]) ** 2).sum(axis=2)
        nearest[start : start + _INDEX_CHUNK] = distances.argmin(axis=1)

    return nearest[inverse.reshape(-1)]


__all__ = [
    "NearestColorCache",
    "Palette",
    "RgbColor",
    "floyd_steinberg",
    "map_to_indices",
    "nearest_color_index",
    "normalize_palette",
    "rgb565",
]
