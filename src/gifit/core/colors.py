from __future__ import annotations

import numpy as np

# Lightness below DARK is dark, at or above BRIGHT is bright, medium between.
LIGHTNESS_DARK_THRESHOLD = 0.33
LIGHTNESS_BRIGHT_THRESHOLD = 0.66
# Pixels more saturated than this also count towards the saturated mean.
SATURATION_THRESHOLD = 0.4

DEFAULT_COLOR = "rgb(0,0,0)"


def _mean_color(rgb: np.ndarray) -> str:
    if len(rgb) == 0:
        return DEFAULT_COLOR
    r, g, b = (int(np.floor(v + 0.5)) for v in rgb.mean(axis=0))
    return f"rgb({r}, {g}, {b})"


def frame_colors(pixels: np.ndarray, sample_density: int = 5) -> list[str]:
    """
    Summarize a frame as four mean colors: dark, medium, bright and saturated.

    Every ``sample_density``-th pixel is considered. Pixels are bucketed by
    HSL lightness, and independently collected when their HSL saturation is
    high. Empty buckets report ``rgb(0,0,0)``.
    """
    arr = np.asarray(pixels, dtype=np.uint8)
    if arr.size == 0:
        return [DEFAULT_COLOR] * 4

    channels = arr.shape[-1] if arr.ndim == 3 else 4  # noqa: PLR2004
    rgb = arr.reshape(-1, channels)[:: max(1, int(sample_density)), :3]
    norm = rgb.astype(np.float64) / 255.0

    high = norm.max(axis=1)
    low = norm.min(axis=1)
    lightness = (high + low) / 2
    spread = high - low
    with np.errstate(divide="ignore", invalid="ignore"):
        saturation = np.where(
            spread == 0,
            0.0,
            np.where(
                lightness > 0.5,  # noqa: PLR2004
                spread / (2 - high - low),
                spread / (high + low),
            ),
        )

    dark = lightness < LIGHTNESS_DARK_THRESHOLD
    bright = lightness >= LIGHTNESS_BRIGHT_THRESHOLD
    medium = ~dark & ~bright
    saturated = saturation > SATURATION_THRESHOLD

    return [
        _mean_color(rgb[dark]),
        _mean_color(rgb[medium]),
        _mean_color(rgb[bright]),
        _mean_color(rgb[saturated]),
    ]


__all__ = ["frame_colors"]
