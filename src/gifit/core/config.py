from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Integral

from gifit.core.constants import (
    DEFAULT_FPS,
    DEFAULT_HEIGHT,
    DEFAULT_NAME,
    DEFAULT_QUALITY,
    DEFAULT_WIDTH,
    MAX_COLORS,
    MAX_QUALITY,
    MIN_COLORS,
)
from gifit.core.errors import ConfigValidationError


def max_colors_for_quality(quality: float) -> int:
    """Map the 1-10 quality setting onto a palette size in [2, 256]."""
    colors = round(quality / MAX_QUALITY * MAX_COLORS)
    return max(MIN_COLORS, min(MAX_COLORS, colors))


@dataclass(frozen=True)
class JobConfig:
    """
    Settings for a single GIF generation job.

    Times are in milliseconds relative to the start of the video. The
    configuration is immutable once created; ``validate`` must pass before a
    job is started.
    """

    start: float
    end: float
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    fps: float = DEFAULT_FPS
    quality: float = DEFAULT_QUALITY
    max_colors: int | None = None
    no_dither: bool = False
    name: str = DEFAULT_NAME

    @property
    def resolved_max_colors(self) -> int:
        if self.max_colors is None:
            return max_colors_for_quality(self.quality)
        return int(self.max_colors)

    @property
    def frame_interval_ms(self) -> float:
        return 1000 / self.fps

    @property
    def true_duration_ms(self) -> float:
        """
        Window length truncated down to a whole number of frame intervals.

        The window is never shorter than one interval, so a job always
        produces at least one frame and progress reaches 1.0 on the last
        frame instead of overshooting on a partial trailing interval.
        """
        interval = self.frame_interval_ms
        effective = max(self.end - self.start, interval)
        return effective - (effective % interval)

    @property
    def expected_frame_count(self) -> float:
        return self.fps * (self.end - self.start) / 1000

    def validate(self) -> None:
        """Raise ``ConfigValidationError`` if the job cannot be started."""
        numbers_to_check = {
            "start": self.start,
            "end": self.end,
            "fps": self.fps,
            "quality": self.quality,
        }
        if self.max_colors is not None:
            numbers_to_check["maxColors"] = self.max_colors
        for field, value in numbers_to_check.items():
            if not math.isfinite(value):
                msg = f"{field} must be a finite number."
                raise ConfigValidationError(msg)

        max_colors = self.resolved_max_colors
        if max_colors < MIN_COLORS or max_colors > MAX_COLORS:
            msg = f"maxColors must be between {MIN_COLORS} and {MAX_COLORS}."
            raise ConfigValidationError(msg)
        if not 1 <= self.quality <= MAX_QUALITY:
            msg = f"quality must be between 1 and {MAX_QUALITY}."
            raise ConfigValidationError(msg)
        if not all(
            isinstance(size, Integral) and not isinstance(size, bool)
            for size in (self.width, self.height)
        ):
            msg = "width and height must be whole numbers of pixels."
            raise ConfigValidationError(msg)
        if self.width <= 0 or self.height <= 0:
            msg = "width and height must be positive."
            raise ConfigValidationError(msg)
        if self.fps <= 0:
            msg = "fps must be positive."
            raise ConfigValidationError(msg)
        if self.start < 0:
            msg = "start must not be negative."
            raise ConfigValidationError(msg)
        if self.end <= self.start:
            msg = "end must be after start."
            raise ConfigValidationError(msg)


__all__ = ["JobConfig", "max_colors_for_quality"]
