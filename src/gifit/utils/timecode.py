"""Conversions between seconds and ``H:MM:SS`` style timecodes."""

import math

_MULTIPLIERS = (1, 60, 3600)


def seconds_to_timecode(total_seconds: float) -> str:
    """
    Format seconds as ``H:MM:SS``, or ``M:SS`` when under an hour.

    Fractions are dropped and negative values are treated as zero.

    >>> seconds_to_timecode(3661)
    '1:01:01'
    >>> seconds_to_timecode(114)
    '1:54'
    >>> seconds_to_timecode(5)
    '0:05'
    """
    safe_seconds = max(0, math.floor(total_seconds))
    hours, remainder = divmod(safe_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _segment_value(segment: str) -> float:
    try:
        value = float(segment)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def timecode_to_seconds(timecode: str) -> float:
    """
    Parse ``H:MM:SS``, ``M:SS`` or ``S`` (fractions allowed) into seconds.

    Segments that are not numbers count as zero and anything before the
    hours segment is ignored.

    >>> timecode_to_seconds("1:01:01")
    3661.0
    >>> timecode_to_seconds("0:02.5")
    2.5
    """
    segments = reversed(timecode.strip().split(":"))
    return sum(
        _segment_value(segment) * multiplier
        for segment, multiplier in zip(segments, _MULTIPLIERS)
    )


__all__ = ["seconds_to_timecode", "timecode_to_seconds"]
