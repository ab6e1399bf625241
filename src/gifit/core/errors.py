"""Exceptions raised by the GIF generation pipeline."""


class GifError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigValidationError(GifError, ValueError):
    """The job configuration was rejected before the job started."""


class FrameSourceError(GifError):
    """Seeking or capturing a frame from the frame source failed."""


class EncodingError(GifError):
    """Quantizing, dithering, writing or finalizing a frame failed."""


class JobAborted(GifError):  # noqa: N818
    """
    Raised at a cancellation checkpoint once a job has been aborted.

    This is control flow only. An aborted job is never reported as an error.
    """


__all__ = [
    "ConfigValidationError",
    "EncodingError",
    "FrameSourceError",
    "GifError",
    "JobAborted",
]
