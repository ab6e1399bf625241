"""GIFit: turn a window of a video into an animated GIF."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from gifit.core.config import JobConfig
from gifit.core.constants import (
    DEFAULT_DURATION_MS,
    DEFAULT_FPS,
    DEFAULT_QUALITY,
    DEFAULT_WIDTH,
)
from gifit.core.dither import floyd_steinberg, map_to_indices, nearest_color_index
from gifit.core.errors import (
    ConfigValidationError,
    EncodingError,
    FrameSourceError,
    GifError,
)
from gifit.core.frames import FrameSource, VideoFileFrameSource
from gifit.core.service import GifJob, GifService, JobObserver, JobResult, JobState
from gifit.utils.timecode import seconds_to_timecode, timecode_to_seconds

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        "gifit",
        description="GIFit: convert part of a video into an animated GIF",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the web API")
    serve.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to run the web server on (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the web server on (default: 2025 or PORT env var)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for the web server",
    )

    convert = commands.add_parser("convert", help="Convert a video to a GIF")
    convert.add_argument("video", type=Path, help="Video file to read")
    convert.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="GIF to write (default: the video name with .gif)",
    )
    convert.add_argument(
        "--start",
        type=timecode_to_seconds,
        default=0.0,
        help="Start timecode, e.g. 1:02.5 (default: 0:00)",
    )
    window = convert.add_mutually_exclusive_group()
    window.add_argument("--end", type=timecode_to_seconds, help="End timecode")
    window.add_argument(
        "--duration",
        type=float,
        default=None,
        help=f"Length in seconds (default: {DEFAULT_DURATION_MS / 1000:g})",
    )
    convert.add_argument("--fps", type=float, default=DEFAULT_FPS)
    convert.add_argument("--width", type=int, default=DEFAULT_WIDTH)
    convert.add_argument(
        "--height",
        type=int,
        default=None,
        help="Output height (default: keep the video aspect ratio)",
    )
    convert.add_argument("--quality", type=float, default=DEFAULT_QUALITY, help="1 to 10")
    convert.add_argument(
        "--max-colors",
        type=int,
        default=None,
        help="Palette size, 2 to 256 (default: derived from quality)",
    )
    convert.add_argument(
        "--no-dither",
        action="store_true",
        help="Map pixels to the nearest palette color without dithering",
    )
    return parser


async def _convert(args: argparse.Namespace) -> int:
    output = args.output or args.video.with_suffix(".gif")
    start_ms = args.start * 1000
    if args.end is not None:
        end_ms = args.end * 1000
    elif args.duration is not None:
        end_ms = start_ms + args.duration * 1000
    else:
        end_ms = start_ms + DEFAULT_DURATION_MS

    with VideoFileFrameSource(args.video) as source:
        height = args.height
        if height is None:
            height = max(1, round(args.width * source.height / max(source.width, 1)))
        config = JobConfig(
            start=start_ms,
            end=end_ms,
            width=args.width,
            height=height,
            fps=args.fps,
            quality=args.quality,
            max_colors=args.max_colors,
            no_dither=args.no_dither,
            name=output.stem,
        )

        def on_progress(ratio: float, frames_written: int) -> None:
            logger.info("%3.0f%%  frame %d", ratio * 100, frames_written)

        service = GifService()
        job = await service.create_gif(config, source, JobObserver(on_progress=on_progress))
        service.destroy()

    if job.state is not JobState.COMPLETE:
        logger.error("GIF generation %s: %s", job.state.value, job.error)
        return 1
    job.result.save(output)
    logger.info(
        "Wrote %s (%dx%d, %s to %s)",
        output,
        config.width,
        config.height,
        seconds_to_timecode(start_ms / 1000),
        seconds_to_timecode(end_ms / 1000),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the gifit CLI.

    ``gifit serve`` starts the web API, ``gifit convert`` writes a GIF from a
    video file directly.
    """
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        from gifit.web import run as start_api  # noqa: PLC0415

        start_api(port=args.port, host=args.host, reload=args.reload)
        return 0

    try:
        return asyncio.run(_convert(args))
    except ConfigValidationError as exc:
        logger.error("Invalid settings: %s", exc)  # noqa: TRY400
        return 2
    except (OSError, GifError) as exc:
        logger.error("%s", exc)  # noqa: TRY400
        return 1


__all__ = [
    "ConfigValidationError",
    "EncodingError",
    "FrameSource",
    "FrameSourceError",
    "GifError",
    "GifJob",
    "GifService",
    "JobConfig",
    "JobObserver",
    "JobResult",
    "JobState",
    "VideoFileFrameSource",
    "floyd_steinberg",
    "main",
    "map_to_indices",
    "nearest_color_index",
]
