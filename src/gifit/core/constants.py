from os import getenv

MAX_QUALITY = 10
"""Upper bound of the user facing quality setting"""

MIN_COLORS = 2
MAX_COLORS = 256

# Delay after the frame source reports a finished seek. Capturing earlier can
# return the previous frame.
SEEK_SETTLE_DELAY_MS = float(getenv("GIFIT_SEEK_SETTLE_MS", "50"))

DEFAULT_WIDTH = 320
DEFAULT_HEIGHT = 180
DEFAULT_FPS = 10
DEFAULT_QUALITY = 5
DEFAULT_DURATION_MS = 2000
DEFAULT_NAME = "untitled"


__all__ = [
    "DEFAULT_DURATION_MS",
    "DEFAULT_FPS",
    "DEFAULT_HEIGHT",
    "DEFAULT_NAME",
    "DEFAULT_QUALITY",
    "DEFAULT_WIDTH",
    "MAX_COLORS",
    "MAX_QUALITY",
    "MIN_COLORS",
    "SEEK_SETTLE_DELAY_MS",
]
