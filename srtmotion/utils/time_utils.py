"""Time conversion utilities (captions keep time as float seconds)."""

import math
import re
from functools import lru_cache

_SRT_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})(?:[,.](\d{1,3}))?$")


def seconds_to_srt_time(seconds: float) -> str:
    """Convert seconds to SRT time format 'HH:MM:SS,mmm'."""
    ms = int(round(max(0.0, seconds) * 1000))
    hours = ms // 3_600_000
    remainder = ms % 3_600_000
    minutes = remainder // 60_000
    remainder = remainder % 60_000
    secs = remainder // 1000
    millis = remainder % 1000
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def srt_time_to_seconds(text: str) -> float:
    """Parse SRT time 'HH:MM:SS,mmm' → seconds.

    Raises:
        ValueError: If the text is not a valid SRT timestamp.
    """
    m = _SRT_TIME_RE.match(text.strip())
    if not m:
        raise ValueError(f"Invalid SRT timestamp '{text.strip()}'")
    hours, minutes, secs = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if minutes >= 60 or secs >= 60:
        raise ValueError(f"Invalid SRT timestamp '{text.strip()}'")
    frac = m.group(4) or "0"
    millis = int(frac.ljust(3, "0"))
    return hours * 3600 + minutes * 60 + secs + millis / 1000.0


def format_display(seconds: float) -> str:
    """Convert seconds to display string 'MM:SS.cc'."""
    if seconds < 0:
        seconds = 0.0
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    centis = int((seconds % 1) * 100)
    return f"{mins:02d}:{secs:02d}.{centis:02d}"


@lru_cache(maxsize=4096)
def seconds_to_frame(seconds: float, fps: int) -> int:
    """Convert seconds to the nearest frame number.

    Example:
        >>> seconds_to_frame(1.0, 30)
        30
    """
    return int(round(seconds * fps))


def frame_to_seconds(frame: int, fps: int) -> float:
    """Convert a frame number to seconds.

    Example:
        >>> frame_to_seconds(45, 30)
        1.5
    """
    return frame / fps


def frame_count(duration: float, fps: int) -> int:
    """Number of frame intervals covering *duration* at *fps* (ceil).

    The product is rounded to 6 decimals first so that values such as
    ``11.5 * 30`` do not pick up an extra frame from float noise.
    """
    if duration <= 0:
        return 0
    return int(math.ceil(round(duration * fps, 6)))
