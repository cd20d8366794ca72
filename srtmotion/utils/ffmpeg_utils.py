"""FFmpeg utilities for finding the ffmpeg executable and probing its encoders."""

from __future__ import annotations

import shutil
from pathlib import Path


def find_ffmpeg() -> str | None:
    """
    Find ffmpeg executable.

    Search order:
    1. User-configured path (SettingsManager, then config.FFMPEG_PATH)
    2. System PATH (ffmpeg command)
    3. Bundled FFmpeg (imageio-ffmpeg) - auto-download if needed

    Returns:
        Path to ffmpeg or None if not found
    """
    # 1. Try user-configured path
    custom = _configured_ffmpeg_path()
    if custom and Path(custom).is_file():
        return custom

    from .config import FFMPEG_PATH
    if Path(FFMPEG_PATH).is_file():
        return FFMPEG_PATH

    # 2. Try system PATH
    system_ffmpeg = shutil.which("ffmpeg")
    if system_ffmpeg:
        return system_ffmpeg

    # 3. Try bundled FFmpeg
    try:
        return get_bundled_ffmpeg()
    except (ImportError, RuntimeError):
        pass

    return None


def get_bundled_ffmpeg() -> str:
    """
    Get the FFmpeg executable shipped with imageio-ffmpeg.

    Raises:
        ImportError: If imageio-ffmpeg is not installed
        RuntimeError: If FFmpeg cannot be obtained
    """
    try:
        import imageio_ffmpeg
    except ImportError:
        raise ImportError(
            "imageio-ffmpeg is not installed.\n"
            "Install with: pip install imageio-ffmpeg"
        )
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except Exception as e:
        raise RuntimeError(f"Failed to get bundled FFmpeg: {e}")


def _configured_ffmpeg_path() -> str | None:
    """FFmpeg path saved in preferences, if a Qt application is running."""
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return None
    if QCoreApplication.instance() is None:
        return None
    from srtmotion.services.settings_manager import SettingsManager
    return SettingsManager().get_ffmpeg_path()


def parse_encoder_list(output: str) -> set[str]:
    """Parse ``ffmpeg -encoders`` output into a set of encoder names.

    Lines look like `` V....D libx264              libx264 H.264 ...``;
    the header block ends at the ``------`` separator.
    """
    encoders: set[str] = set()
    in_body = False
    for line in output.splitlines():
        stripped = line.strip()
        if not in_body:
            if stripped.startswith("------"):
                in_body = True
            continue
        parts = stripped.split()
        if len(parts) >= 2 and len(parts[0]) == 6:
            encoders.add(parts[1])
    return encoders
