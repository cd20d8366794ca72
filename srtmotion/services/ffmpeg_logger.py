"""Encoder log file: every FFmpeg command, its stderr, and the export outcome."""

import logging
import shlex
from pathlib import Path

_logger = logging.getLogger("ffmpeg_output")
_logger.setLevel(logging.DEBUG)
_logger.propagate = False


def get_ffmpeg_log_path() -> Path:
    log_dir = Path.home() / ".srtmotion" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "ffmpeg.log"


def _ensure_handler() -> logging.Logger:
    # 첫 내보내기 때 파일 핸들러 연결 (import만으로 로그 파일을 만들지 않음)
    if not _logger.handlers:
        handler = logging.FileHandler(get_ffmpeg_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        _logger.addHandler(handler)
    return _logger


def log_ffmpeg_command(cmd: list[str]) -> None:
    _ensure_handler().info("Executing: %s", shlex.join(cmd))


def log_ffmpeg_line(line: str) -> None:
    """One line of encoder stderr."""
    _ensure_handler().debug(line.rstrip())


def log_export_summary(output_path: str, frames: int, substituted: int) -> None:
    level = logging.WARNING if substituted else logging.INFO
    _ensure_handler().log(
        level, "Finished %s: %d frames, %d substituted", output_path, frames, substituted
    )
