"""FFmpeg 프로세스 경계. 인코더 조회와 프레임 파이프 모두 이 클래스를 거친다.

내보내기 서비스는 subprocess를 직접 다루지 않으므로 테스트에서는
러너 하나만 가짜로 바꾸면 된다.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any

from srtmotion.services.ffmpeg_logger import log_ffmpeg_command
from srtmotion.utils.ffmpeg_utils import find_ffmpeg, parse_encoder_list

_NOT_FOUND = "FFmpeg not found. Please install FFmpeg."


class FFmpegRunner:
    """Locates the FFmpeg binary and starts it for probes and frame pipes."""

    def __init__(self, ffmpeg_path: str | None = None):
        # 경로 미지정 시 설정 → PATH → imageio-ffmpeg 순으로 탐색
        self._ffmpeg = ffmpeg_path or find_ffmpeg()
        self._encoders: set[str] | None = None

    @property
    def ffmpeg_path(self) -> str | None:
        return self._ffmpeg

    def is_available(self) -> bool:
        return self._ffmpeg is not None and Path(self._ffmpeg).is_file()

    def _command(self, args: list[str], kwargs: dict[str, Any]) -> list[str]:
        if not self._ffmpeg:
            raise FileNotFoundError(_NOT_FOUND)
        if sys.platform == "win32":
            kwargs.setdefault("creationflags", subprocess.CREATE_NO_WINDOW)
        return [self._ffmpeg, *args]

    def run(
        self,
        args: list[str],
        *,
        check: bool = False,
        capture_output: bool = True,
        text: bool = True,
        **kwargs: Any,
    ) -> subprocess.CompletedProcess:
        """Run FFmpeg to completion (probes such as ``-encoders``)."""
        cmd = self._command(args, kwargs)
        return subprocess.run(cmd, check=check, capture_output=capture_output, text=text, **kwargs)

    def open_frame_pipe(self, args: list[str], **kwargs: Any) -> subprocess.Popen:
        """Start an encoder that reads raw frames from stdin.

        stdout is discarded; stderr stays a binary pipe for the caller to drain.
        """
        cmd = self._command(args, kwargs)
        log_ffmpeg_command(cmd)
        kwargs.setdefault("stdin", subprocess.PIPE)
        kwargs.setdefault("stdout", subprocess.DEVNULL)
        kwargs.setdefault("stderr", subprocess.PIPE)
        return subprocess.Popen(cmd, **kwargs)

    def list_encoders(self) -> set[str]:
        """Encoder names from ``ffmpeg -encoders``, cached; empty on failure."""
        if self._encoders is None:
            try:
                result = self.run(["-hide_banner", "-encoders"], timeout=15)
            except (FileNotFoundError, OSError, subprocess.TimeoutExpired):
                return set()
            self._encoders = parse_encoder_list(result.stdout or "")
        return set(self._encoders)


# 공유 인스턴스 (인코더 목록 캐시를 재사용)
_default_runner: FFmpegRunner | None = None


def get_ffmpeg_runner() -> FFmpegRunner:
    global _default_runner
    if _default_runner is None:
        _default_runner = FFmpegRunner()
    return _default_runner
