"""Frame-exact caption video export.

Every frame on the fixed grid ``i / fps`` for ``i = 0..total_frames`` is
evaluated, rasterized and pushed to an FFmpeg raw-video pipe, strictly one
after another. A slow rasterizer therefore slows the export down but never
changes which frames are produced.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Protocol

import numpy as np
from PySide6.QtGui import QColor

from srtmotion.infrastructure.ffmpeg_runner import FFmpegRunner, get_ffmpeg_runner
from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.animation_evaluator import DEFAULT_STAGE, StageSize
from srtmotion.services.ffmpeg_logger import log_export_summary, log_ffmpeg_line
from srtmotion.services.frame_rasterizer import FrameRasterizer, RasterizationError
from srtmotion.services.playback_clock import PlaybackClock
from srtmotion.services.scene_driver import Scene, SceneDriver
from srtmotion.utils.config import DEFAULT_EXPORT_FPS, PROGRESS_EVERY_N_FRAMES
from srtmotion.utils.time_utils import frame_count

logger = logging.getLogger(__name__)


class EncoderUnavailableError(RuntimeError):
    """FFmpeg or every suitable encoder is missing."""


@dataclass(frozen=True)
class OutputFormat:
    container: str
    codec: str
    pix_fmt: str
    alpha: bool
    codec_args: tuple[str, ...] = ()

    @property
    def extension(self) -> str:
        return f".{self.container}"


ALPHA_FORMATS: list[OutputFormat] = [
    OutputFormat("webm", "libvpx-vp9", "yuva420p", True,
                 ("-b:v", "0", "-crf", "30", "-auto-alt-ref", "0")),
    OutputFormat("mov", "prores_ks", "yuva444p10le", True,
                 ("-profile:v", "4444", "-vendor", "apl0")),
]
OPAQUE_FORMATS: list[OutputFormat] = [
    OutputFormat("mp4", "libx264", "yuv420p", False,
                 ("-preset", "medium", "-crf", "18", "-movflags", "+faststart")),
]


def select_output_format(transparent: bool, available_encoders: Iterable[str]) -> OutputFormat:
    """Pick the container/codec for an export.

    Transparent exports prefer an alpha-capable encoder and fall back to an
    opaque composite when none is installed.
    """
    available = set(available_encoders)
    candidates = (ALPHA_FORMATS if transparent else []) + OPAQUE_FORMATS
    for fmt in candidates:
        if fmt.codec in available:
            if transparent and not fmt.alpha:
                logger.warning("No alpha-capable encoder found; exporting opaque composite")
            return fmt
    names = ", ".join(f.codec for f in candidates)
    raise EncoderUnavailableError(
        f"None of the required encoders are available in FFmpeg ({names}). "
        "Install an FFmpeg build with libx264 (and libvpx-vp9 for transparency)."
    )


def export_file_name(source_name: str, transparent: bool, extension: str) -> str:
    """``clip.srt`` → ``clip_transparent.webm`` / ``clip_video.mp4``."""
    stem = Path(source_name).stem if source_name else ""
    stem = stem or "captions"
    if not extension.startswith("."):
        extension = f".{extension}"
    suffix = "_transparent" if transparent else "_video"
    return f"{stem}{suffix}{extension}"


@dataclass
class ExportOptions:
    fps: int = DEFAULT_EXPORT_FPS
    stage_size: StageSize = DEFAULT_STAGE
    transparent: bool | None = None  # None → follow settings.background_color


@dataclass
class ExportResult:
    output_path: Path
    frames_written: int
    total_frames: int
    degraded: bool = False
    substituted_frames: list[int] = field(default_factory=list)
    cancelled: bool = False


class Rasterizer(Protocol):
    def render(self, scene: Scene) -> np.ndarray: ...


class FrameEncoder:
    """Streams raw RGBA frames into an FFmpeg process over stdin."""

    def __init__(
        self,
        output_path: Path,
        fmt: OutputFormat,
        width: int,
        height: int,
        fps: int,
        runner: FFmpegRunner | None = None,
    ):
        self.output_path = Path(output_path)
        self.fmt = fmt
        self.width = width
        self.height = height
        self.fps = fps
        self._runner = runner or get_ffmpeg_runner()
        self._process: subprocess.Popen | None = None
        self._stderr_lines: list[str] = []
        self._stderr_thread: threading.Thread | None = None
        self.frames_written = 0

    def build_args(self) -> list[str]:
        return [
            "-y",
            "-f", "rawvideo",
            "-pix_fmt", "rgba",
            "-s", f"{self.width}x{self.height}",
            "-r", str(self.fps),
            "-i", "-",
            "-an",
            "-c:v", self.fmt.codec,
            *self.fmt.codec_args,
            "-pix_fmt", self.fmt.pix_fmt,
            str(self.output_path),
        ]

    def start(self) -> None:
        args = self.build_args()
        self._process = self._runner.open_frame_pipe(args)

        def _drain_stderr():
            try:
                for raw in self._process.stderr:
                    line = raw.decode("utf-8", errors="replace")
                    self._stderr_lines.append(line)
                    log_ffmpeg_line(line)
            except (OSError, ValueError):
                pass

        self._stderr_thread = threading.Thread(target=_drain_stderr, daemon=True)
        self._stderr_thread.start()

    def write(self, frame: np.ndarray) -> None:
        if self._process is None or self._process.stdin is None:
            raise RuntimeError("Encoder not started")
        try:
            self._process.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
        except BrokenPipeError:
            stderr = "".join(self._stderr_lines)
            raise RuntimeError(f"FFmpeg closed the frame pipe: {stderr[-500:]}")
        self.frames_written += 1

    def finalize(self) -> None:
        """Close the pipe and wait for FFmpeg to flush the container."""
        process, self._process = self._process, None
        if process is None:
            return
        try:
            if process.stdin:
                process.stdin.close()
        except BrokenPipeError:
            pass
        process.wait()
        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=10)
        if process.returncode != 0:
            stderr = "".join(self._stderr_lines)
            raise RuntimeError(f"FFmpeg failed (code {process.returncode}): {stderr[-500:]}")


EncoderFactory = Callable[[Path, OutputFormat, int, int, int], FrameEncoder]


def _blank_frame(settings: AnimationSettings, width: int, height: int) -> np.ndarray:
    frame = np.zeros((height, width, 4), dtype=np.uint8)
    if not settings.is_transparent:
        color = QColor(settings.background_color)
        frame[...] = (color.red(), color.green(), color.blue(), 255)
    return frame


def _flatten(frame: np.ndarray) -> np.ndarray:
    """Composite a straight-alpha frame over black for opaque codecs."""
    alpha = frame[..., 3:4].astype(np.uint16)
    out = np.empty_like(frame)
    out[..., :3] = (frame[..., :3].astype(np.uint16) * alpha // 255).astype(np.uint8)
    out[..., 3] = 255
    return out


def _render_with_retry(
    rasterizer: Rasterizer,
    scene: Scene,
    index: int,
) -> np.ndarray | None:
    width, height = scene.stage_size
    for attempt in (1, 2):
        try:
            frame = rasterizer.render(scene)
            if frame.shape != (height, width, 4):
                raise RasterizationError(
                    f"Frame has shape {frame.shape}, expected {(height, width, 4)}"
                )
            return frame
        except RasterizationError as e:
            logger.warning("Frame %d rasterization failed (attempt %d): %s", index, attempt, e)
    return None


def _finalize_quietly(encoder: FrameEncoder) -> None:
    try:
        encoder.finalize()
    except Exception:
        logger.exception("Encoder finalize failed while handling an export error")


def export_video(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    output_path: Path,
    *,
    options: ExportOptions | None = None,
    rasterizer: Rasterizer | None = None,
    encoder_factory: EncoderFactory | None = None,
    runner: FFmpegRunner | None = None,
    clock: PlaybackClock | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    is_cancelled: Callable[[], bool] | None = None,
) -> ExportResult:
    """Render every frame of the caption timeline into a video file.

    Args:
        captions: Captions to export (snapshotted on entry).
        settings: Animation settings snapshot.
        output_path: Destination; the suffix is replaced by the chosen container.
        options: fps / stage size / transparency override.
        rasterizer: ``render(scene) -> (H, W, 4) uint8``; defaults to FrameRasterizer.
        encoder_factory: Builds the frame encoder; defaults to FrameEncoder.
        runner: FFmpeg runner used for encoder discovery.
        clock: Interactive clock to suspend for the duration of the export.
        on_progress: callback(frame_index, total_frames).
        is_cancelled: Polled at every frame boundary.

    Raises:
        EncoderUnavailableError: before any frame is rendered.
        ValueError: when there is nothing to export.
    """
    options = options or ExportOptions()
    snapshot = tuple(captions)
    if not snapshot:
        raise ValueError("Nothing to export: caption list is empty")
    if options.fps <= 0:
        raise ValueError(f"Invalid FPS: {options.fps}")

    runner = runner or get_ffmpeg_runner()
    if not runner.is_available():
        raise EncoderUnavailableError("FFmpeg not found. Please install FFmpeg.")
    transparent = settings.is_transparent if options.transparent is None else options.transparent
    fmt = select_output_format(transparent, runner.list_encoders())

    width, height = options.stage_size
    output_path = Path(output_path).with_suffix(fmt.extension)
    driver = SceneDriver(snapshot, settings, options.stage_size)
    total_frames = frame_count(driver.get_duration(), options.fps)
    rasterizer = rasterizer or FrameRasterizer()
    if encoder_factory is None:
        def encoder_factory(path, f, w, h, fps):
            return FrameEncoder(path, f, w, h, fps, runner=runner)

    result = ExportResult(output_path=output_path, frames_written=0, total_frames=total_frames)
    clock_state = clock.suspend() if clock is not None else None
    logger.info(
        "Exporting %d frames at %d fps (%dx%d, %s/%s) to %s",
        total_frames + 1, options.fps, width, height, fmt.codec, fmt.pix_fmt, output_path,
    )
    try:
        encoder = encoder_factory(output_path, fmt, width, height, options.fps)
        encoder.start()
        try:
            last_good: np.ndarray | None = None
            for i in range(total_frames + 1):
                if is_cancelled is not None and is_cancelled():
                    result.cancelled = True
                    logger.info("Export cancelled at frame %d/%d", i, total_frames)
                    break

                scene = driver.seek_to(i / options.fps)
                frame = _render_with_retry(rasterizer, scene, i)
                if frame is None:
                    frame = last_good if last_good is not None else _blank_frame(settings, width, height)
                    result.degraded = True
                    result.substituted_frames.append(i)
                else:
                    last_good = frame

                encoder.write(frame if fmt.alpha else _flatten(frame))
                result.frames_written += 1

                if on_progress is not None and (i % PROGRESS_EVERY_N_FRAMES == 0 or i == total_frames):
                    on_progress(i, total_frames)
        except BaseException:
            _finalize_quietly(encoder)
            raise
        encoder.finalize()
    finally:
        if clock is not None:
            clock.restore(clock_state)

    log_export_summary(str(output_path), result.frames_written, len(result.substituted_frames))
    if result.degraded:
        logger.warning("Export degraded: %d substituted frame(s)", len(result.substituted_frames))
    return result
