"""Background worker for caption video export."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QObject, Signal

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.video_exporter import ExportOptions, export_video


class ExportWorker(QObject):
    """Runs the frame export in a background thread.

    The interactive clock lives on the GUI thread, so the caller suspends it
    before starting the worker and restores it from the result signals.

    Signals:
        progress(int, int): (frame_index, total_frames)
        finished(str): output path on success
        degraded(int): number of substituted frames (emitted before finished)
        cancelled(str): path of the partial output after a cancel
        error(str): error message on failure
    """

    progress = Signal(int, int)
    finished = Signal(str)
    degraded = Signal(int)
    cancelled = Signal(str)
    error = Signal(str)

    def __init__(
        self,
        captions: list[Caption],
        settings: AnimationSettings,
        output_path: Path,
        options: ExportOptions | None = None,
        **export_kwargs,
    ):
        super().__init__()
        # 내보내기 시작 시점의 스냅샷
        self._captions = tuple(captions)
        self._settings = settings
        self._output_path = output_path
        self._options = options
        self._export_kwargs = export_kwargs
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def run(self) -> None:
        try:
            result = export_video(
                self._captions,
                self._settings,
                self._output_path,
                options=self._options,
                on_progress=lambda cur, total: self.progress.emit(cur, total),
                is_cancelled=lambda: self._cancelled,
                **self._export_kwargs,
            )
            if result.cancelled:
                self.cancelled.emit(str(result.output_path))
                return
            if result.degraded:
                self.degraded.emit(len(result.substituted_frames))
            self.finished.emit(str(result.output_path))
        except Exception as e:
            self.error.emit(str(e))
