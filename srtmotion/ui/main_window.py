"""Main application window: preview stage, transport bar and export menu."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import Qt, QThread
from PySide6.QtGui import QAction, QKeySequence, QUndoStack
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from srtmotion.models.session import Session
from srtmotion.models.settings import ANIMATION_TYPES, AnimationSettings
from srtmotion.services.font_loader import FontUploadError, load_custom_font
from srtmotion.services.html_generator import document_file_name, generate_standalone_html
from srtmotion.services.interchange_exporter import (
    generate_ass,
    generate_fusion_setting,
    generate_premiere_xml,
    interchange_file_name,
)
from srtmotion.services.playback_clock import PLAYING, PlaybackClock
from srtmotion.services.settings_manager import SettingsManager
from srtmotion.services.srt_parser import import_srt
from srtmotion.services.video_exporter import ExportOptions, export_file_name
from srtmotion.ui.preview_widget import PreviewWidget
from srtmotion.utils.config import APP_NAME, FONT_FILTER, SUBTITLE_FILTER
from srtmotion.utils.time_utils import format_display
from srtmotion.workers.export_worker import ExportWorker

logger = logging.getLogger(__name__)

# 슬라이더 해상도 (ms 단위)
_SLIDER_SCALE = 1000


def export_status_message(output_path: str, substituted: int = 0) -> str:
    if substituted:
        return f"Exported {output_path} ({substituted} frame(s) substituted)"
    return f"Exported {output_path}"


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.resize(1280, 800)

        self._prefs = SettingsManager()
        self._session = Session(settings=self._prefs.get_animation_settings())
        self._stage_size = self._prefs.get_stage_size()
        self._clock = PlaybackClock(parent=self)
        self._clock.loop = True
        self._undo_stack = QUndoStack(self)
        self._export_thread: QThread | None = None
        self._export_worker: ExportWorker | None = None
        self._clock_state = None
        self._substituted = 0

        self._preview = PreviewWidget(self._session, self._clock, self._undo_stack, self._stage_size)
        self._build_transport()
        self._build_menu()

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(self._preview, 1)
        layout.addLayout(self._transport)
        self.setCentralWidget(central)

        self._clock.time_changed.connect(self._on_time_changed)
        self._clock.state_changed.connect(self._on_state_changed)

    # ------------------------------------------------------------ layout

    def _build_transport(self) -> None:
        self._play_btn = QPushButton("▶")
        self._play_btn.setFixedWidth(36)
        self._play_btn.clicked.connect(self._toggle_play)

        self._seek_slider = QSlider(Qt.Orientation.Horizontal)
        self._seek_slider.setRange(0, 0)
        self._seek_slider.sliderMoved.connect(lambda v: self._clock.seek(v / _SLIDER_SCALE))

        self._time_label = QLabel(format_display(0))
        self._time_label.setFixedWidth(80)

        self._anim_combo = QComboBox()
        self._anim_combo.addItems(list(ANIMATION_TYPES))
        self._anim_combo.setCurrentText(self._session.settings.animation_type)
        self._anim_combo.currentTextChanged.connect(self._on_animation_changed)

        self._transport = QHBoxLayout()
        self._transport.addWidget(self._play_btn)
        self._transport.addWidget(self._seek_slider, 1)
        self._transport.addWidget(self._time_label)
        self._transport.addWidget(self._anim_combo)

    def _build_menu(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        self._add_action(file_menu, "&Open Subtitles...", self._open_srt, QKeySequence.StandardKey.Open)
        self._add_action(file_menu, "Load &Font...", self._load_font)
        file_menu.addSeparator()
        self._add_action(file_menu, "Export &Video...", self._export_video)
        self._add_action(file_menu, "Export &HTML...", self._export_html)
        self._add_action(file_menu, "Export &Premiere XML...", lambda: self._export_text("premiere"))
        self._add_action(file_menu, "Export &DaVinci Fusion...", lambda: self._export_text("fusion"))
        self._add_action(file_menu, "Export &ASS Subtitles...", lambda: self._export_text("ass"))

        edit_menu = self.menuBar().addMenu("&Edit")
        undo = self._undo_stack.createUndoAction(self, "&Undo")
        undo.setShortcut(QKeySequence.StandardKey.Undo)
        redo = self._undo_stack.createRedoAction(self, "&Redo")
        redo.setShortcut(QKeySequence.StandardKey.Redo)
        edit_menu.addAction(undo)
        edit_menu.addAction(redo)

    def _add_action(self, menu, text, slot, shortcut=None) -> QAction:
        action = QAction(text, self)
        if shortcut is not None:
            action.setShortcut(shortcut)
        action.triggered.connect(slot)
        menu.addAction(action)
        return action

    # ------------------------------------------------------------ session

    def load_srt(self, path: Path) -> None:
        try:
            result = import_srt(path)
        except (OSError, UnicodeDecodeError) as e:
            QMessageBox.critical(self, "Error", f"Failed to read subtitles:\n{e}")
            return
        if not result.captions:
            QMessageBox.warning(self, "Error", "No valid subtitles found in file.")
            return
        self._undo_stack.clear()
        self._clock.stop()
        self._session.load_captions(result.captions, path.name)
        self._clock.set_duration(self._session.duration)
        self._seek_slider.setRange(0, int(self._session.duration * _SLIDER_SCALE))
        self.setWindowTitle(f"{APP_NAME} - {path.name}")
        if result.errors:
            self.statusBar().showMessage(f"Skipped {len(result.errors)} malformed block(s)", 5000)
        self._preview.update()

    def _open_srt(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Subtitles", "", SUBTITLE_FILTER)
        if path:
            self.load_srt(Path(path))

    def _load_font(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Load Font", "", FONT_FILTER)
        if not path:
            return
        try:
            font = load_custom_font(Path(path))
        except FontUploadError as e:
            QMessageBox.warning(self, "Font", str(e))
            return
        self._session.add_font(font)
        self._prefs.set_animation_settings(self._session.settings)
        self._preview.update()

    def _on_animation_changed(self, animation_type: str) -> None:
        self._session.settings = self._session.settings.evolve(animation_type=animation_type)
        self._prefs.set_animation_settings(self._session.settings)
        self._preview.update()

    # ------------------------------------------------------------ transport

    def _toggle_play(self) -> None:
        if self._clock.is_playing:
            self._clock.pause()
        elif self._session.has_captions:
            self._clock.play()

    def _on_time_changed(self, t: float) -> None:
        self._time_label.setText(format_display(t))
        if not self._seek_slider.isSliderDown():
            self._seek_slider.setValue(int(t * _SLIDER_SCALE))

    def _on_state_changed(self, state: str) -> None:
        self._play_btn.setText("⏸" if state == PLAYING else "▶")

    # ------------------------------------------------------------ export

    def _ask_save_path(self, title: str, default_name: str, file_filter: str) -> Path | None:
        start_dir = self._prefs.get_last_export_dir()
        default = str(Path(start_dir) / default_name) if start_dir else default_name
        path, _ = QFileDialog.getSaveFileName(self, title, default, file_filter)
        if not path:
            return None
        self._prefs.set_last_export_dir(str(Path(path).parent))
        return Path(path)

    def _export_html(self) -> None:
        if not self._session.has_captions:
            return
        path = self._ask_save_path(
            "Export HTML", document_file_name(self._session.source_name), "HTML (*.html)"
        )
        if path is None:
            return
        content = generate_standalone_html(
            self._session.captions,
            self._session.settings,
            self._session.custom_fonts,
            fps=self._prefs.get_export_fps(),
            stage_size=self._stage_size,
        )
        path.write_text(content, encoding="utf-8")
        self.statusBar().showMessage(f"Saved {path}", 5000)

    def _export_text(self, kind: str) -> None:
        if not self._session.has_captions:
            return
        name = interchange_file_name(self._session.source_name, kind)
        path = self._ask_save_path("Export", name, "All Files (*)")
        if path is None:
            return
        captions = list(self._session.captions)
        fps = self._prefs.get_export_fps()
        if kind == "premiere":
            content = generate_premiere_xml(
                captions, self._session.settings, Path(name).stem, fps, self._stage_size
            )
        elif kind == "fusion":
            content = generate_fusion_setting(captions, self._session.settings, fps, self._stage_size)
        else:
            content = generate_ass(captions, self._session.settings, self._stage_size)
        path.write_text(content, encoding="utf-8")
        self.statusBar().showMessage(f"Saved {path}", 5000)

    def _export_video(self) -> None:
        if not self._session.has_captions or self._export_thread is not None:
            return
        settings: AnimationSettings = self._session.settings
        name = export_file_name(self._session.source_name, settings.is_transparent, ".mp4")
        path = self._ask_save_path("Export Video", name, "Video (*.mp4 *.webm *.mov)")
        if path is None:
            return

        # 내보내기 동안 미리보기 시계 정지
        self._clock_state = self._clock.suspend()
        options = ExportOptions(fps=self._prefs.get_export_fps(), stage_size=self._stage_size)
        self._export_worker = ExportWorker(self._session.captions.snapshot(), settings, path, options)
        self._export_thread = QThread(self)
        self._export_worker.moveToThread(self._export_thread)
        self._export_thread.started.connect(self._export_worker.run)

        self._progress = QProgressDialog("Rendering frames...", "Cancel", 0, 100, self)
        self._progress.setWindowModality(Qt.WindowModality.WindowModal)
        worker = self._export_worker
        # 워커 스레드는 run() 중이므로 큐 연결 대신 플래그를 직접 세운다
        self._progress.canceled.connect(lambda: worker.cancel())
        self._export_worker.progress.connect(self._on_export_progress)
        self._substituted = 0
        self._export_worker.degraded.connect(self._on_export_degraded)
        self._export_worker.finished.connect(
            lambda p: self._on_export_done(export_status_message(p, self._substituted))
        )
        self._export_worker.cancelled.connect(lambda p: self._on_export_done(f"Export cancelled ({p})"))
        self._export_worker.error.connect(self._on_export_error)
        self._export_thread.start()

    def _on_export_progress(self, current: int, total: int) -> None:
        if total > 0:
            self._progress.setValue(int(current / total * 100))

    def _on_export_degraded(self, count: int) -> None:
        logger.warning("Export substituted %d frame(s)", count)
        self._substituted = count

    def _on_export_done(self, message: str) -> None:
        self._cleanup_export()
        self.statusBar().showMessage(message, 8000)

    def _on_export_error(self, message: str) -> None:
        self._cleanup_export()
        QMessageBox.critical(self, "Export Failed", message)

    def _cleanup_export(self) -> None:
        self._progress.close()
        if self._export_thread is not None:
            self._export_thread.quit()
            self._export_thread.wait()
        self._export_thread = None
        self._export_worker = None
        if self._clock_state is not None:
            self._clock.restore(self._clock_state)
            self._clock_state = None
