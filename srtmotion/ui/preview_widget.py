"""Interactive caption preview: live playback, selection and placement gizmo."""

from __future__ import annotations

import logging

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QKeySequence, QPainter, QPen, QPolygonF, QUndoStack
from PySide6.QtWidgets import QWidget

from srtmotion.models.session import Session
from srtmotion.services import selection as sel
from srtmotion.services.frame_rasterizer import FrameRasterizer, RasterizationError
from srtmotion.services.placement_compositor import ComposedCaption, compose_scene
from srtmotion.services.playback_clock import PlaybackClock
from srtmotion.services.scene_driver import Scene
from srtmotion.services.transform_gizmo import (
    MODE_MOVE,
    MODE_SCALE,
    DragSession,
    begin_drag,
    selection_center,
)
from srtmotion.ui.commands import EditPlacementCommand
from srtmotion.utils.config import DEFAULT_STAGE_HEIGHT, DEFAULT_STAGE_WIDTH

logger = logging.getLogger(__name__)

# 크기 조절 핸들 반경 (위젯 픽셀)
_HANDLE_RADIUS = 8


class PreviewWidget(QWidget):
    """Paints the caption stage at the clock's current time.

    Click selects (Shift: range, Ctrl: toggle); dragging a selected caption
    moves the whole selection, dragging the corner handle scales it.
    """

    selection_changed = Signal()
    captions_changed = Signal()

    def __init__(
        self,
        session: Session,
        clock: PlaybackClock,
        undo_stack: QUndoStack,
        stage_size: tuple[int, int] = (DEFAULT_STAGE_WIDTH, DEFAULT_STAGE_HEIGHT),
        parent=None,
    ):
        super().__init__(parent)
        self._session = session
        self._clock = clock
        self._undo_stack = undo_stack
        self._stage_size = stage_size
        self._rasterizer = FrameRasterizer()
        self._items: list[ComposedCaption] = []
        self._last_image: QImage | None = None
        self._drag: DragSession | None = None
        self._drag_moved = False

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(480, 270)
        self._clock.time_changed.connect(lambda _t: self.update())
        self._undo_stack.indexChanged.connect(lambda _i: self._on_captions_edited())

    # ------------------------------------------------------------ geometry

    def _target_rect(self) -> QRectF:
        w, h = self._stage_size
        scale = min(self.width() / w, self.height() / h)
        tw, th = w * scale, h * scale
        return QRectF((self.width() - tw) / 2, (self.height() - th) / 2, tw, th)

    def _to_stage(self, pos: QPointF) -> tuple[float, float]:
        rect = self._target_rect()
        scale = rect.width() / self._stage_size[0]
        return ((pos.x() - rect.x()) / scale, (pos.y() - rect.y()) / scale)

    def _to_widget(self, x: float, y: float) -> QPointF:
        rect = self._target_rect()
        scale = rect.width() / self._stage_size[0]
        return QPointF(rect.x() + x * scale, rect.y() + y * scale)

    def _outline(self, item: ComposedCaption) -> list[tuple[float, float]]:
        return self._rasterizer.caption_outline(item, self._session.settings, self._stage_size[0])

    def _selection_bounds(self) -> tuple[float, float, float, float] | None:
        boxes = []
        for item in self._items:
            if item.caption.id in self._session.selection:
                pts = self._outline(item)
                xs = [p[0] for p in pts]
                ys = [p[1] for p in pts]
                boxes.append((min(xs), min(ys), max(xs), max(ys)))
        if not boxes:
            return None
        return (
            min(b[0] for b in boxes), min(b[1] for b in boxes),
            max(b[2] for b in boxes), max(b[3] for b in boxes),
        )

    # ------------------------------------------------------------ painting

    def paintEvent(self, event) -> None:
        session = self._session
        self._items = compose_scene(
            session.captions,
            session.settings,
            self._clock.current_time,
            self._stage_size,
            session.selection.ids,
        )
        scene = Scene(self._clock.current_time, self._stage_size, session.settings, tuple(self._items))
        try:
            self._last_image = self._rasterizer.render_image(scene)
        except RasterizationError as e:
            logger.warning("Preview frame failed: %s", e)

        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), QColor(17, 17, 17))
            rect = self._target_rect()
            if session.settings.is_transparent:
                painter.fillRect(rect, QColor(40, 40, 40))
            if self._last_image is not None:
                painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
                painter.drawImage(rect, self._last_image)
            self._paint_selection(painter)
        finally:
            painter.end()

    def _paint_selection(self, painter: QPainter) -> None:
        pen = QPen(QColor(60, 140, 220))
        pen.setWidth(1)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for item in self._items:
            if item.caption.id in self._session.selection:
                poly = QPolygonF([self._to_widget(x, y) for x, y in self._outline(item)])
                painter.drawPolygon(poly)
        bounds = self._selection_bounds()
        if bounds is not None:
            handle = self._to_widget(bounds[2], bounds[3])
            painter.setBrush(QColor(60, 140, 220))
            painter.drawEllipse(handle, _HANDLE_RADIUS / 2, _HANDLE_RADIUS / 2)

    # ------------------------------------------------------------ mouse

    def _hit_test(self, point: tuple[float, float]) -> str | None:
        # 위에 그려진 자막부터 검사
        for item in reversed(self._items):
            poly = QPolygonF([QPointF(x, y) for x, y in self._outline(item)])
            if poly.containsPoint(QPointF(*point), Qt.FillRule.OddEvenFill):
                return item.caption.id
        return None

    def _on_handle(self, pos: QPointF) -> bool:
        bounds = self._selection_bounds()
        if bounds is None:
            return False
        handle = self._to_widget(bounds[2], bounds[3])
        return (handle - pos).manhattanLength() <= _HANDLE_RADIUS * 2

    def mousePressEvent(self, event) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        point = self._to_stage(pos)
        session = self._session
        mode = MODE_MOVE
        if self._on_handle(pos):
            mode = MODE_SCALE
        else:
            hit = self._hit_test(point)
            mods = event.modifiers()
            if hit is None:
                if not mods & (Qt.KeyboardModifier.ShiftModifier | Qt.KeyboardModifier.ControlModifier):
                    self._set_selection(sel.clear(session.selection))
                return
            if hit not in session.selection or mods:
                self._set_selection(sel.click(
                    session.selection,
                    session.captions.ids(),
                    hit,
                    shift=bool(mods & Qt.KeyboardModifier.ShiftModifier),
                    ctrl=bool(mods & Qt.KeyboardModifier.ControlModifier),
                ))
        bounds = self._selection_bounds()
        if bounds is None:
            return
        self._drag = begin_drag(
            session.captions,
            session.selection.ids,
            mode,
            point,
            selection_center([bounds]),
            self._stage_size,
        )
        self._drag_moved = False

    def mouseMoveEvent(self, event) -> None:
        if self._drag is None:
            return
        updated = self._drag.update(self._to_stage(event.position()))
        if updated:
            self._session.captions.replace_many(updated)
            self._drag_moved = True
            self.update()

    def mouseReleaseEvent(self, event) -> None:
        drag, self._drag = self._drag, None
        if drag is None or not self._drag_moved:
            return
        final = drag.update(self._to_stage(event.position()))
        # 드래그 전 값으로 되돌린 뒤 명령으로 적용 (undo 가능)
        self._session.captions.replace_many(item.caption for item in drag.items)
        if final:
            text = "Scale captions" if drag.mode == MODE_SCALE else "Move captions"
            self._undo_stack.push(EditPlacementCommand(self._session.captions, final, text))

    # ------------------------------------------------------------ keyboard

    def keyPressEvent(self, event) -> None:
        session = self._session
        if event.key() == Qt.Key.Key_Space:
            if self._clock.is_playing:
                self._clock.pause()
            else:
                self._clock.play()
        elif event.matches(QKeySequence.StandardKey.SelectAll):
            self._set_selection(sel.select_all(session.selection, session.captions.ids()))
        elif event.matches(QKeySequence.StandardKey.Copy):
            ids = sel.ordered(session.selection, session.captions.ids())
            if ids:
                session.clipboard = sel.copy_placement(session.captions.get(ids[0]))
        elif event.matches(QKeySequence.StandardKey.Paste):
            pasted = sel.paste_placement(list(session.captions), session.selection, session.clipboard)
            if pasted:
                self._undo_stack.push(EditPlacementCommand(session.captions, pasted, "Paste placement"))
        elif event.matches(QKeySequence.StandardKey.Undo):
            self._undo_stack.undo()
        elif event.matches(QKeySequence.StandardKey.Redo):
            self._undo_stack.redo()
        elif event.key() == Qt.Key.Key_Escape:
            self._set_selection(sel.clear(session.selection))
        else:
            super().keyPressEvent(event)

    # ------------------------------------------------------------ state

    def _set_selection(self, selection) -> None:
        if selection == self._session.selection:
            return
        self._session.selection = selection
        self.selection_changed.emit()
        self.update()

    def _on_captions_edited(self) -> None:
        self._clock.set_duration(self._session.duration)
        self.captions_changed.emit()
        self.update()
