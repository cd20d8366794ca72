"""Offscreen rasterizer: composed scene → RGBA pixel buffer.

Paints with QPainter onto QImage layers; blur and glow are applied to layer
pixels with a numpy box blur. Output is straight-alpha RGBA, which is what
FFmpeg expects for ``-pix_fmt rgba`` raw video.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from PySide6.QtCore import QPointF
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QGuiApplication,
    QImage,
    QPainter,
    QTransform,
)

from srtmotion.models.settings import AnimationSettings
from srtmotion.models.visual_state import UnitState
from srtmotion.services.placement_compositor import ComposedCaption
from srtmotion.services.scene_driver import Scene

logger = logging.getLogger(__name__)

_LAYER_FORMAT = QImage.Format.Format_RGBA8888_Premultiplied
_OUTPUT_FORMAT = QImage.Format.Format_RGBA8888


class RasterizationError(RuntimeError):
    """A frame could not be painted."""


def box_blur(pixels: np.ndarray, radius: int) -> np.ndarray:
    """Separable box blur on an (H, W, C) uint8 array; edges fade to transparent."""
    if radius < 1:
        return pixels.copy()
    data = pixels.astype(np.float32)
    k = 2 * radius + 1
    for axis in (0, 1):
        pad = [(0, 0)] * data.ndim
        pad[axis] = (radius + 1, radius)
        csum = np.cumsum(np.pad(data, pad), axis=axis)
        n = csum.shape[axis]
        data = (
            np.take(csum, np.arange(k, n), axis=axis)
            - np.take(csum, np.arange(0, n - k), axis=axis)
        ) / k
    return np.clip(data + 0.5, 0, 255).astype(np.uint8)


def image_to_array(image: QImage) -> np.ndarray:
    """Copy a 4-byte-per-pixel QImage into an (H, W, 4) uint8 array."""
    w, h = image.width(), image.height()
    buf = np.frombuffer(image.constBits(), dtype=np.uint8, count=image.sizeInBytes())
    rows = buf.reshape(h, image.bytesPerLine())
    return rows[:, : w * 4].reshape(h, w, 4).copy()


def array_to_image(pixels: np.ndarray, fmt: QImage.Format = _LAYER_FORMAT) -> QImage:
    h, w = pixels.shape[:2]
    data = np.ascontiguousarray(pixels, dtype=np.uint8)
    # QImage는 버퍼를 참조만 하므로 즉시 복사
    return QImage(data.tobytes(), w, h, w * 4, fmt).copy()


def _blank_layer(width: int, height: int) -> QImage:
    image = QImage(width, height, _LAYER_FORMAT)
    if image.isNull():
        raise RasterizationError(f"Could not allocate {width}x{height} layer")
    image.fill(QColor(0, 0, 0, 0))
    return image


class _TextLayout:
    """Line metrics for one caption, centred on the local origin."""

    def __init__(self, text: str, font: QFont, align: str):
        self.metrics = QFontMetricsF(font)
        self.lines = text.split("\n")
        self.line_height = self.metrics.height()
        self.ascent = self.metrics.ascent()
        self.widths = [self.metrics.horizontalAdvance(line) for line in self.lines]
        self.block_width = max(self.widths) if self.widths else 0.0
        self.top = -self.line_height * len(self.lines) / 2
        self.align = align

    def line_origin(self, index: int) -> QPointF:
        """Baseline start point of line *index*."""
        width = self.widths[index]
        if self.align == "left":
            x = -self.block_width / 2
        elif self.align == "right":
            x = self.block_width / 2 - width
        else:
            x = -width / 2
        return QPointF(x, self.top + index * self.line_height + self.ascent)


class FrameRasterizer:
    """QPainter rasterizer implementing ``render(scene) -> ndarray``."""

    def render(self, scene: Scene) -> np.ndarray:
        return image_to_array(self.render_image(scene).convertToFormat(_OUTPUT_FORMAT))

    def render_image(self, scene: Scene) -> QImage:
        """Paint the scene into a premultiplied QImage (used directly by the preview)."""
        if QGuiApplication.instance() is None:
            raise RasterizationError("Text rasterization requires a QGuiApplication")
        width, height = scene.stage_size
        frame = _blank_layer(width, height)
        if not scene.settings.is_transparent:
            frame.fill(QColor(scene.settings.background_color))

        painter = QPainter()
        if not painter.begin(frame):
            raise RasterizationError("QPainter.begin() failed on frame buffer")
        try:
            for item in scene.items:
                if item.state.opacity <= 0:
                    continue
                layer = self._paint_caption(item, scene.settings, width, height)
                painter.setOpacity(item.state.opacity)
                painter.drawImage(0, 0, layer)
        finally:
            painter.end()
        return frame

    def caption_outline(
        self,
        item: ComposedCaption,
        settings: AnimationSettings,
        stage_width: int,
    ) -> list[tuple[float, float]]:
        """Stage-space corners of the caption's text block (for hit tests and gizmos)."""
        layout = _TextLayout(item.caption.text, self._font(settings, stage_width), settings.text_align)
        half_w = layout.block_width / 2
        top, bottom = layout.top, -layout.top
        corners = [(-half_w, top), (half_w, top), (half_w, bottom), (-half_w, bottom)]
        return [item.transform.map_point(x, y) for x, y in corners]

    # ------------------------------------------------------------ caption

    def _font(self, settings: AnimationSettings, stage_width: int) -> QFont:
        font = QFont(settings.font_family)
        font.setPixelSize(max(1, int(round(settings.font_size_px(stage_width)))))
        return font

    def _paint_caption(
        self,
        item: ComposedCaption,
        settings: AnimationSettings,
        width: int,
        height: int,
    ) -> QImage:
        state = item.state
        font = self._font(settings, width)
        color = QColor(settings.text_color)
        layout = _TextLayout(item.caption.text, font, settings.text_align)

        layer = _blank_layer(width, height)
        painter = QPainter()
        if not painter.begin(layer):
            raise RasterizationError(f"QPainter.begin() failed for caption {item.caption.id}")
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            painter.setTransform(QTransform(*item.transform.as_qt_args()))
            painter.setFont(font)
            painter.setPen(color)
            if state.units:
                self._paint_units(painter, state.units, layout, font, color)
            else:
                for i, line in enumerate(layout.lines):
                    painter.drawText(layout.line_origin(i), line)
        finally:
            painter.end()

        if state.blur > 0:
            layer = array_to_image(box_blur(image_to_array(layer), int(round(state.blur))))
        if state.glow > 0:
            layer = self._with_glow(layer, state.glow)
        return layer

    def _with_glow(self, layer: QImage, glow: float) -> QImage:
        pixels = image_to_array(layer)
        halo = box_blur(pixels, max(1, int(round(glow / 2))))
        out = array_to_image(halo)
        painter = QPainter(out)
        try:
            # 두 번 겹쳐서 네온 느낌을 강화
            painter.drawImage(0, 0, array_to_image(halo))
            painter.drawImage(0, 0, layer)
        finally:
            painter.end()
        return out

    # ------------------------------------------------------------ units

    def _paint_units(
        self,
        painter: QPainter,
        units: tuple[UnitState, ...],
        layout: _TextLayout,
        font: QFont,
        color: QColor,
    ) -> None:
        metrics = layout.metrics
        line = 0
        cursor = layout.line_origin(0)
        for unit in units:
            segments = unit.text.split("\n")
            for seg_index, segment in enumerate(segments):
                if seg_index > 0:
                    line = min(line + 1, len(layout.lines) - 1)
                    cursor = layout.line_origin(line)
                if not segment:
                    continue
                advance = metrics.horizontalAdvance(segment)
                if not segment.isspace() and unit.opacity > 0:
                    self._paint_unit(painter, unit, segment, cursor, advance, layout, font, color)
                cursor = QPointF(cursor.x() + advance, cursor.y())

    def _paint_unit(
        self,
        painter: QPainter,
        unit: UnitState,
        segment: str,
        baseline: QPointF,
        advance: float,
        layout: _TextLayout,
        font: QFont,
        color: QColor,
    ) -> None:
        # 글자 중심 기준으로 변형
        cx = baseline.x() + advance / 2
        cy = baseline.y() - layout.ascent / 2
        flip = math.cos(math.radians(unit.rotate_x))

        painter.save()
        try:
            painter.setOpacity(painter.opacity() * unit.opacity)
            painter.translate(cx, cy + unit.translate_y)
            painter.scale(unit.scale, unit.scale * flip)
            origin = QPointF(-advance / 2, layout.ascent / 2)
            if unit.blur > 0:
                self._draw_blurred(painter, segment, origin, layout, font, color, unit.blur)
            else:
                painter.drawText(origin, segment)
        finally:
            painter.restore()

    def _draw_blurred(
        self,
        painter: QPainter,
        segment: str,
        origin: QPointF,
        layout: _TextLayout,
        font: QFont,
        color: QColor,
        blur: float,
    ) -> None:
        radius = int(round(blur))
        pad = radius * 2 + 2
        w = int(math.ceil(layout.metrics.horizontalAdvance(segment))) + pad * 2
        h = int(math.ceil(layout.line_height)) + pad * 2
        tile = _blank_layer(w, h)
        tp = QPainter(tile)
        try:
            tp.setRenderHint(QPainter.RenderHint.TextAntialiasing)
            tp.setFont(font)
            tp.setPen(color)
            tp.drawText(QPointF(pad, pad + layout.ascent), segment)
        finally:
            tp.end()
        tile = array_to_image(box_blur(image_to_array(tile), radius))
        painter.drawImage(QPointF(origin.x() - pad, origin.y() - layout.ascent - pad), tile)
