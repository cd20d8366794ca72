"""Placement compositor: stage anchoring, per-caption placement and stacking.

Transform order is fixed: stage centre → placement offset → placement scale
→ animation translate → rotate → skew → animation scale. Placement builds the
caption's own coordinate frame first, so animations move relative to the
user-placed anchor rather than the stage origin.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.models.visual_state import VisualState
from srtmotion.services.animation_evaluator import DEFAULT_STAGE, StageSize, evaluate

BASE_Z_INDEX = 10


def _translate(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])


def _scale(sx: float, sy: float) -> np.ndarray:
    return np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])


def _rotate(radians: float) -> np.ndarray:
    c, s = math.cos(radians), math.sin(radians)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _skew_x(factor: float) -> np.ndarray:
    return np.array([[1.0, factor, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])


@dataclass(frozen=True)
class FinalTransform:
    """Stage-space transform for one caption plus its paint attributes."""

    matrix: np.ndarray  # 3x3, maps caption-local points to stage pixels
    opacity: float
    glow: float = 0.0
    blur: float = 0.0
    z_index: int = BASE_Z_INDEX

    def as_qt_args(self) -> tuple[float, float, float, float, float, float]:
        """(m11, m12, m21, m22, dx, dy) in QTransform argument order."""
        m = self.matrix
        return (m[0, 0], m[1, 0], m[0, 1], m[1, 1], m[0, 2], m[1, 2])

    def as_css(self) -> str:
        """CSS ``matrix()`` value (a, b, c, d, e, f)."""
        m = self.matrix
        values = (m[0, 0], m[1, 0], m[0, 1], m[1, 1], m[0, 2], m[1, 2])
        return "matrix({})".format(", ".join(f"{v:.4f}" for v in values))

    def map_point(self, x: float, y: float) -> tuple[float, float]:
        px, py, _ = self.matrix @ np.array([x, y, 1.0])
        return float(px), float(py)


def compose(
    caption: Caption,
    state: VisualState,
    stage_size: StageSize = DEFAULT_STAGE,
    z_index: int = BASE_Z_INDEX,
) -> FinalTransform:
    width, height = stage_size
    placement = caption.effective_placement
    matrix = (
        _translate(width / 2, height / 2)
        @ _translate(width * placement.x / 100, height * placement.y / 100)
        @ _scale(placement.scale, placement.scale)
        @ _translate(state.translate_x, state.translate_y)
        @ _rotate(state.rotation)
        @ _skew_x(state.skew_x)
        @ _scale(state.scale_x, state.scale_y)
    )
    return FinalTransform(
        matrix=matrix,
        opacity=state.opacity,
        glow=state.glow,
        blur=state.blur,
        z_index=z_index,
    )


def stacking_order(
    active: Sequence[Caption],
    selected_ids: Iterable[str] = (),
) -> list[tuple[Caption, int]]:
    """Assign z-indices bottom-to-top.

    List order among the active captions, with selected captions promoted
    above all unselected ones (keeping their relative list order).
    """
    selected = set(selected_ids)
    ordered = [c for c in active if c.id not in selected] + [c for c in active if c.id in selected]
    return [(cap, BASE_Z_INDEX + i) for i, cap in enumerate(ordered)]


@dataclass(frozen=True)
class ComposedCaption:
    caption: Caption
    state: VisualState
    transform: FinalTransform


def compose_scene(
    captions: Iterable[Caption],
    settings: AnimationSettings,
    t: float,
    stage_size: StageSize = DEFAULT_STAGE,
    selected_ids: Iterable[str] = (),
) -> list[ComposedCaption]:
    """Evaluate and compose every caption active at *t*, bottom-to-top."""
    active = [c for c in captions if c.is_active(t)]
    scene: list[ComposedCaption] = []
    for cap, z in stacking_order(active, selected_ids):
        state = evaluate(cap, settings, t, stage_size)
        scene.append(ComposedCaption(cap, state, compose(cap, state, stage_size, z)))
    return scene
