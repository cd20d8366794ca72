"""Move/scale drag sessions for the placement gizmo.

A drag snapshots the starting placement of every selected caption; each
pointer update recomputes new placements from that snapshot, so repeated
updates never accumulate rounding error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from srtmotion.models.caption import Caption, Placement
from srtmotion.utils.config import MIN_PLACEMENT_SCALE

MODE_MOVE = "move"
MODE_SCALE = "scale"


@dataclass(frozen=True, slots=True)
class DragItem:
    caption: Caption
    initial: Placement


@dataclass(frozen=True)
class DragSession:
    """One gizmo drag, from pointer-down to pointer-up."""

    mode: str
    start: tuple[float, float]
    center: tuple[float, float]
    stage_size: tuple[float, float]
    items: tuple[DragItem, ...]

    def update(self, pointer: tuple[float, float]) -> list[Caption]:
        if self.mode == MODE_MOVE:
            return self.move(pointer)
        return self.scale(pointer)

    def move(self, pointer: tuple[float, float]) -> list[Caption]:
        width, height = self.stage_size
        dx = (pointer[0] - self.start[0]) / width * 100
        dy = (pointer[1] - self.start[1]) / height * 100
        return [
            item.caption.with_placement(
                Placement(item.initial.x + dx, item.initial.y + dy, item.initial.scale)
            )
            for item in self.items
        ]

    def scale(self, pointer: tuple[float, float]) -> list[Caption]:
        start_dist = math.hypot(self.start[0] - self.center[0], self.start[1] - self.center[1])
        if start_dist == 0:
            return []
        current_dist = math.hypot(pointer[0] - self.center[0], pointer[1] - self.center[1])
        return self.scale_by(current_dist / start_dist)

    def scale_by(self, factor: float) -> list[Caption]:
        return [
            item.caption.with_placement(
                Placement(
                    item.initial.x,
                    item.initial.y,
                    max(MIN_PLACEMENT_SCALE, item.initial.scale * factor),
                )
            )
            for item in self.items
        ]


def begin_drag(
    captions: Iterable[Caption],
    selected_ids: Iterable[str],
    mode: str,
    pointer: tuple[float, float],
    center: tuple[float, float],
    stage_size: tuple[float, float],
) -> DragSession | None:
    """Start a drag for the selected captions; None when nothing is selected.

    *center* is the gizmo anchor (bounding-box centre of the selection in
    stage pixels); only the scale mode uses it.
    """
    if mode not in (MODE_MOVE, MODE_SCALE):
        raise ValueError(f"Unknown drag mode: {mode!r}")
    selected = set(selected_ids)
    items = tuple(
        DragItem(cap, cap.effective_placement) for cap in captions if cap.id in selected
    )
    if not items:
        return None
    return DragSession(mode, pointer, center, stage_size, items)


def selection_center(
    bounds: Sequence[tuple[float, float, float, float]],
) -> tuple[float, float]:
    """Centre of the union of (left, top, right, bottom) boxes."""
    left = min(b[0] for b in bounds)
    top = min(b[1] for b in bounds)
    right = max(b[2] for b in bounds)
    bottom = max(b[3] for b in bounds)
    return ((left + right) / 2, (top + bottom) / 2)
