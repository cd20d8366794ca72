"""Evaluator output models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UnitState:
    """One character or word of a reveal-family caption."""

    text: str
    opacity: float = 1.0
    translate_y: float = 0.0
    scale: float = 1.0
    rotate_x: float = 0.0  # degrees, flip around the baseline
    blur: float = 0.0


@dataclass(frozen=True, slots=True)
class VisualState:
    """Caption-local animation state at one instant.

    rotation is in radians, skew_x is a shear factor (x += skew_x * y),
    glow and blur are radii in pixels.
    """

    opacity: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0
    skew_x: float = 0.0
    glow: float = 0.0
    blur: float = 0.0
    revealed_text: str = ""
    units: tuple[UnitState, ...] = ()

    @property
    def visible(self) -> bool:
        return self.opacity > 0.0


HIDDEN = VisualState(opacity=0.0)
