"""Easing curves shared by the animation evaluator and the document emitter."""

from __future__ import annotations

import math

_C1 = 1.70158
_C3 = _C1 + 1
_C4 = (2 * math.pi) / 3


def clamp01(x: float) -> float:
    if x <= 0.0:
        return 0.0
    if x >= 1.0:
        return 1.0
    return x


def linear_ramp(elapsed: float, window: float) -> float:
    """0 → 1 over *window* seconds, clamped."""
    if window <= 0:
        return 1.0 if elapsed >= 0 else 0.0
    return clamp01(elapsed / window)


def ease_out_elastic(x: float) -> float:
    """2^(-10x)·sin((10x − 0.75)·2π/3) + 1 with exact 0 and 1 at the ends."""
    if x <= 0.0:
        return 0.0
    if x >= 1.0:
        return 1.0
    return math.pow(2, -10 * x) * math.sin((x * 10 - 0.75) * _C4) + 1


def ease_out_back(x: float) -> float:
    """1 + c3·(x−1)^3 + c1·(x−1)^2; overshoots past 1 before settling."""
    return 1 + _C3 * math.pow(x - 1, 3) + _C1 * math.pow(x - 1, 2)


def ease_out_cubic(x: float) -> float:
    x = clamp01(x)
    return 1 - math.pow(1 - x, 3)
