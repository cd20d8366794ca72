"""Deterministic caption animation evaluator.

``evaluate(caption, settings, t)`` is a pure function of its inputs: it keeps
no state between calls, so the preview, the video exporter and the HTML
emitter can all ask for any instant in any order and get the same answer.

Three families of variants are supported (see ``models.settings``):

* envelope  - entry/exit opacity ramps plus closed-form motion
* preset    - multi-phase curves imitating well-known CSS motion presets
* reveal    - per-character / per-word staggered sub-animations

Ramp windows are literal per-effect constants (0.1 s, 0.3 s, 0.5 s, 0.6 s,
1 s), not one shared transition length.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Callable

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.models.visual_state import HIDDEN, UnitState, VisualState
from srtmotion.services.easing import (
    clamp01,
    ease_out_back,
    ease_out_cubic,
    ease_out_elastic,
    linear_ramp,
)
from srtmotion.utils.config import DEFAULT_STAGE_HEIGHT, DEFAULT_STAGE_WIDTH

FADE_DURATION = 0.5

# Preset family
PRESET_INTRO = 1.0
PRESET_SHORT_EXIT = 0.3
PRESET_LONG_EXIT = 0.5

# Envelope extras
BOUNCE_DURATION = 0.6
GLITCH_RATE = 15

# Reveal family
TYPEWRITER_CHAR_DELAY = 0.05
REVEAL_EXIT = 0.3

StageSize = tuple[int, int]
DEFAULT_STAGE: StageSize = (DEFAULT_STAGE_WIDTH, DEFAULT_STAGE_HEIGHT)


class EvaluationError(RuntimeError):
    """Raised for inputs the evaluator cannot handle (a programming defect)."""


@dataclass(frozen=True, slots=True)
class _Clock:
    """Per-call timing values derived from the caption and t."""

    t: float
    start: float
    end: float

    @property
    def elapsed(self) -> float:
        return self.t - self.start

    @property
    def remaining(self) -> float:
        return self.end - self.t

    @property
    def progress(self) -> float:
        return clamp01(self.elapsed / (self.end - self.start))

    @property
    def entry(self) -> float:
        return linear_ramp(self.elapsed, FADE_DURATION)

    @property
    def exit(self) -> float:
        return linear_ramp(self.remaining, FADE_DURATION)

    @property
    def in_entry(self) -> bool:
        return self.elapsed < FADE_DURATION

    @property
    def in_exit(self) -> bool:
        return self.t > self.end - FADE_DURATION


def evaluate(
    caption: Caption,
    settings: AnimationSettings,
    t: float,
    stage_size: StageSize = DEFAULT_STAGE,
) -> VisualState:
    """Return the caption's local visual state at time *t* (seconds).

    Safe to call for any *t*: outside ``[start_time, end_time]`` the result
    is the transparent identity state.
    """
    if not caption.is_active(t):
        return HIDDEN
    handler = _HANDLERS.get(settings.animation_type)
    if handler is None:
        raise EvaluationError(f"No evaluator for animation type {settings.animation_type!r}")
    clock = _Clock(t=t, start=caption.start_time, end=caption.end_time)
    return handler(clock, caption, settings, stage_size)


# ---------------------------------------------------------------- envelope


def _envelope_opacity(clock: _Clock) -> float:
    return clamp01(clock.entry * clock.exit)


def _fade(clock, caption, settings, stage) -> VisualState:
    return VisualState(opacity=_envelope_opacity(clock), revealed_text=caption.text)


def _slide(clock, caption, settings, stage) -> VisualState:
    ty = 0.0
    if clock.in_entry:
        ty = 50 * (1 - clock.entry)
    elif clock.in_exit:
        ty = -50 * (1 - clock.exit)
    return VisualState(opacity=_envelope_opacity(clock), translate_y=ty, revealed_text=caption.text)


def _pop(clock, caption, settings, stage) -> VisualState:
    s = 1.0
    if clock.in_entry:
        s = 0.5 + 0.5 * clock.entry
    elif clock.in_exit:
        s = 1 + 0.2 * (1 - clock.exit)
    return VisualState(opacity=_envelope_opacity(clock), scale_x=s, scale_y=s, revealed_text=caption.text)


def _blur(clock, caption, settings, stage) -> VisualState:
    opacity = _envelope_opacity(clock)
    blur, s = 0.0, 1.0
    if opacity < 1:
        blur = 20 * (1 - opacity)
        s = 1.1 - 0.1 * opacity
    return VisualState(opacity=opacity, scale_x=s, scale_y=s, blur=blur, revealed_text=caption.text)


def _cinema(clock, caption, settings, stage) -> VisualState:
    s = 1 + 0.15 * clock.progress
    return VisualState(opacity=_envelope_opacity(clock), scale_x=s, scale_y=s, revealed_text=caption.text)


def _neon(clock, caption, settings, stage) -> VisualState:
    pulse = math.sin(clock.progress * math.pi * 6)
    return VisualState(
        opacity=_envelope_opacity(clock),
        glow=15 + 15 * abs(pulse),
        revealed_text=caption.text,
    )


def _bounce(clock, caption, settings, stage) -> VisualState:
    ty, s = 0.0, 1.0
    if clock.elapsed < BOUNCE_DURATION:
        p = clock.elapsed / BOUNCE_DURATION
        if p < 0.4:
            ty = -60 * (1 - p / 0.4)
        elif p < 0.7:
            ty = 15 * (1 - (p - 0.4) / 0.3)
        else:
            ty = -5 * (1 - (p - 0.7) / 0.3)
    elif clock.in_exit:
        s = clock.exit
    return VisualState(
        opacity=_envelope_opacity(clock), translate_y=ty, scale_x=s, scale_y=s,
        revealed_text=caption.text,
    )


def _glitch(clock, caption, settings, stage) -> VisualState:
    opacity = _envelope_opacity(clock)
    skew, sx = 0.0, 1.0
    if opacity > 0.5:
        # keyed on absolute time so every caption glitches in sync
        jitter = math.floor(clock.t * GLITCH_RATE) % 10
        if jitter == 0:
            skew = 0.3
        elif jitter == 1:
            skew = -0.3
        elif jitter == 2:
            sx = 1.05
    return VisualState(opacity=opacity, skew_x=skew, scale_x=sx, revealed_text=caption.text)


# ---------------------------------------------------------------- preset


def _exit_ramp(clock: _Clock, window: float) -> float | None:
    """Linear exit value once inside the last *window* seconds, else None."""
    if clock.t > clock.end - window:
        return clamp01(clock.remaining / window)
    return None


def _rubber_band(clock, caption, settings, stage) -> VisualState:
    sx = sy = 1.0
    e = clock.elapsed
    if e < PRESET_INTRO:
        if e < 0.3:
            sx, sy = 1 + 0.25 * (e / 0.3), 1 - 0.25 * (e / 0.3)
        elif e < 0.4:
            sx, sy = 0.75, 1.25
        elif e < 0.5:
            sx, sy = 1.15, 0.85
        elif e < 0.65:
            sx, sy = 0.95, 1.05
        elif e < 0.75:
            sx, sy = 1.05, 0.95
    opacity = linear_ramp(e, 0.1)
    out = _exit_ramp(clock, PRESET_SHORT_EXIT)
    if out is not None:
        opacity = out
    return VisualState(opacity=clamp01(opacity), scale_x=sx, scale_y=sy, revealed_text=caption.text)


def _wobble(clock, caption, settings, stage) -> VisualState:
    tx = rot = 0.0
    e = clock.elapsed
    if e < PRESET_INTRO:
        wave = math.sin(e * math.pi * 6)
        tx = wave * (stage[0] * 0.15) * (1 - e)
        rot = wave * 0.05 * (1 - e)
    opacity = linear_ramp(e, 0.3)
    out = _exit_ramp(clock, PRESET_SHORT_EXIT)
    if out is not None:
        opacity = out
    return VisualState(opacity=clamp01(opacity), translate_x=tx, rotation=rot, revealed_text=caption.text)


def _jello(clock, caption, settings, stage) -> VisualState:
    skew = 0.0
    sx = sy = 1.0
    e = clock.elapsed
    if e < PRESET_INTRO:
        damp = 1 - e
        skew = math.sin(e * math.pi * 8) * 0.3 * damp
        squash = abs(math.sin(e * math.pi * 4) * 0.1 * damp)
        sx, sy = 1 - squash, 1 + squash
    opacity = linear_ramp(e, 0.3)
    out = _exit_ramp(clock, PRESET_SHORT_EXIT)
    if out is not None:
        opacity = out
    return VisualState(
        opacity=clamp01(opacity), skew_x=skew, scale_x=sx, scale_y=sy,
        revealed_text=caption.text,
    )


def _roll_in(clock, caption, settings, stage) -> VisualState:
    width = stage[0]
    tx = rot = 0.0
    opacity = 1.0
    if clock.elapsed < PRESET_INTRO:
        p = clamp01(clock.elapsed)
        b = ease_out_back(p)
        tx = -width * (1 - b)
        rot = -2 * math.pi * (1 - b)
        opacity = p
    out = _exit_ramp(clock, PRESET_LONG_EXIT)
    if out is not None:
        # roll out to the right
        tx = width * (1 - out)
        rot = 2 * math.pi * (1 - out)
        opacity = out
    return VisualState(opacity=clamp01(opacity), translate_x=tx, rotation=rot, revealed_text=caption.text)


def _zoom_in_down(clock, caption, settings, stage) -> VisualState:
    height = stage[1]
    ty = 0.0
    s = 1.0
    opacity = 1.0
    if clock.elapsed < PRESET_INTRO:
        s = ease_out_elastic(clamp01(clock.elapsed))
        ty = -height * (1 - s)
        opacity = min(1.0, clock.elapsed * 2)
    out = _exit_ramp(clock, PRESET_LONG_EXIT)
    if out is not None:
        opacity = out
        ty += height * (1 - out)
    return VisualState(opacity=clamp01(opacity), translate_y=ty, scale_x=s, scale_y=s, revealed_text=caption.text)


def _back_in_down(clock, caption, settings, stage) -> VisualState:
    ty = 0.0
    s = 1.0
    opacity = 1.0
    if clock.elapsed < PRESET_INTRO:
        b = ease_out_back(clamp01(clock.elapsed))
        ty = -1200 * (1 - b)
        s = 0.7 + 0.3 * b
        opacity = b
    out = _exit_ramp(clock, PRESET_LONG_EXIT)
    if out is not None:
        opacity = out
        s = out
    return VisualState(opacity=clamp01(opacity), translate_y=ty, scale_x=s, scale_y=s, revealed_text=caption.text)


# ---------------------------------------------------------------- reveal

_WORD_SPLIT_RE = re.compile(r"(\s+)")


def split_units(text: str, mode: str) -> list[str]:
    """Split caption text into reveal units.

    mode "chars": one unit per character (spaces and newlines included).
    mode "words": words and the whitespace runs between them, in order.
    """
    if mode == "chars":
        return list(text)
    if mode == "words":
        return [part for part in _WORD_SPLIT_RE.split(text) if part]
    raise ValueError(f"Unknown unit mode: {mode!r}")


def chars_shown(text: str, elapsed: float) -> int:
    """Number of typewriter characters visible *elapsed* seconds in."""
    n = len(text)
    if n == 0 or elapsed <= 0:
        return 0
    ratio = elapsed / (n * TYPEWRITER_CHAR_DELAY)
    return int(math.floor(round(min(1.0, ratio) * n, 9)))


def _typewriter(clock, caption, settings, stage) -> VisualState:
    shown = chars_shown(caption.text, clock.elapsed)
    units = tuple(
        UnitState(text=ch, opacity=1.0 if i < shown else 0.0)
        for i, ch in enumerate(caption.text)
    )
    return VisualState(opacity=1.0, revealed_text=caption.text[:shown], units=units)


@dataclass(frozen=True, slots=True)
class _RevealSpec:
    mode: str
    delay: float
    duration: float
    unit: Callable[[str, float], UnitState]


def _pop_unit(text: str, p: float) -> UnitState:
    eased = ease_out_elastic(p)
    return UnitState(text=text, opacity=clamp01(p * 2), translate_y=50 * (1 - eased), scale=eased)


def _stagger_unit(text: str, p: float) -> UnitState:
    e = ease_out_cubic(p)
    return UnitState(text=text, opacity=e, translate_y=20 * (1 - e))


def _flip_unit(text: str, p: float) -> UnitState:
    e = ease_out_cubic(p)
    return UnitState(text=text, opacity=e, rotate_x=-90 * (1 - e))


def _focus_unit(text: str, p: float) -> UnitState:
    e = ease_out_cubic(p)
    return UnitState(text=text, opacity=e, blur=10 * (1 - e))


_REVEAL_SPECS = {
    "physics-pop": _RevealSpec("chars", 0.03, 0.6, _pop_unit),
    "word-stagger": _RevealSpec("words", 0.1, 0.5, _stagger_unit),
    "flip-3d": _RevealSpec("chars", 0.04, 0.6, _flip_unit),
    "focus-blur": _RevealSpec("chars", 0.02, 0.6, _focus_unit),
}


def _staggered(clock, caption, settings, stage) -> VisualState:
    spec = _REVEAL_SPECS[settings.animation_type]
    units: list[UnitState] = []
    ordinal = 0
    for part in split_units(caption.text, spec.mode):
        if spec.mode == "words" and part.isspace():
            units.append(UnitState(text=part))
            continue
        local = clock.elapsed - ordinal * spec.delay
        units.append(spec.unit(part, clamp01(local / spec.duration)))
        ordinal += 1
    return VisualState(
        opacity=linear_ramp(clock.remaining, REVEAL_EXIT),
        revealed_text=caption.text,
        units=tuple(units),
    )


_HANDLERS: dict[str, Callable[[_Clock, Caption, AnimationSettings, StageSize], VisualState]] = {
    "fade": _fade,
    "slide": _slide,
    "pop": _pop,
    "blur": _blur,
    "cinema": _cinema,
    "neon": _neon,
    "bounce": _bounce,
    "glitch": _glitch,
    "rubberBand": _rubber_band,
    "wobble": _wobble,
    "jello": _jello,
    "rollIn": _roll_in,
    "zoomInDown": _zoom_in_down,
    "backInDown": _back_in_down,
    "typewriter": _typewriter,
    "physics-pop": _staggered,
    "word-stagger": _staggered,
    "flip-3d": _staggered,
    "focus-blur": _staggered,
}
