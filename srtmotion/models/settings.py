"""Global caption style / animation settings."""

from __future__ import annotations

from dataclasses import dataclass, replace

TRANSPARENT = "transparent"

ENVELOPE_ANIMATIONS = ("fade", "slide", "pop", "blur", "cinema", "neon", "bounce", "glitch")
PRESET_ANIMATIONS = ("rubberBand", "wobble", "jello", "backInDown", "rollIn", "zoomInDown")
REVEAL_ANIMATIONS = ("physics-pop", "typewriter", "word-stagger", "flip-3d", "focus-blur")

ANIMATION_TYPES = ENVELOPE_ANIMATIONS + PRESET_ANIMATIONS + REVEAL_ANIMATIONS

TEXT_ALIGNMENTS = ("left", "center", "right")


class AnimationFamily:
    ENVELOPE = "envelope"
    PRESET = "preset"
    REVEAL = "reveal"


def animation_family(animation_type: str) -> str:
    """Return the family an animation variant belongs to."""
    if animation_type in ENVELOPE_ANIMATIONS:
        return AnimationFamily.ENVELOPE
    if animation_type in PRESET_ANIMATIONS:
        return AnimationFamily.PRESET
    if animation_type in REVEAL_ANIMATIONS:
        return AnimationFamily.REVEAL
    raise ValueError(f"Unknown animation type: {animation_type!r}")


@dataclass(frozen=True, slots=True)
class AnimationSettings:
    """Immutable style snapshot shared by every caption.

    Each change produces a new snapshot via evolve() with a bumped version.
    """

    background_color: str = "#030712"
    text_color: str = "#ffffff"
    font_size: str = "48px"
    font_family: str = "Inter"
    animation_type: str = "slide"
    text_align: str = "center"
    version: int = 0

    def __post_init__(self) -> None:
        if self.animation_type not in ANIMATION_TYPES:
            raise ValueError(f"Unknown animation type: {self.animation_type!r}")
        if self.text_align not in TEXT_ALIGNMENTS:
            raise ValueError(f"Unknown text alignment: {self.text_align!r}")

    @property
    def family(self) -> str:
        return animation_family(self.animation_type)

    @property
    def is_transparent(self) -> bool:
        return self.background_color == TRANSPARENT

    def font_size_px(self, stage_width: int) -> float:
        """Resolve the CSS-like font size ("48px", "5vw") to pixels."""
        value = self.font_size.strip()
        try:
            if value.endswith("vw"):
                return stage_width * float(value[:-2]) / 100.0
            if value.endswith("px"):
                return float(value[:-2])
            return float(value)
        except ValueError:
            return 48.0

    def evolve(self, **changes) -> AnimationSettings:
        return replace(self, version=self.version + 1, **changes)

    def to_dict(self) -> dict:
        return {
            "background_color": self.background_color,
            "text_color": self.text_color,
            "font_size": self.font_size,
            "font_family": self.font_family,
            "animation_type": self.animation_type,
            "text_align": self.text_align,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AnimationSettings:
        defaults = cls()
        return cls(
            background_color=data.get("background_color", defaults.background_color),
            text_color=data.get("text_color", defaults.text_color),
            font_size=data.get("font_size", defaults.font_size),
            font_family=data.get("font_family", defaults.font_family),
            animation_type=data.get("animation_type", defaults.animation_type),
            text_align=data.get("text_align", defaults.text_align),
        )
