"""Session state model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from srtmotion.models.caption import Caption, CaptionList, Placement
from srtmotion.models.custom_font import CustomFont
from srtmotion.models.settings import AnimationSettings
from srtmotion.utils.config import TRAILING_BUFFER_SEC


@dataclass(frozen=True, slots=True)
class Selection:
    """Selected caption ids plus the last clicked id (anchor for range clicks).

    Single-select is simply a selection with at most one id.
    """

    ids: frozenset[str] = frozenset()
    last_clicked: str | None = None

    def __contains__(self, caption_id: object) -> bool:
        return caption_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(slots=True)
class Session:
    """Holds the current state of the editing session."""

    captions: CaptionList = field(default_factory=CaptionList)
    settings: AnimationSettings = field(default_factory=AnimationSettings)
    custom_fonts: list[CustomFont] = field(default_factory=list)
    source_name: str = ""
    selection: Selection = field(default_factory=Selection)
    clipboard: Placement | None = None

    @property
    def duration(self) -> float:
        """Timeline length: last caption end plus a trailing buffer."""
        if not len(self.captions):
            return 0.0
        return self.captions.end_time + TRAILING_BUFFER_SEC

    @property
    def has_captions(self) -> bool:
        return len(self.captions) > 0

    def load_captions(self, captions: Iterable[Caption], source_name: str = "") -> None:
        """Replace the whole caption set (re-ingestion)."""
        self.captions.reset(captions)
        self.source_name = source_name
        self.selection = Selection()

    def add_font(self, font: CustomFont) -> None:
        """Register an uploaded font and make it the active family."""
        self.custom_fonts = [f for f in self.custom_fonts if f.name != font.name] + [font]
        self.settings = self.settings.evolve(font_family=font.name)
