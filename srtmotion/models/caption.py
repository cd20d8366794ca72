"""Caption data models (pure Python, no Qt dependency)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from srtmotion.utils.config import MIN_PLACEMENT_SCALE


@dataclass(frozen=True, slots=True)
class Placement:
    """Manual position/scale override relative to the stage centre.

    x, y are percentages of stage width/height (nominal -100..100, not clamped).
    scale is clamped to MIN_PLACEMENT_SCALE.
    """

    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        if self.scale < MIN_PLACEMENT_SCALE:
            object.__setattr__(self, "scale", MIN_PLACEMENT_SCALE)


IDENTITY_PLACEMENT = Placement()


@dataclass(frozen=True, slots=True)
class Caption:
    """A single timed text cue. Times are in seconds."""

    id: str
    start_time: float
    end_time: float
    text: str
    placement: Placement | None = None

    def __post_init__(self) -> None:
        if not self.end_time > self.start_time:
            raise ValueError(
                f"Caption {self.id!r}: end_time ({self.end_time}) must be "
                f"greater than start_time ({self.start_time})"
            )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def effective_placement(self) -> Placement:
        return self.placement or IDENTITY_PLACEMENT

    def is_active(self, t: float) -> bool:
        return self.start_time <= t <= self.end_time

    def with_text(self, text: str) -> Caption:
        return replace(self, text=text)

    def with_timing(self, start_time: float, end_time: float) -> Caption:
        return replace(self, start_time=start_time, end_time=end_time)

    def with_placement(self, placement: Placement | None) -> Caption:
        return replace(self, placement=placement)


@dataclass(slots=True)
class CaptionList:
    """The session's ordered caption sequence.

    Edits swap whole captions by id; nothing aliases a caption in place,
    so a snapshot taken before an edit never changes afterwards.
    """

    captions: list[Caption] = field(default_factory=list)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for cap in self.captions:
            if cap.id in seen:
                raise ValueError(f"Duplicate caption id {cap.id!r}")
            seen.add(cap.id)

    def __len__(self) -> int:
        return len(self.captions)

    def __iter__(self) -> Iterator[Caption]:
        return iter(self.captions)

    def __getitem__(self, index: int) -> Caption:
        return self.captions[index]

    def ids(self) -> list[str]:
        return [c.id for c in self.captions]

    def index_of(self, caption_id: str) -> int:
        """Return the list index for *caption_id*, or -1."""
        for i, cap in enumerate(self.captions):
            if cap.id == caption_id:
                return i
        return -1

    def get(self, caption_id: str) -> Caption | None:
        idx = self.index_of(caption_id)
        return self.captions[idx] if idx >= 0 else None

    def replace(self, caption: Caption) -> None:
        """Swap in a new value for the caption with the same id."""
        idx = self.index_of(caption.id)
        if idx < 0:
            raise KeyError(caption.id)
        self.captions[idx] = caption

    def replace_many(self, captions: Iterable[Caption]) -> None:
        by_id = {c.id: c for c in captions}
        missing = set(by_id) - set(self.ids())
        if missing:
            raise KeyError(", ".join(sorted(missing)))
        self.captions = [by_id.get(c.id, c) for c in self.captions]

    def reset(self, captions: Iterable[Caption]) -> None:
        """Replace the whole set (re-ingestion)."""
        self.captions = list(captions)
        self.__post_init__()

    def snapshot(self) -> tuple[Caption, ...]:
        return tuple(self.captions)

    def active_at(self, t: float) -> list[Caption]:
        """Captions active at *t*, in list order."""
        return [c for c in self.captions if c.is_active(t)]

    @property
    def end_time(self) -> float:
        return max((c.end_time for c in self.captions), default=0.0)
