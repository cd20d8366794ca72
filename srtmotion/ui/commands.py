"""QUndoCommand subclasses for caption editing operations.

Captions are immutable values: every command swaps whole captions in the
CaptionList by id, so undo simply puts the previous values back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from PySide6.QtGui import QUndoCommand

if TYPE_CHECKING:
    from srtmotion.models.caption import Caption, CaptionList


class EditTextCommand(QUndoCommand):
    """Change the text of a caption."""

    def __init__(self, captions: CaptionList, caption_id: str, new_text: str):
        super().__init__(f"Edit text ({caption_id})")
        self._captions = captions
        self._old = captions.get(caption_id)
        if self._old is None:
            raise KeyError(caption_id)
        self._new = self._old.with_text(new_text)

    def redo(self) -> None:
        self._captions.replace(self._new)

    def undo(self) -> None:
        self._captions.replace(self._old)


class EditTimingCommand(QUndoCommand):
    """Change the start/end times of a caption."""

    def __init__(self, captions: CaptionList, caption_id: str, start_time: float, end_time: float):
        super().__init__(f"Edit timing ({caption_id})")
        self._captions = captions
        self._old = captions.get(caption_id)
        if self._old is None:
            raise KeyError(caption_id)
        # Caption 생성 시 end > start 검증
        self._new = self._old.with_timing(start_time, end_time)

    def redo(self) -> None:
        self._captions.replace(self._new)

    def undo(self) -> None:
        self._captions.replace(self._old)


class EditPlacementCommand(QUndoCommand):
    """Apply new placements to one or more captions (gizmo drag, paste)."""

    def __init__(self, captions: CaptionList, updated: Iterable[Caption], text: str = "Move captions"):
        super().__init__(text)
        self._captions = captions
        self._new = list(updated)
        old = []
        for cap in self._new:
            current = captions.get(cap.id)
            if current is None:
                raise KeyError(cap.id)
            old.append(current)
        self._old = old

    def redo(self) -> None:
        self._captions.replace_many(self._new)

    def undo(self) -> None:
        self._captions.replace_many(self._old)
