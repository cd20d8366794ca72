"""Tests for caption edit undo commands."""

import pytest
from PySide6.QtGui import QUndoStack

from srtmotion.models.caption import Caption, Placement
from srtmotion.ui.commands import EditPlacementCommand, EditTextCommand, EditTimingCommand


@pytest.fixture
def stack(qapp):
    return QUndoStack()


class TestEditText:
    def test_redo_undo(self, captions, stack):
        stack.push(EditTextCommand(captions, "a", "Changed"))
        assert captions.get("a").text == "Changed"
        stack.undo()
        assert captions.get("a").text == "First"
        stack.redo()
        assert captions.get("a").text == "Changed"

    def test_keeps_order(self, captions, stack):
        stack.push(EditTextCommand(captions, "b", "Middle"))
        assert captions.ids() == ["a", "b", "c"]

    def test_unknown_id(self, captions):
        with pytest.raises(KeyError):
            EditTextCommand(captions, "zzz", "x")


class TestEditTiming:
    def test_redo_undo(self, captions, stack):
        stack.push(EditTimingCommand(captions, "c", 4.5, 7.0))
        cap = captions.get("c")
        assert (cap.start_time, cap.end_time) == (4.5, 7.0)
        stack.undo()
        cap = captions.get("c")
        assert (cap.start_time, cap.end_time) == (4.0, 6.5)

    def test_invalid_timing(self, captions):
        with pytest.raises(ValueError):
            EditTimingCommand(captions, "a", 3.0, 2.0)
        assert captions.get("a").end_time == 2.0


class TestEditPlacement:
    def test_multi_caption_move(self, captions, stack):
        moved = [
            captions.get("a").with_placement(Placement(5.0, 5.0, 1.0)),
            captions.get("b").with_placement(Placement(15.0, -15.0, 2.0)),
        ]
        stack.push(EditPlacementCommand(captions, moved))
        assert captions.get("a").placement == Placement(5.0, 5.0, 1.0)
        assert captions.get("b").placement.x == 15.0

        stack.undo()
        assert captions.get("a").placement is None
        assert captions.get("b").placement == Placement(10.0, -20.0, 2.0)

    def test_command_text(self, captions):
        cmd = EditPlacementCommand(captions, [captions.get("a")], "Paste placement")
        assert cmd.text() == "Paste placement"

    def test_unknown_id(self, captions):
        with pytest.raises(KeyError):
            EditPlacementCommand(captions, [Caption("zzz", 0, 1, "x")])
