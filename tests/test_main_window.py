"""Main window status text."""

from srtmotion.ui.main_window import export_status_message


def test_export_message_plain():
    assert export_status_message("/tmp/clip.mp4") == "Exported /tmp/clip.mp4"


def test_export_message_reports_substituted_frames():
    message = export_status_message("/tmp/clip.mp4", 3)
    assert message == "Exported /tmp/clip.mp4 (3 frame(s) substituted)"
