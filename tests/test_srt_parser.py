"""Tests for SRT ingestion and export."""

import pytest

from srtmotion.models.caption import Caption
from srtmotion.services.srt_parser import (
    IngestionError,
    export_srt,
    import_srt,
    parse_srt,
    strip_markup,
)

SAMPLE = """1
00:00:00,500 --> 00:00:02,000
Hello World!

2
00:00:02,500 --> 00:00:04,000
Second line
continues here
"""


def test_parse_basic():
    result = parse_srt(SAMPLE)
    assert result.errors == []
    assert [c.id for c in result.captions] == ["1", "2"]
    first, second = result.captions
    assert (first.start_time, first.end_time, first.text) == (0.5, 2.0, "Hello World!")
    assert second.text == "Second line\ncontinues here"


def test_bom_and_crlf():
    content = "\ufeff" + SAMPLE.replace("\n", "\r\n")
    result = parse_srt(content)
    assert len(result.captions) == 2
    assert result.captions[0].text == "Hello World!"


def test_index_line_optional():
    result = parse_srt("00:00:01,000 --> 00:00:02,000\nNo index\n")
    assert len(result.captions) == 1
    assert result.captions[0].id == "cue-1"


def test_malformed_timing_skipped():
    content = "1\n00:00:01 -> 00:00:02\nBad\n\n2\n00:00:03,000 --> 00:00:04,000\nGood\n"
    result = parse_srt(content)
    assert [c.text for c in result.captions] == ["Good"]
    assert len(result.errors) == 1
    err = result.errors[0]
    assert isinstance(err, IngestionError)
    assert err.block_number == 1


def test_invalid_timestamp_skipped():
    result = parse_srt("1\n00:99:01,000 --> 00:00:02,000\nText\n")
    assert result.captions == []
    assert "Invalid SRT timestamp" in result.errors[0].reason


def test_zero_duration_skipped():
    result = parse_srt("1\n00:00:02,000 --> 00:00:02,000\nZero\n")
    assert result.captions == []
    assert result.errors[0].reason == "end time must be after start time"


def test_missing_text_skipped():
    result = parse_srt("1\n00:00:01,000 --> 00:00:02,000\n<i></i>\n")
    assert result.captions == []
    assert result.errors[0].reason == "no caption text"


def test_garbage_block_skipped():
    result = parse_srt("hello there\n\n" + SAMPLE)
    assert len(result.captions) == 2
    assert result.errors[0].reason == "missing index or timing line"


def test_markup_stripped():
    result = parse_srt('1\n00:00:01,000 --> 00:00:02,000\n<i>Hi</i> <font color="red">there</font>\n')
    assert result.captions[0].text == "Hi there"


def test_strip_markup():
    assert strip_markup("<b>bold</b>") == "bold"


def test_duplicate_index_gets_unique_id():
    content = (
        "1\n00:00:01,000 --> 00:00:02,000\nA\n\n"
        "1\n00:00:03,000 --> 00:00:04,000\nB\n"
    )
    result = parse_srt(content)
    assert [c.id for c in result.captions] == ["1", "cue-2"]


def test_extra_blank_lines():
    result = parse_srt("\n\n" + SAMPLE.replace("\n\n", "\n\n\n\n") + "\n\n")
    assert len(result.captions) == 2


def test_empty_content():
    result = parse_srt("")
    assert result.captions == []
    assert result.errors == []


def test_import_export_round_trip(tmp_path):
    captions = [
        Caption("a", 0.5, 2.0, "Hello"),
        Caption("b", 61.25, 63.0, "Two\nlines"),
    ]
    path = tmp_path / "out.srt"
    export_srt(captions, path)
    result = import_srt(path)
    assert [(c.start_time, c.end_time, c.text) for c in result.captions] == [
        (0.5, 2.0, "Hello"),
        (61.25, 63.0, "Two\nlines"),
    ]
    assert [c.id for c in result.captions] == ["1", "2"]


def test_import_with_bom(tmp_path):
    path = tmp_path / "bom.srt"
    path.write_bytes(b"\xef\xbb\xbf" + SAMPLE.encode("utf-8"))
    assert len(import_srt(path).captions) == 2


def test_import_missing_file(tmp_path):
    with pytest.raises(OSError):
        import_srt(tmp_path / "missing.srt")
