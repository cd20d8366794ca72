"""Tests for time conversion utilities."""

import pytest

from srtmotion.utils.time_utils import (
    format_display,
    frame_count,
    frame_to_seconds,
    seconds_to_frame,
    seconds_to_srt_time,
    srt_time_to_seconds,
)


class TestSrtTime:
    def test_zero(self):
        assert seconds_to_srt_time(0) == "00:00:00,000"

    def test_basic(self):
        assert seconds_to_srt_time(3661.5) == "01:01:01,500"

    def test_negative_clamped(self):
        assert seconds_to_srt_time(-2) == "00:00:00,000"

    def test_parse(self):
        assert srt_time_to_seconds("01:01:01,500") == pytest.approx(3661.5)

    def test_parse_dot_separator(self):
        assert srt_time_to_seconds("00:00:02.25") == pytest.approx(2.25)

    def test_parse_without_millis(self):
        assert srt_time_to_seconds("00:00:07") == 7.0

    @pytest.mark.parametrize("bad", ["", "1:2", "00:61:00,000", "00:00:75,000", "ab:cd:ef,ghi"])
    def test_parse_invalid(self, bad):
        with pytest.raises(ValueError):
            srt_time_to_seconds(bad)

    def test_round_trip(self):
        for s in (0.0, 0.001, 1.234, 59.999, 3599.5):
            assert srt_time_to_seconds(seconds_to_srt_time(s)) == pytest.approx(s, abs=1e-3)


class TestDisplay:
    def test_format_display(self):
        assert format_display(65.25) == "01:05.25"

    def test_negative_display(self):
        assert format_display(-1) == "00:00.00"


class TestFrames:
    def test_seconds_to_frame(self):
        assert seconds_to_frame(1.0, 30) == 30
        assert seconds_to_frame(0.5, 24) == 12

    def test_frame_to_seconds(self):
        assert frame_to_seconds(45, 30) == pytest.approx(1.5)

    def test_frame_count_ceil(self):
        assert frame_count(1.01, 30) == 31
        assert frame_count(2.0, 30) == 60

    def test_frame_count_float_noise(self):
        # 11.5 * 30 must be 345, not 346
        assert frame_count(11.5, 30) == 345

    def test_frame_count_empty(self):
        assert frame_count(0, 30) == 0
        assert frame_count(-1, 30) == 0
