"""Tests for Premiere XML, Fusion .setting and ASS export."""

import math

import pytest

from srtmotion.models.caption import Caption, Placement
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.interchange_exporter import (
    INTERCHANGE_FPS,
    TAIL_FRAMES,
    fusion_keyframes,
    generate_ass,
    generate_fusion_setting,
    generate_premiere_xml,
    interchange_file_name,
    parse_fusion_setting,
    parse_premiere_xml,
)

TICK = 1 / INTERCHANGE_FPS


@pytest.fixture
def style():
    return AnimationSettings(text_color="#ff0000", font_size="48px", font_family="Anton")


@pytest.fixture
def captions():
    return [
        Caption("1", 0.5, 2.0, "Hello World!"),
        Caption("2", 2.51, 4.2, 'Tom & "Jerry" <3'),
        Caption("3", 5.0, 7.333, "Two\nlines"),
    ]


def _assert_round_trip(original, parsed):
    assert len(parsed) == len(original)
    for a, b in zip(original, parsed):
        assert b.text == a.text
        assert abs(b.start_time - a.start_time) <= TICK
        assert abs(b.end_time - a.end_time) <= TICK


# ── Premiere ─────────────────────────────────────────────────────────────────

class TestPremiere:
    def test_round_trip(self, captions, style):
        xml = generate_premiere_xml(captions, style, "clip")
        _assert_round_trip(captions, parse_premiere_xml(xml))

    def test_clip_ids(self, captions, style):
        parsed = parse_premiere_xml(generate_premiere_xml(captions, style, "clip"))
        assert [c.id for c in parsed] == ["clipitem-0", "clipitem-1", "clipitem-2"]

    def test_sequence_duration(self, captions, style):
        xml = generate_premiere_xml(captions, style, "clip")
        expected = math.ceil(7.333 * INTERCHANGE_FPS) + TAIL_FRAMES
        assert f"<duration>{expected}</duration>" in xml

    def test_static_style(self, captions, style):
        xml = generate_premiere_xml(captions, style, "clip")
        assert "<value>Anton</value>" in xml
        assert "<value>48</value>" in xml
        assert "<red>255</red>" in xml
        assert "<green>0</green>" in xml

    def test_frames_quantised(self, style):
        xml = generate_premiere_xml([Caption("1", 1.0, 2.5, "x")], style, "clip")
        assert "<start>30</start>" in xml
        assert "<end>75</end>" in xml

    def test_custom_fps(self, captions, style):
        xml = generate_premiere_xml(captions, style, "clip", fps=25)
        assert "<timebase>25</timebase>" in xml
        parsed = parse_premiere_xml(xml)
        assert abs(parsed[0].start_time - 0.5) <= 1 / 25

    def test_sub_frame_caption_round_trip(self, style):
        """반 프레임보다 짧은 자막도 최소 한 프레임 길이로 기록."""
        caps = [Caption("a", 1.0, 1.01, "tiny")]
        xml = generate_premiere_xml(caps, style, "clip")
        assert "<duration>1</duration>" in xml
        _assert_round_trip(caps, parse_premiere_xml(xml))

    def test_stage_size(self, captions):
        vw_style = AnimationSettings(font_size="5vw")
        xml = generate_premiere_xml(captions, vw_style, "clip", stage_size=(1280, 720))
        assert "<width>1280</width>" in xml
        assert "<height>720</height>" in xml
        assert "<value>64</value>" in xml

    def test_not_xmeml(self):
        with pytest.raises(ValueError):
            parse_premiere_xml("<root/>")


# ── Fusion ───────────────────────────────────────────────────────────────────

class TestFusion:
    def test_keyframes_with_gaps(self):
        caps = [Caption("a", 1.0, 2.0, "A"), Caption("b", 3.0, 4.0, "B")]
        assert fusion_keyframes(caps) == {30: "A", 60: "", 90: "B", 120: ""}

    def test_adjacent_captions(self):
        caps = [Caption("a", 0.0, 1.0, "A"), Caption("b", 1.0, 2.0, "B")]
        assert fusion_keyframes(caps) == {0: "A", 30: "B", 60: ""}

    def test_overlap_falls_back_to_covering_caption(self):
        caps = [Caption("a", 0.0, 3.0, "A"), Caption("b", 2.0, 4.0, "B")]
        assert fusion_keyframes(caps) == {0: "A", 60: "B", 90: "B", 120: ""}

    def test_same_start_frame_warns(self, caplog):
        caps = [Caption("a", 1.0, 2.0, "A"), Caption("b", 1.01, 3.0, "B")]
        with caplog.at_level("WARNING", logger="srtmotion.services.interchange_exporter"):
            keys = fusion_keyframes(caps)
        assert keys[30] == "B"
        assert "'b' replaces 'a'" in caplog.text

    def test_sub_frame_caption_round_trip(self, style):
        caps = [Caption("a", 1.0, 1.01, "tiny")]
        assert fusion_keyframes(caps) == {30: "tiny", 31: ""}
        _assert_round_trip(caps, parse_fusion_setting(generate_fusion_setting(caps, style)))

    def test_stage_size(self, style):
        caps = [Caption("a", 0.0, 1.0, "A")]
        setting = generate_fusion_setting(caps, style, stage_size=(1280, 720))
        assert "Width = Input { Value = 1280, }" in setting
        assert "Height = Input { Value = 720, }" in setting

    def test_round_trip(self, captions, style):
        setting = generate_fusion_setting(captions, style)
        _assert_round_trip(captions, parse_fusion_setting(setting))

    def test_escaping(self, style):
        caps = [Caption("a", 0.0, 1.0, 'back\\slash "quoted"\nnext')]
        parsed = parse_fusion_setting(generate_fusion_setting(caps, style))
        assert parsed[0].text == 'back\\slash "quoted"\nnext'

    def test_global_out_and_style(self, captions, style):
        setting = generate_fusion_setting(captions, style)
        assert f"GlobalOut = Input {{ Value = {round(7.333 * 30) + TAIL_FRAMES}, }}" in setting
        assert 'Font = { Value = "Anton", }' in setting
        assert "Color = { Value = { 1.0000, 0.0000, 0.0000, 1.0000 }, }" in setting
        assert "Size = { Value = 0.044444, }" in setting

    def test_parse_without_keyframes(self):
        with pytest.raises(ValueError):
            parse_fusion_setting("{ Tools = ordered() {} }")


# ── ASS ──────────────────────────────────────────────────────────────────────

class TestAss:
    def test_header_and_style(self, captions, style):
        ass = generate_ass(captions, style, (1280, 720))
        assert "PlayResX: 1280" in ass
        assert "PlayResY: 720" in ass
        assert "Style: Default,Anton,48,&H000000FF," in ass

    def test_dialogue_lines(self, captions, style):
        ass = generate_ass(captions, style)
        assert "Dialogue: 0,0:00:00.50,0:00:02.00,Default,,0,0,0,,Hello World!" in ass
        assert "Two\\Nlines" in ass

    def test_placement_override(self, style):
        caps = [Caption("a", 0.0, 1.0, "Placed", Placement(10, -20, 2.0))]
        ass = generate_ass(caps, style, (1920, 1080))
        assert "{\\pos(1152,324)\\fscx200\\fscy200}Placed" in ass

    def test_unplaced_has_no_override(self, style):
        ass = generate_ass([Caption("a", 0.0, 1.0, "Plain")], style)
        assert "\\pos" not in ass

    def test_long_times(self, style):
        ass = generate_ass([Caption("a", 3723.456, 3725.0, "Late")], style)
        assert "1:02:03.46,1:02:05.00" in ass


@pytest.mark.parametrize("kind,expected", [
    ("premiere", "clip_premiere.xml"),
    ("fusion", "clip_fusion.setting"),
    ("ass", "clip.ass"),
])
def test_interchange_file_name(kind, expected):
    assert interchange_file_name("clip.srt", kind) == expected


def test_interchange_file_name_defaults():
    assert interchange_file_name("", "ass") == "captions.ass"
    with pytest.raises(ValueError):
        interchange_file_name("clip.srt", "edl")
