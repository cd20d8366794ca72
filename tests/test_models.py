"""Tests for caption, settings and session models."""

import pytest

from srtmotion.models.caption import Caption, CaptionList, Placement
from srtmotion.models.custom_font import CustomFont
from srtmotion.models.session import Selection, Session
from srtmotion.models.settings import (
    AnimationFamily,
    AnimationSettings,
    animation_family,
)
from srtmotion.utils.config import MIN_PLACEMENT_SCALE, TRAILING_BUFFER_SEC


class TestPlacement:
    def test_defaults_are_identity(self):
        p = Placement()
        assert (p.x, p.y, p.scale) == (0.0, 0.0, 1.0)

    def test_scale_clamped_to_floor(self):
        assert Placement(scale=0.01).scale == MIN_PLACEMENT_SCALE
        assert Placement(scale=-3).scale == MIN_PLACEMENT_SCALE

    def test_offsets_not_clamped(self):
        p = Placement(x=150, y=-130)
        assert p.x == 150
        assert p.y == -130


class TestCaption:
    def test_duration(self):
        assert Caption("1", 1.0, 3.5, "hi").duration == pytest.approx(2.5)

    @pytest.mark.parametrize("start,end", [(1.0, 1.0), (2.0, 1.0)])
    def test_rejects_non_positive_duration(self, start, end):
        with pytest.raises(ValueError):
            Caption("1", start, end, "bad")

    def test_is_active_inclusive(self):
        cap = Caption("1", 1.0, 2.0, "x")
        assert cap.is_active(1.0)
        assert cap.is_active(2.0)
        assert not cap.is_active(0.999)
        assert not cap.is_active(2.001)

    def test_with_helpers_return_new_values(self):
        cap = Caption("1", 0.0, 1.0, "old")
        edited = cap.with_text("new").with_placement(Placement(5, 5))
        assert cap.text == "old"
        assert cap.placement is None
        assert edited.text == "new"
        assert edited.effective_placement == Placement(5, 5)

    def test_effective_placement_defaults(self):
        assert Caption("1", 0.0, 1.0, "x").effective_placement == Placement()


class TestCaptionList:
    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            CaptionList([Caption("a", 0, 1, "x"), Caption("a", 1, 2, "y")])

    def test_replace_keeps_order(self, captions):
        captions.replace(captions.get("b").with_text("Changed"))
        assert captions.ids() == ["a", "b", "c"]
        assert captions.get("b").text == "Changed"

    def test_replace_unknown_raises(self, captions):
        with pytest.raises(KeyError):
            captions.replace(Caption("zzz", 0, 1, "x"))

    def test_replace_many_unknown_raises(self, captions):
        with pytest.raises(KeyError):
            captions.replace_many([Caption("zzz", 0, 1, "x")])

    def test_snapshot_unaffected_by_edits(self, captions):
        snap = captions.snapshot()
        captions.replace(captions.get("a").with_text("Edited"))
        assert snap[0].text == "First"

    def test_active_at_in_list_order(self, captions):
        assert [c.id for c in captions.active_at(1.5)] == ["a", "b"]
        assert captions.active_at(3.5) == []

    def test_end_time(self, captions):
        assert captions.end_time == 6.5
        assert CaptionList().end_time == 0.0

    def test_index_of_missing(self, captions):
        assert captions.index_of("nope") == -1
        assert captions.get("nope") is None


class TestAnimationSettings:
    def test_unknown_animation_rejected(self):
        with pytest.raises(ValueError):
            AnimationSettings(animation_type="explode")

    def test_unknown_alignment_rejected(self):
        with pytest.raises(ValueError):
            AnimationSettings(text_align="justify")

    @pytest.mark.parametrize("name,family", [
        ("fade", AnimationFamily.ENVELOPE),
        ("glitch", AnimationFamily.ENVELOPE),
        ("rubberBand", AnimationFamily.PRESET),
        ("zoomInDown", AnimationFamily.PRESET),
        ("typewriter", AnimationFamily.REVEAL),
        ("focus-blur", AnimationFamily.REVEAL),
    ])
    def test_family(self, name, family):
        assert animation_family(name) == family
        assert AnimationSettings(animation_type=name).family == family

    def test_font_size_px(self):
        assert AnimationSettings(font_size="48px").font_size_px(1920) == 48.0
        assert AnimationSettings(font_size="5vw").font_size_px(1920) == pytest.approx(96.0)
        assert AnimationSettings(font_size="32").font_size_px(1920) == 32.0
        assert AnimationSettings(font_size="huge").font_size_px(1920) == 48.0

    def test_transparent_sentinel(self):
        assert AnimationSettings(background_color="transparent").is_transparent
        assert not AnimationSettings().is_transparent

    def test_evolve_bumps_version(self):
        s = AnimationSettings()
        s2 = s.evolve(text_color="#ff0000")
        assert s.version == 0
        assert s2.version == 1
        assert s2.text_color == "#ff0000"

    def test_dict_round_trip(self):
        s = AnimationSettings(animation_type="neon", text_align="left", font_size="3vw")
        assert AnimationSettings.from_dict(s.to_dict()) == s

    def test_from_dict_fills_defaults(self):
        s = AnimationSettings.from_dict({"animation_type": "pop"})
        assert s.animation_type == "pop"
        assert s.text_color == AnimationSettings().text_color


class TestSession:
    def test_empty_session_duration(self):
        assert Session().duration == 0.0
        assert not Session().has_captions

    def test_duration_includes_trailing_buffer(self, captions):
        session = Session(captions=captions)
        assert session.duration == pytest.approx(6.5 + TRAILING_BUFFER_SEC)

    def test_load_captions_resets_selection(self, captions):
        session = Session()
        session.selection = Selection(frozenset({"x"}), "x")
        session.load_captions(list(captions), "clip.srt")
        assert session.source_name == "clip.srt"
        assert len(session.selection) == 0
        assert session.captions.ids() == ["a", "b", "c"]

    def test_add_font_activates_family(self):
        session = Session()
        font = CustomFont.from_bytes("MyFont", b"\x00\x01", "font/ttf")
        session.add_font(font)
        session.add_font(font)
        assert session.settings.font_family == "MyFont"
        assert len(session.custom_fonts) == 1

    def test_custom_font_payload(self):
        font = CustomFont.from_bytes("F", b"abc", "font/woff2")
        assert font.data.startswith("data:font/woff2;base64,")
        assert font.raw_bytes() == b"abc"
