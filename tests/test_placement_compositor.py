"""Tests for the placement compositor and scene driver."""

import math

import pytest

from srtmotion.models.caption import Caption, Placement
from srtmotion.models.settings import AnimationSettings
from srtmotion.models.visual_state import VisualState
from srtmotion.services.animation_evaluator import evaluate
from srtmotion.services.placement_compositor import (
    BASE_Z_INDEX,
    compose,
    compose_scene,
    stacking_order,
)
from srtmotion.services.scene_driver import SceneDriver
from srtmotion.utils.config import TRAILING_BUFFER_SEC

STAGE = (1920, 1080)


def _cap(placement=None):
    return Caption("c", 0.0, 2.0, "x", placement)


class TestCompose:
    def test_identity_anchors_at_stage_centre(self):
        ft = compose(_cap(), VisualState(), STAGE)
        assert ft.map_point(0, 0) == pytest.approx((960, 540))

    def test_placement_offset_and_scale(self):
        ft = compose(_cap(Placement(10, -20, 2.0)), VisualState(), STAGE)
        assert ft.map_point(0, 0) == pytest.approx((1152, 324))
        assert ft.map_point(1, 0) == pytest.approx((1154, 324))

    def test_animation_translate_scaled_by_placement(self):
        ft = compose(_cap(Placement(0, 0, 2.0)), VisualState(translate_x=10), STAGE)
        assert ft.map_point(0, 0) == pytest.approx((980, 540))

    def test_rotate_after_translate(self):
        state = VisualState(translate_x=10, rotation=math.pi / 2)
        ft = compose(_cap(), state, STAGE)
        assert ft.map_point(1, 0) == pytest.approx((970, 541))

    def test_skew(self):
        ft = compose(_cap(), VisualState(skew_x=0.5), STAGE)
        assert ft.map_point(0, 2) == pytest.approx((961, 542))

    def test_scale_innermost(self):
        state = VisualState(scale_x=2, scale_y=3, translate_y=5)
        ft = compose(_cap(), state, STAGE)
        assert ft.map_point(1, 1) == pytest.approx((962, 548))

    def test_paint_attributes_carried(self):
        ft = compose(_cap(), VisualState(opacity=0.4, glow=7, blur=3), STAGE, z_index=12)
        assert (ft.opacity, ft.glow, ft.blur, ft.z_index) == (0.4, 7, 3, 12)

    def test_as_css(self):
        ft = compose(_cap(), VisualState(), STAGE)
        assert ft.as_css() == "matrix(1.0000, 0.0000, 0.0000, 1.0000, 960.0000, 540.0000)"

    def test_as_qt_args_order(self):
        ft = compose(_cap(), VisualState(skew_x=0.5), STAGE)
        m11, m12, m21, m22, dx, dy = ft.as_qt_args()
        assert (m11, m12, m21, m22) == pytest.approx((1, 0, 0.5, 1))
        assert (dx, dy) == pytest.approx((960, 540))


class TestStacking:
    def test_list_order(self, captions):
        order = stacking_order(list(captions))
        assert [(c.id, z) for c, z in order] == [("a", 10), ("b", 11), ("c", 12)]

    def test_selected_promoted(self, captions):
        order = stacking_order(list(captions), {"a"})
        assert [c.id for c, _ in order] == ["b", "c", "a"]
        assert order[-1][1] == BASE_Z_INDEX + 2

    def test_multiple_selected_keep_relative_order(self, captions):
        order = stacking_order(list(captions), {"c", "a"})
        assert [c.id for c, _ in order] == ["b", "a", "c"]

    def test_deterministic(self, captions):
        assert stacking_order(list(captions), {"b"}) == stacking_order(list(captions), {"b"})


class TestComposeScene:
    def test_only_active_captions(self, captions, settings):
        scene = compose_scene(captions, settings, 1.5, STAGE)
        assert [item.caption.id for item in scene] == ["a", "b"]

    def test_states_come_from_evaluator(self, captions, settings):
        scene = compose_scene(captions, settings, 1.8, STAGE)
        for item in scene:
            assert item.state == evaluate(item.caption, settings, 1.8, STAGE)
            assert item.transform.opacity == item.state.opacity

    def test_selection_changes_z_only(self, captions, settings):
        scene = compose_scene(captions, settings, 1.5, STAGE, selected_ids=["a"])
        assert [item.caption.id for item in scene] == ["b", "a"]
        assert [item.transform.z_index for item in scene] == [10, 11]

    def test_empty_time(self, captions, settings):
        assert compose_scene(captions, settings, 3.5, STAGE) == []


class TestSceneDriver:
    def test_duration(self, captions, settings):
        driver = SceneDriver(captions, settings, STAGE)
        assert driver.get_duration() == pytest.approx(6.5 + TRAILING_BUFFER_SEC)

    def test_empty_duration(self, settings):
        assert SceneDriver([], settings).get_duration() == 0.0

    def test_seek_to_settles_scene(self, captions, settings):
        driver = SceneDriver(captions, settings, STAGE)
        scene = driver.seek_to(5.0)
        assert scene.time == 5.0
        assert scene.stage_size == STAGE
        assert scene.settings is settings
        assert [item.caption.id for item in scene.items] == ["c"]

    def test_snapshot_isolated_from_list_edits(self, captions, settings):
        driver = SceneDriver(captions, settings, STAGE)
        captions.replace(captions.get("c").with_text("Edited"))
        assert driver.seek_to(5.0).items[0].caption.text == "Third\nline"

    def test_seek_any_order(self, captions):
        driver = SceneDriver(captions, AnimationSettings(animation_type="glitch"), STAGE)
        first = driver.seek_to(1.2)
        driver.seek_to(5.5)
        again = driver.seek_to(1.2)
        assert [i.state for i in again.items] == [i.state for i in first.items]
        assert [i.transform.as_css() for i in again.items] == [i.transform.as_css() for i in first.items]
