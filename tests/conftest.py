"""Shared fixtures. Qt tests run on the offscreen platform."""

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from srtmotion.models.caption import Caption, CaptionList, Placement
from srtmotion.models.settings import AnimationSettings


@pytest.fixture
def hello_caption():
    return Caption("1", 0.5, 2.0, "Hello World!")


@pytest.fixture
def settings():
    return AnimationSettings(animation_type="fade")


@pytest.fixture
def captions():
    return CaptionList([
        Caption("a", 0.0, 2.0, "First"),
        Caption("b", 1.0, 3.0, "Second", Placement(10.0, -20.0, 2.0)),
        Caption("c", 4.0, 6.5, "Third\nline"),
    ])
