"""Explicit capture driver used by the exporter (seek → settled scene)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.animation_evaluator import DEFAULT_STAGE, StageSize
from srtmotion.services.placement_compositor import ComposedCaption, compose_scene
from srtmotion.utils.config import TRAILING_BUFFER_SEC


@dataclass(frozen=True)
class Scene:
    """Everything a rasterizer needs to paint one instant."""

    time: float
    stage_size: StageSize
    settings: AnimationSettings
    items: tuple[ComposedCaption, ...]


class SceneDriver:
    """Owns an immutable caption snapshot and settles scenes on demand.

    seek_to() returns only once the composed scene for that time exists, so
    the caller never depends on scheduler timing to know rendering state.
    """

    def __init__(
        self,
        captions: Iterable[Caption],
        settings: AnimationSettings,
        stage_size: StageSize = DEFAULT_STAGE,
    ):
        self._captions = tuple(captions)
        self._settings = settings
        self._stage_size = stage_size

    @property
    def captions(self) -> tuple[Caption, ...]:
        return self._captions

    @property
    def settings(self) -> AnimationSettings:
        return self._settings

    @property
    def stage_size(self) -> StageSize:
        return self._stage_size

    def get_duration(self) -> float:
        if not self._captions:
            return 0.0
        return max(c.end_time for c in self._captions) + TRAILING_BUFFER_SEC

    def seek_to(self, t: float) -> Scene:
        items = compose_scene(self._captions, self._settings, t, self._stage_size)
        return Scene(time=t, stage_size=self._stage_size, settings=self._settings, items=tuple(items))
