from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Qt, Signal

from srtmotion.utils.config import PREVIEW_TICK_MS

logger = logging.getLogger(__name__)

STOPPED = "stopped"
PLAYING = "playing"
PAUSED = "paused"


@dataclass(frozen=True, slots=True)
class ClockSnapshot:
    time: float
    state: str


class PlaybackClock(QObject):
    """
    미리보기용 재생 시계.

    현재 시간은 누적 델타가 아니라 항상 ``now - start_ref`` 로 계산되므로
    타이머 지연이 쌓여도 드리프트가 생기지 않습니다.
    ``now`` 는 테스트를 위해 주입할 수 있습니다.
    """

    time_changed = Signal(float)   # 현재 시간 (초)
    state_changed = Signal(str)    # stopped / playing / paused

    def __init__(
        self,
        duration: float = 0.0,
        now: Callable[[], float] | None = None,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self._now = now or time.monotonic
        self._duration = max(0.0, duration)
        self._current = 0.0
        self._start_ref = 0.0
        self._state = STOPPED
        self.loop = False

        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.setInterval(PREVIEW_TICK_MS)
        self._timer.timeout.connect(self.tick)

    @property
    def current_time(self) -> float:
        return self._current

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PLAYING

    def set_duration(self, duration: float) -> None:
        self._duration = max(0.0, duration)

    def play(self) -> None:
        if self._state == PLAYING:
            return
        self._start_ref = self._now() - self._current
        self._timer.start()
        self._set_state(PLAYING)

    def pause(self) -> None:
        if self._state != PLAYING:
            return
        # 정지 직전 위치를 확정
        self._current = max(0.0, self._now() - self._start_ref)
        self._timer.stop()
        self._set_state(PAUSED)
        self.time_changed.emit(self._current)

    def stop(self) -> None:
        self._timer.stop()
        self._set_time(0.0)
        self._set_state(STOPPED)

    def seek(self, t: float) -> None:
        """특정 시간으로 이동. 재생 중이면 기준점을 다시 잡습니다."""
        target = max(0.0, t)
        if self._state == PLAYING:
            self._start_ref = self._now() - target
        self._set_time(target)

    def tick(self) -> None:
        """타이머 틱: 벽시계 기준으로 현재 시간을 갱신."""
        if self._state != PLAYING:
            return
        t = self._now() - self._start_ref
        if t >= self._duration:
            if self.loop and self._duration > 0:
                t %= self._duration
                self._start_ref = self._now() - t
            else:
                logger.debug("Playback reached end (%.3fs)", self._duration)
                self.stop()
                return
        self._set_time(t)

    def suspend(self) -> ClockSnapshot:
        """Pause for exclusive use of the timeline (export) and remember where we were."""
        if self._state == PLAYING:
            self._current = max(0.0, self._now() - self._start_ref)
        snapshot = ClockSnapshot(self._current, self._state)
        if self._state == PLAYING:
            self._timer.stop()
            self._set_state(PAUSED)
        return snapshot

    def restore(self, snapshot: ClockSnapshot) -> None:
        self._set_time(snapshot.time)
        if snapshot.state == PLAYING:
            self.play()
        else:
            self._timer.stop()
            self._set_state(snapshot.state)

    def _set_time(self, t: float) -> None:
        self._current = t
        self.time_changed.emit(t)

    def _set_state(self, state: str) -> None:
        if state == self._state:
            return
        self._state = state
        self.state_changed.emit(state)
