"""Tests for ExportWorker signal flow (run synchronously, no thread)."""

import numpy as np

from srtmotion.models.caption import Caption
from srtmotion.models.settings import AnimationSettings
from srtmotion.services.frame_rasterizer import RasterizationError
from srtmotion.services.video_exporter import ExportOptions
from srtmotion.workers.export_worker import ExportWorker

OPTIONS = ExportOptions(fps=5, stage_size=(16, 8))


class _Runner:
    ffmpeg_path = "/usr/bin/ffmpeg"

    def __init__(self, available=True):
        self._available = available

    def is_available(self):
        return self._available

    def list_encoders(self):
        return {"libx264", "libvpx-vp9", "prores_ks"}


class _Encoder:
    def __init__(self, *args):
        self.frames = 0

    def start(self):
        pass

    def write(self, frame):
        self.frames += 1

    def finalize(self):
        pass


class _Rasterizer:
    def __init__(self, broken=()):
        self.broken = set(broken)

    def render(self, scene):
        index = int(round(scene.time * OPTIONS.fps))
        if index in self.broken:
            raise RasterizationError("nope")
        w, h = scene.stage_size
        return np.zeros((h, w, 4), dtype=np.uint8)


def _worker(tmp_path, rasterizer=None, runner=None):
    return ExportWorker(
        [Caption("1", 0.0, 1.0, "Hi")],
        AnimationSettings(animation_type="fade"),
        tmp_path / "out.mp4",
        options=OPTIONS,
        rasterizer=rasterizer or _Rasterizer(),
        encoder_factory=_Encoder,
        runner=runner or _Runner(),
    )


def _record(worker):
    events = {"progress": [], "finished": [], "degraded": [], "cancelled": [], "error": []}
    worker.progress.connect(lambda cur, total: events["progress"].append((cur, total)))
    worker.finished.connect(events["finished"].append)
    worker.degraded.connect(events["degraded"].append)
    worker.cancelled.connect(events["cancelled"].append)
    worker.error.connect(events["error"].append)
    return events


def test_finished(qapp, tmp_path):
    worker = _worker(tmp_path)
    events = _record(worker)
    worker.run()
    assert events["finished"] == [str(tmp_path / "out.mp4")]
    assert events["error"] == []
    assert events["degraded"] == []
    # 1s + 5s 버퍼, 5fps → 마지막 인덱스 30
    assert events["progress"][-1] == (30, 30)


def test_degraded_before_finished(qapp, tmp_path):
    worker = _worker(tmp_path, rasterizer=_Rasterizer(broken={3}))
    events = _record(worker)
    worker.run()
    assert events["degraded"] == [1]
    assert len(events["finished"]) == 1


def test_cancelled(qapp, tmp_path):
    worker = _worker(tmp_path)
    events = _record(worker)
    worker.progress.connect(lambda cur, total: worker.cancel() if cur >= 2 else None)
    worker.run()
    assert len(events["cancelled"]) == 1
    assert events["finished"] == []


def test_error_when_ffmpeg_missing(qapp, tmp_path):
    worker = _worker(tmp_path, runner=_Runner(available=False))
    events = _record(worker)
    worker.run()
    assert len(events["error"]) == 1
    assert events["finished"] == []


def test_captions_snapshotted(qapp, tmp_path):
    captions = [Caption("1", 0.0, 1.0, "Hi")]
    worker = ExportWorker(captions, AnimationSettings(), tmp_path / "out.mp4", options=OPTIONS)
    captions.append(Caption("2", 1.0, 2.0, "Later"))
    assert len(worker._captions) == 1
