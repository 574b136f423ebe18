"""Tests for the demo entry points: config overrides and estimator cleanup."""
import asyncio

import pytest

from prototypes.pose import main_offline_video, main_webcam
from services.pose_overlay.core.BackendInterface import PoseBackend
from services.pose_overlay.core.PoseSession import PoseSession


class ClosingPoseBackend(PoseBackend):
    def __init__(self):
        self.closed = False

    def estimate_poses(self, frame_rgb):
        return []

    def close(self):
        self.closed = True


@pytest.fixture
def pose_backend(monkeypatch, engine):
    backend = ClosingPoseBackend()
    monkeypatch.setattr(main_offline_video, "PoseSession", lambda config: PoseSession(config, engine=engine))
    monkeypatch.setattr(main_offline_video, "build_pose_backend", lambda config, eng: backend)
    return backend


def test_cli_overrides_config():
    args = main_webcam.parse_args(["--backend", "tflite-gpu", "--score-threshold", "0.5",
                                   "--flags", '{"TFLITE_NUM_THREADS": 4}'])
    config = main_webcam.build_config(args)
    assert config.backend == "tflite-gpu"
    assert config.model_config.score_threshold == 0.5
    assert config.flags == {"TFLITE_NUM_THREADS": 4}


def test_offline_run_closes_estimator(pose_backend, tmp_path):
    args = main_offline_video.parse_args([str(tmp_path / "missing.mp4"), "--output-dir", str(tmp_path)])
    with pytest.raises(ValueError, match="Cannot open video source"):
        asyncio.run(main_offline_video.run(args))
    assert pose_backend.closed
