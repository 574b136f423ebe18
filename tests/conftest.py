"""Shared fixtures: a recording drawing surface, stub compute backends and configs."""
import numpy as np
import pytest

from services.pose_overlay.core.BackendInterface import Keypoint, Pose
from services.pose_overlay.core.ComputeEngine import ComputeBackend, ComputeEngine
from services.pose_overlay.core.DrawingContext import DrawingContext
from services.pose_overlay.core.params import ModelConfig, RuntimeConfig


class RecordingContext(DrawingContext):
    """DrawingContext that records every painted shape with the styles in effect."""

    def __init__(self):
        super().__init__()
        self.ops = []

    def _fill_path(self, path):
        for arc in path.arcs:
            self.ops.append(("fill", "arc", (arc.x, arc.y, arc.radius), self.fill_style, self.stroke_style))
        for points in path.subpaths:
            self.ops.append(("fill", "path", tuple(points), self.fill_style, self.stroke_style))

    def _stroke_path(self, path):
        for arc in path.arcs:
            self.ops.append(("stroke", "arc", (arc.x, arc.y, arc.radius), self.fill_style, self.stroke_style))
        for points in path.subpaths:
            self.ops.append(("stroke", "line", tuple(points), self.fill_style, self.stroke_style))

    def circles(self, op="fill"):
        return [o for o in self.ops if o[0] == op and o[1] == "arc"]

    def lines(self):
        return [o for o in self.ops if o[1] == "line"]


class FakeInterpreter:
    """Stands in for a MoveNet interpreter; every keypoint comes back with score 0."""

    def __init__(self, model_path):
        self.model_path = model_path
        self.invocations = 0

    def get_input_details(self):
        return [{"index": 0, "shape": np.array([1, 192, 192, 3]), "dtype": np.uint8}]

    def get_output_details(self):
        return [{"index": 1}]

    def set_tensor(self, index, value):
        self.input = value

    def invoke(self):
        self.invocations += 1

    def get_tensor(self, index):
        return np.zeros((1, 1, 17, 3), dtype=np.float32)


class StubBackend(ComputeBackend):
    instances = 0

    def __init__(self, flags):
        super().__init__(flags)
        StubBackend.instances += 1
        self.flags_at_creation = flags.get_flags()
        self.disposed = False

    def make_interpreter(self, model_path):
        return FakeInterpreter(model_path)

    def dispose(self):
        self.disposed = True


class StubCpuBackend(StubBackend):
    name = "cpu"


class StubWasmBackend(StubBackend):
    name = "wasm"


@pytest.fixture
def ctx():
    return RecordingContext()


@pytest.fixture
def engine():
    StubBackend.instances = 0
    eng = ComputeEngine()
    eng.register_backend("cpu", StubCpuBackend)
    eng.register_backend("wasm", StubWasmBackend)
    return eng


@pytest.fixture
def config():
    return RuntimeConfig(model="movenet", model_config=ModelConfig(score_threshold=0.3))


def make_coco_pose(score=0.9, pose_id=None, spacing=10.0):
    """17 keypoints laid out on a diagonal so each index has a distinct position."""
    keypoints = [Keypoint(x=i * spacing, y=i * spacing + 1, score=score) for i in range(17)]
    return Pose(keypoints=keypoints, id=pose_id)


@pytest.fixture
def make_pose():
    return make_coco_pose


@pytest.fixture
def coco_pose():
    return make_coco_pose()
