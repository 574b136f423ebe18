from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Tuple


class BodyJointMoveNet(IntEnum):
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


COCO_KEYPOINT_NAMES = [joint.name.lower() for joint in BodyJointMoveNet]

BLAZEPOSE_KEYPOINT_NAMES = [
    "nose",
    "left_eye_inner",
    "left_eye",
    "left_eye_outer",
    "right_eye_inner",
    "right_eye",
    "right_eye_outer",
    "left_ear",
    "right_ear",
    "mouth_left",
    "mouth_right",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_pinky",
    "right_pinky",
    "left_index",
    "right_index",
    "left_thumb",
    "right_thumb",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
    "left_heel",
    "right_heel",
    "left_foot_index",
    "right_foot_index",
]


@dataclass(frozen=True)
class KeypointSideIndex:
    left: Tuple[int, ...]
    right: Tuple[int, ...]
    middle: Tuple[int, ...]


COCO_KEYPOINTS_BY_SIDE = KeypointSideIndex(
    left=(1, 3, 5, 7, 9, 11, 13, 15),
    right=(2, 4, 6, 8, 10, 12, 14, 16),
    middle=(0,),
)

COCO_CONNECTED_KEYPOINTS_PAIRS: List[Tuple[int, int]] = [
    (0, 1), (0, 2), (1, 3), (2, 4),           # head
    (5, 6), (5, 7), (5, 11), (6, 8), (6, 12),  # shoulders / torso
    (7, 9), (8, 10),                           # arms
    (11, 12), (11, 13), (12, 14),              # hips
    (13, 15), (14, 16),                        # legs
]

BLAZEPOSE_KEYPOINTS_BY_SIDE = KeypointSideIndex(
    left=(1, 2, 3, 7, 9, 11, 13, 15, 17, 19, 21, 23, 25, 27, 29, 31),
    right=(4, 5, 6, 8, 10, 12, 14, 16, 18, 20, 22, 24, 26, 28, 30, 32),
    middle=(0,),
)

BLAZEPOSE_CONNECTED_KEYPOINTS_PAIRS: List[Tuple[int, int]] = [
    (0, 1), (0, 4), (1, 2), (2, 3), (3, 7), (4, 5), (5, 6), (6, 8),
    (9, 10),
    (11, 12), (11, 13), (11, 23), (12, 14), (14, 16), (12, 24),
    (13, 15), (15, 17), (16, 18), (16, 20), (15, 19), (15, 21),
    (16, 22), (17, 19), (18, 20),
    (23, 25), (23, 24), (24, 26), (25, 27), (26, 28),
    (27, 29), (28, 30), (27, 31), (28, 32), (29, 31), (30, 32),
]


class PoseModel(ABC):
    """Static keypoint metadata of one pose model variant."""

    name: str = ""

    @abstractmethod
    def get_side_index(self) -> KeypointSideIndex:
        ...

    @abstractmethod
    def get_adjacent_pairs(self) -> List[Tuple[int, int]]:
        ...


class MoveNetModel(PoseModel):
    name = "movenet"

    def get_side_index(self) -> KeypointSideIndex:
        return COCO_KEYPOINTS_BY_SIDE

    def get_adjacent_pairs(self) -> List[Tuple[int, int]]:
        return COCO_CONNECTED_KEYPOINTS_PAIRS


class PoseNetModel(MoveNetModel):
    # Same COCO-17 layout as MoveNet.
    name = "posenet"


class BlazePoseModel(PoseModel):
    name = "blazepose"

    def get_side_index(self) -> KeypointSideIndex:
        return BLAZEPOSE_KEYPOINTS_BY_SIDE

    def get_adjacent_pairs(self) -> List[Tuple[int, int]]:
        return BLAZEPOSE_CONNECTED_KEYPOINTS_PAIRS


_POSE_MODELS: Dict[str, PoseModel] = {
    model.name: model for model in (MoveNetModel(), PoseNetModel(), BlazePoseModel())
}


def get_pose_model(name: str) -> PoseModel:
    model = _POSE_MODELS.get(str(name).lower())
    if model is None:
        raise ValueError(f"Model {name} is not supported.")
    return model
