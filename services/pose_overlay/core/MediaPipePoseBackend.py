from typing import List

import mediapipe as mp
import numpy as np

from services.pose_overlay.core.BackendInterface import Keypoint, Pose, PoseBackend
from services.pose_overlay.core.joints import BLAZEPOSE_KEYPOINT_NAMES

mp_pose = mp.solutions.pose


class MediaPipePoseBackend(PoseBackend):
    """BlazePose through MediaPipe Pose; 33 keypoints, visibility used as score."""

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self._pose = mp_pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def estimate_poses(self, frame_rgb: np.ndarray) -> List[Pose]:
        height, width = frame_rgb.shape[:2]
        results = self._pose.process(frame_rgb)

        if not getattr(results, "pose_landmarks", None):
            return []

        keypoints = [
            Keypoint(
                x=lm.x * width,
                y=lm.y * height,
                score=lm.visibility,
                name=BLAZEPOSE_KEYPOINT_NAMES[i],
            )
            for i, lm in enumerate(results.pose_landmarks.landmark)
        ]
        return [Pose(keypoints=keypoints, score=float(np.mean([kp.score for kp in keypoints])))]

    def close(self) -> None:
        self._pose.close()
