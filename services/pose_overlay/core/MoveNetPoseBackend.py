import logging
from typing import Dict, List, Optional

import numpy as np
import tensorflow as tf

from services.pose_overlay.core.BackendInterface import Keypoint, Pose, PoseBackend
from services.pose_overlay.core.ComputeEngine import ComputeBackend, ComputeEngine
from services.pose_overlay.core.errors import BackendUnavailableError
from services.pose_overlay.core.joints import COCO_KEYPOINT_NAMES, BodyJointMoveNet
from services.pose_overlay.core.params import MOVENET_MODEL_PATHS

logger = logging.getLogger(__name__)

# Most suitable for detecting the pose of a single person who is 3ft ~ 6ft away from a
# device's webcam that captures the video stream.

# Keypoints under this score are ignored when sizing the next crop region.
MIN_CROP_KEYPOINT_SCORE = 0.2
TORSO_JOINTS = [
    BodyJointMoveNet.LEFT_SHOULDER,
    BodyJointMoveNet.RIGHT_SHOULDER,
    BodyJointMoveNet.LEFT_HIP,
    BodyJointMoveNet.RIGHT_HIP,
]


def init_crop_region(image_height: int, image_width: int) -> Dict[str, float]:
    """Full frame padded to a square, in normalized coordinates."""
    if image_width > image_height:
        height, width = image_width / image_height, 1.0
        y_min, x_min = (image_height / 2 - image_width / 2) / image_height, 0.0
    else:
        height, width = 1.0, image_height / image_width
        y_min, x_min = 0.0, (image_width / 2 - image_height / 2) / image_width
    return {
        "y_min": y_min,
        "x_min": x_min,
        "y_max": y_min + height,
        "x_max": x_min + width,
        "height": height,
        "width": width,
    }


def torso_visible(keypoints: np.ndarray) -> bool:
    """keypoints: (17, 3) array of normalized (y, x, score)."""
    scores = keypoints[:, 2]
    hips = max(scores[BodyJointMoveNet.LEFT_HIP], scores[BodyJointMoveNet.RIGHT_HIP])
    shoulders = max(scores[BodyJointMoveNet.LEFT_SHOULDER], scores[BodyJointMoveNet.RIGHT_SHOULDER])
    return hips > MIN_CROP_KEYPOINT_SCORE and shoulders > MIN_CROP_KEYPOINT_SCORE


def determine_crop_region(keypoints: np.ndarray, image_height: int, image_width: int) -> Dict[str, float]:
    """
    Square region, centered between the hips, that encloses the body seen in the
    previous frame. Falls back to the padded full frame when the torso was not
    detected confidently or the region would exceed the frame.
    """
    if not torso_visible(keypoints):
        return init_crop_region(image_height, image_width)

    points_px = keypoints[:, :2] * np.array([image_height, image_width])
    center = (points_px[BodyJointMoveNet.LEFT_HIP] + points_px[BodyJointMoveNet.RIGHT_HIP]) / 2
    center_y, center_x = center

    torso_range = np.abs(points_px[TORSO_JOINTS] - center).max(axis=0)
    confident = keypoints[:, 2] >= MIN_CROP_KEYPOINT_SCORE
    body_range = np.abs(points_px[confident] - center).max(axis=0) if confident.any() else np.zeros(2)

    half = max(torso_range.max() * 1.9, body_range.max() * 1.2)
    half = min(half, max(center_x, image_width - center_x, center_y, image_height - center_y))

    if half > max(image_width, image_height) / 2:
        return init_crop_region(image_height, image_width)

    length = half * 2
    y_min = (center_y - half) / image_height
    x_min = (center_x - half) / image_width
    return {
        "y_min": y_min,
        "x_min": x_min,
        "y_max": y_min + length / image_height,
        "x_max": x_min + length / image_width,
        "height": length / image_height,
        "width": length / image_width,
    }


class MoveNetPoseBackend(PoseBackend):
    """
    Single-pose MoveNet on TFLite.

    The interpreter comes from the engine's active compute backend and is rebuilt
    whenever the configurator swaps that backend.
    """

    def __init__(self, engine: ComputeEngine, model_path: str = MOVENET_MODEL_PATHS["lightning"]):
        self.engine = engine
        self.model_path = model_path
        self.interpreter = None
        self._compute_backend: Optional[ComputeBackend] = None
        self.crop_region: Optional[Dict[str, float]] = None

    def _ensure_interpreter(self) -> ComputeBackend:
        backend = self.engine.backend
        if backend is None:
            raise BackendUnavailableError("No compute backend is active.")
        if backend is not self._compute_backend:
            if self._compute_backend is not None:
                # tracked crop came from the previous interpreter
                self.reset()
            self.interpreter = backend.make_interpreter(self.model_path)
            self.input_details = self.interpreter.get_input_details()
            self.output_details = self.interpreter.get_output_details()
            self._compute_backend = backend
            logger.info(f"Loaded {self.model_path} on the {backend.name} backend")
        return backend

    def reset(self) -> None:
        self.crop_region = None

    def close(self) -> None:
        self.interpreter = None
        self._compute_backend = None
        self.reset()

    def run_model_inference(self, image: np.ndarray, crop_region: Dict[str, float]) -> np.ndarray:
        """Run MoveNet on the crop and return (17, 3) normalized (y, x, score) in full-image space."""
        backend = self._ensure_interpreter()
        input_height, input_width = self.input_details[0]["shape"][1:3]

        boxes = [[crop_region["y_min"], crop_region["x_min"], crop_region["y_max"], crop_region["x_max"]]]
        input_image = tf.image.crop_and_resize(
            tf.expand_dims(image, axis=0), box_indices=[0], boxes=boxes,
            crop_size=(int(input_height), int(input_width)))
        input_image = tf.cast(input_image, dtype=self.input_details[0]["dtype"])

        self.interpreter.set_tensor(self.input_details[0]["index"], input_image.numpy())
        self.interpreter.invoke()
        output = self.interpreter.get_tensor(self.output_details[0]["index"])
        keypoints = np.array(backend.check_output(output)[0, 0], dtype=np.float32)

        keypoints[:, 0] = crop_region["y_min"] + crop_region["height"] * keypoints[:, 0]
        keypoints[:, 1] = crop_region["x_min"] + crop_region["width"] * keypoints[:, 1]
        return keypoints

    def estimate_poses(self, frame_rgb: np.ndarray) -> List[Pose]:
        image_height, image_width, _ = frame_rgb.shape
        self._ensure_interpreter()
        if self.crop_region is None:
            self.crop_region = init_crop_region(image_height, image_width)

        keypoints = self.run_model_inference(frame_rgb, self.crop_region)
        self.crop_region = determine_crop_region(keypoints, image_height, image_width)

        scores = keypoints[:, 2]
        if not np.any(scores > 0):
            return []

        return [
            Pose(
                keypoints=[
                    Keypoint(
                        x=float(x) * image_width,
                        y=float(y) * image_height,
                        score=float(score),
                        name=COCO_KEYPOINT_NAMES[i],
                    )
                    for i, (y, x, score) in enumerate(keypoints)
                ],
                score=float(scores.mean()),
            )
        ]
