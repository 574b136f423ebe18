from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
import numpy as np


@dataclass
class Keypoint:
    x: float
    y: float
    score: Optional[float] = None
    name: Optional[str] = None


@dataclass
class Pose:
    keypoints: Optional[List[Keypoint]]
    id: Optional[int] = None
    score: Optional[float] = None


class PoseBackend(ABC):
    """Abstract base for any pose model (MediaPipe, MoveNet, etc.)."""

    @abstractmethod
    def estimate_poses(self, frame_rgb: np.ndarray) -> List[Pose]:
        """Run pose estimation on one RGB frame and return the detected poses in pixel coordinates."""
        ...

    def close(self) -> None:
        """Release model resources. The backend is not used afterwards."""
