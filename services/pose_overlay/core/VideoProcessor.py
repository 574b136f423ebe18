import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

from services.pose_overlay.core.BackendInterface import Pose, PoseBackend
from services.pose_overlay.core.DrawingContext import CvDrawingContext
from services.pose_overlay.core.PoseRenderer import PoseRenderer
from services.pose_overlay.core.VideoFrameExtractor import VideoFrameExtractor

logger = logging.getLogger(__name__)


class VideoProcessor:
    def __init__(
        self,
        pose_backend: PoseBackend,
        renderer: PoseRenderer,
        target_fps: Optional[int] = None,
        resize_to: Optional[Tuple[int, int]] = None,
        save_frames: bool = False,
        output_dir: str = "processed_frames",
    ):
        self.frame_extractor = VideoFrameExtractor(
            target_fps=target_fps,
            resize_to=resize_to,
        )
        self.pose_backend = pose_backend
        self.renderer = renderer
        self.save_frames = save_frames
        self.output_dir = output_dir

        if self.save_frames:
            os.makedirs(self.output_dir, exist_ok=True)

    def annotate(self, frame_rgb: np.ndarray) -> Tuple[np.ndarray, List[Pose]]:
        """Estimate poses on one frame and return a BGR copy with them drawn, plus the poses."""
        poses = self.pose_backend.estimate_poses(frame_rgb)
        frame_bgr = cv2.cvtColor(frame_rgb, cv2.COLOR_RGB2BGR)
        self.renderer.draw_results(CvDrawingContext(frame_bgr), poses)
        return frame_bgr, poses

    def process_video(self, source: Union[int, str]) -> List[Dict[str, Any]]:
        """
        Annotate every sampled frame of a video source.

        Returns:
            List[dict]: each item has frame index, timestamp, and poses.
        """
        results_list: List[Dict[str, Any]] = []

        for frame_rgb, frame_idx, t in self.frame_extractor.iter_frames(source):
            drawn_bgr, poses = self.annotate(frame_rgb)

            if self.save_frames:
                filename = os.path.join(self.output_dir, f"frame_{frame_idx:04d}.jpg")
                cv2.imwrite(filename, drawn_bgr)

            results_list.append(
                {
                    "frame_idx": frame_idx,
                    "time_sec": t,
                    "poses": poses,
                }
            )

        logger.info(f"Processed {len(results_list)} frames from {source}")
        return results_list
