import math
from typing import List, Optional

from services.pose_overlay.core.BackendInterface import Keypoint, Pose
from services.pose_overlay.core.DrawingContext import DrawingContext, Path2D
from services.pose_overlay.core.joints import get_pose_model
from services.pose_overlay.core.params import DEFAULT_LINE_WIDTH, DEFAULT_RADIUS, RuntimeConfig

COLOR_PALETTE = [
    "#ffffff", "#800000", "#469990", "#e6194b", "#42d4f4", "#fabed4", "#aaffc3",
    "#9a6324", "#000075", "#f58231", "#4363d8", "#ffd8b1", "#dcbeff", "#808000",
    "#ffe119", "#911eb4", "#bfef45", "#f032e6", "#3cb44b", "#a9a9a9",
]


class PoseRenderer:
    """Draws keypoints and skeletons of detected poses onto a DrawingContext."""

    def __init__(self, config: RuntimeConfig):
        self.config = config

    def _score_threshold(self) -> float:
        return self.config.model_config.score_threshold or 0

    def draw_results(self, ctx: DrawingContext, poses: List[Pose]) -> None:
        for pose in poses:
            self.draw_result(ctx, pose)

    def draw_result(self, ctx: DrawingContext, pose: Pose) -> None:
        if pose.keypoints is not None:
            self.draw_keypoints(ctx, pose.keypoints)
            self.draw_skeleton(ctx, pose.keypoints, pose.id)

    def draw_keypoints(self, ctx: DrawingContext, keypoints: List[Keypoint]) -> None:
        keypoint_ind = get_pose_model(self.config.model).get_side_index()
        ctx.fill_style = "Red"
        ctx.stroke_style = "White"
        ctx.line_width = DEFAULT_LINE_WIDTH

        for i in keypoint_ind.middle:
            self.draw_keypoint(ctx, keypoints[i])

        # Left and right only change the fill; the white stroke carries over.
        ctx.fill_style = "Green"
        for i in keypoint_ind.left:
            self.draw_keypoint(ctx, keypoints[i])

        ctx.fill_style = "Orange"
        for i in keypoint_ind.right:
            self.draw_keypoint(ctx, keypoints[i])

    def draw_keypoint(self, ctx: DrawingContext, keypoint: Keypoint) -> None:
        # A missing score counts as 0 here, so it only passes a zero threshold.
        score = keypoint.score if keypoint.score is not None else 0

        if score >= self._score_threshold():
            circle = Path2D()
            circle.arc(keypoint.x, keypoint.y, DEFAULT_RADIUS, 0, 2 * math.pi)
            ctx.fill(circle)
            ctx.stroke(circle)

    def skeleton_color(self, pose_id: Optional[int]) -> str:
        # Each pose id maps to a palette entry so a tracked body keeps its colour.
        if self.config.model_config.enable_tracking and pose_id is not None:
            return COLOR_PALETTE[pose_id % 20]
        return "Red"

    def draw_skeleton(self, ctx: DrawingContext, keypoints: List[Keypoint], pose_id: Optional[int]) -> None:
        color = self.skeleton_color(pose_id)
        ctx.fill_style = color
        ctx.stroke_style = color
        ctx.line_width = DEFAULT_LINE_WIDTH

        score_threshold = self._score_threshold()
        for i, j in get_pose_model(self.config.model).get_adjacent_pairs():
            kp1 = keypoints[i]
            kp2 = keypoints[j]
            # A missing score counts as 1 for edges, unlike keypoints.
            score1 = kp1.score if kp1.score is not None else 1
            score2 = kp2.score if kp2.score is not None else 1

            if score1 >= score_threshold and score2 >= score_threshold:
                ctx.begin_path()
                ctx.move_to(kp1.x, kp1.y)
                ctx.line_to(kp2.x, kp2.y)
                ctx.stroke()
