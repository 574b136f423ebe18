import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np


@dataclass
class Arc:
    x: float
    y: float
    radius: float
    start_angle: float
    end_angle: float


@dataclass
class Path2D:
    """A recorded path: arcs plus polyline sub-paths started by move_to."""

    arcs: List[Arc] = field(default_factory=list)
    subpaths: List[List[Tuple[float, float]]] = field(default_factory=list)

    def arc(self, x: float, y: float, radius: float, start_angle: float = 0.0,
            end_angle: float = 2 * math.pi) -> None:
        self.arcs.append(Arc(x, y, radius, start_angle, end_angle))

    def move_to(self, x: float, y: float) -> None:
        self.subpaths.append([(x, y)])

    def line_to(self, x: float, y: float) -> None:
        if not self.subpaths:
            self.subpaths.append([(x, y)])
        else:
            self.subpaths[-1].append((x, y))


class DrawingContext(ABC):
    """
    Immediate-mode 2D drawing surface.

    Style attributes persist until they are reassigned; `fill`/`stroke` without
    an explicit path paint the current path built with begin_path/move_to/line_to.
    """

    def __init__(self):
        self.fill_style: str = "Black"
        self.stroke_style: str = "Black"
        self.line_width: float = 1
        self._path = Path2D()

    def begin_path(self) -> None:
        self._path = Path2D()

    def move_to(self, x: float, y: float) -> None:
        self._path.move_to(x, y)

    def line_to(self, x: float, y: float) -> None:
        self._path.line_to(x, y)

    def fill(self, path: Optional[Path2D] = None) -> None:
        self._fill_path(path if path is not None else self._path)

    def stroke(self, path: Optional[Path2D] = None) -> None:
        self._stroke_path(path if path is not None else self._path)

    @abstractmethod
    def _fill_path(self, path: Path2D) -> None:
        ...

    @abstractmethod
    def _stroke_path(self, path: Path2D) -> None:
        ...


CSS_COLORS_BGR = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (0, 0, 255),
    "green": (0, 128, 0),
    "lime": (0, 255, 0),
    "blue": (255, 0, 0),
    "orange": (0, 165, 255),
    "yellow": (0, 255, 255),
    "cyan": (255, 255, 0),
    "magenta": (255, 0, 255),
}


def parse_color(color: Union[str, Tuple[int, int, int]]) -> Tuple[int, int, int]:
    """CSS colour name or #rrggbb to an OpenCV BGR tuple."""
    if isinstance(color, tuple):
        return color
    text = color.strip().lower()
    if text in CSS_COLORS_BGR:
        return CSS_COLORS_BGR[text]
    if text.startswith("#") and len(text) == 7:
        try:
            r, g, b = (int(text[i:i + 2], 16) for i in (1, 3, 5))
        except ValueError:
            pass
        else:
            return (b, g, r)
    raise ValueError(f"Unsupported color: {color}")


class CvDrawingContext(DrawingContext):
    """DrawingContext that paints in place on a BGR image with OpenCV."""

    def __init__(self, image_bgr: np.ndarray):
        super().__init__()
        self.image = image_bgr

    @staticmethod
    def _arc_args(arc: Arc):
        center = (int(round(arc.x)), int(round(arc.y)))
        radius = max(0, int(round(arc.radius)))
        return center, (radius, radius), 0, math.degrees(arc.start_angle), math.degrees(arc.end_angle)

    def _fill_path(self, path: Path2D) -> None:
        color = parse_color(self.fill_style)
        for arc in path.arcs:
            cv2.ellipse(self.image, *self._arc_args(arc), color, -1)
        for points in path.subpaths:
            if len(points) >= 3:
                pts = np.round(np.array(points)).astype(np.int32)
                cv2.fillPoly(self.image, [pts], color)

    def _stroke_path(self, path: Path2D) -> None:
        color = parse_color(self.stroke_style)
        thickness = max(1, int(round(self.line_width)))
        for arc in path.arcs:
            cv2.ellipse(self.image, *self._arc_args(arc), color, thickness)
        for points in path.subpaths:
            if len(points) >= 2:
                pts = np.round(np.array(points)).astype(np.int32)
                cv2.polylines(self.image, [pts], False, color, thickness)
