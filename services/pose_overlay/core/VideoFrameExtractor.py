from typing import Optional, Tuple, Union

import cv2


class VideoFrameExtractor:
    def __init__(self, target_fps: Optional[int] = None, resize_to: Optional[Tuple[int, int]] = None,
                 max_frames: Optional[int] = None):
        """
        target_fps: sampling fps, or None to keep every frame (webcam)
        resize_to: (width, height) or None to keep original size
        max_frames: optional cap on number of frames to yield
        """
        self.target_fps = target_fps
        self.resize_to = resize_to
        self.max_frames = max_frames

    def iter_frames(self, source: Union[int, str]):
        """Yield (frame_rgb, frame_idx, time_sec) from a webcam index or a video path."""
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            raise ValueError(f"Cannot open video source: {source}")

        if isinstance(source, int) and self.resize_to is not None:
            # Ask the camera for the size up front; frames are still resized below.
            w, h = self.resize_to
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)

        orig_fps = cap.get(cv2.CAP_PROP_FPS)
        if orig_fps <= 0:
            # webcams and broken metadata
            orig_fps = self.target_fps or 30.0

        frame_step = 1 if self.target_fps is None else max(1, round(orig_fps / self.target_fps))
        frame_idx = 0
        yielded = 0

        try:
            while True:
                ret, frame_bgr = cap.read()
                if not ret:
                    break

                if frame_idx % frame_step != 0:
                    frame_idx += 1
                    continue

                if self.resize_to is not None:
                    frame_bgr = cv2.resize(frame_bgr, self.resize_to)

                frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
                yield frame_rgb, frame_idx, frame_idx / orig_fps

                yielded += 1
                frame_idx += 1

                if self.max_frames is not None and yielded >= self.max_frames:
                    break
        finally:
            cap.release()
