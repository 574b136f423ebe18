import argparse
import asyncio
import json
import logging

import cv2

from services.pose_overlay.core import params
from services.pose_overlay.core.PoseSession import PoseSession, build_pose_backend
from services.pose_overlay.core.VideoFrameExtractor import VideoFrameExtractor
from services.pose_overlay.core.VideoProcessor import VideoProcessor
from services.pose_overlay.core.environment import default_camera_size
from services.pose_overlay.core.params import RuntimeConfig, load_runtime_config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Draw detected poses over a webcam feed.")
    parser.add_argument("--config", default=None, help="JSON runtime config")
    parser.add_argument("--source", default="0", help="webcam index or video path")
    parser.add_argument("--model", choices=["movenet", "posenet", "blazepose"], default=None)
    parser.add_argument("--model-type", choices=sorted(params.MOVENET_MODEL_PATHS), default=None)
    parser.add_argument("--backend", default=None, help="e.g. tflite-cpu, tflite-gpu")
    parser.add_argument("--score-threshold", type=float, default=None)
    parser.add_argument("--enable-tracking", action="store_true")
    parser.add_argument("--flags", default=None, help='JSON object, e.g. \'{"TFLITE_NUM_THREADS": 4}\'')
    parser.add_argument("--user-agent", default="", help="used to pick the capture size")
    return parser.parse_args(argv)


def build_config(args) -> RuntimeConfig:
    config = load_runtime_config(args.config)
    if args.model:
        config.model = args.model
    if args.model_type:
        config.model_config.model_type = args.model_type
    if args.backend:
        config.backend = args.backend
    if args.score_threshold is not None:
        config.model_config.score_threshold = args.score_threshold
    if args.enable_tracking:
        config.model_config.enable_tracking = True
    if args.flags:
        config.flags = json.loads(args.flags)
    return config


async def run(args) -> None:
    config = build_config(args)
    session = PoseSession(config)
    await session.start()

    pose_backend = build_pose_backend(config, session.engine)
    processor = VideoProcessor(pose_backend=pose_backend, renderer=session.renderer)
    source = int(args.source) if args.source.isdigit() else args.source
    extractor = VideoFrameExtractor(resize_to=default_camera_size(args.user_agent))

    try:
        await _show_frames(session, processor, extractor.iter_frames(source))
    finally:
        pose_backend.close()
        cv2.destroyAllWindows()


async def _show_frames(session, processor, frames) -> None:
    config = session.config
    for frame_rgb, _, _ in frames:
        drawn_bgr, _ = processor.annotate(frame_rgb)

        cv2.putText(
            drawn_bgr,
            f"Backend: {config.backend}",
            (10, 25),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            (0, 255, 0),
            2,
            cv2.LINE_AA,
        )
        if session.messages:
            cv2.putText(drawn_bgr, session.messages[-1][:60], (10, 50),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.45, (0, 165, 255), 1, cv2.LINE_AA)

        cv2.imshow("Poser - Webcam Pose", drawn_bgr)

        key = cv2.waitKey(1) & 0xFF
        # Quit on 'q', next backend on 'b'
        if key == ord("q"):
            break
        if key == ord("b"):
            await session.cycle_backend()


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    main()
