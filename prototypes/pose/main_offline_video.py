import argparse
import asyncio
import logging

from prototypes.pose.main_webcam import build_config
from services.pose_overlay.core import params
from services.pose_overlay.core.PoseSession import PoseSession, build_pose_backend
from services.pose_overlay.core.VideoProcessor import VideoProcessor


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Draw detected poses on every frame of a video file.")
    parser.add_argument("video_path")
    parser.add_argument("--output-dir", default="prototypes/pose/pose_frames")
    parser.add_argument("--target-fps", type=int, default=15)
    parser.add_argument("--config", default=None)
    parser.add_argument("--model", choices=["movenet", "posenet", "blazepose"], default=None)
    parser.add_argument("--model-type", choices=sorted(params.MOVENET_MODEL_PATHS), default=None)
    parser.add_argument("--backend", default=None)
    parser.add_argument("--score-threshold", type=float, default=None)
    parser.add_argument("--enable-tracking", action="store_true")
    parser.add_argument("--flags", default=None)
    return parser.parse_args(argv)


async def run(args) -> None:
    config = build_config(args)
    session = PoseSession(config)
    await session.start()

    pose_backend = build_pose_backend(config, session.engine)
    processor = VideoProcessor(
        pose_backend=pose_backend,
        renderer=session.renderer,
        target_fps=args.target_fps,
        save_frames=True,
        output_dir=args.output_dir,
    )

    try:
        pose_data = processor.process_video(args.video_path)
    finally:
        pose_backend.close()

    print(f"Processed {len(pose_data)} frames on {config.backend}")
    with_poses = [f for f in pose_data if f["poses"]]
    print(f"Frames with poses: {len(with_poses)} / {len(pose_data)}")
    if with_poses:
        first = with_poses[0]
        print("First frame with a pose:")
        print("  frame_idx:", first["frame_idx"])
        print("  time_sec:", first["time_sec"])
        print("  num_keypoints:", len(first["poses"][0].keypoints or []))


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    main()
