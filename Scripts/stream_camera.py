import argparse
from dataclasses import replace
from pathlib import Path

import cv2
from loguru import logger

from mango_kit import PipelineConfig, draw_detections, frame_from_i420, load_pipeline, load_pipeline_config
from mango_kit.logging_config import setup_logging


def _to_i420(frame_bgr):
    # I420 needs even dimensions.
    h, w = frame_bgr.shape[:2]
    frame_bgr = frame_bgr[: h - (h % 2), : w - (w % 2)]
    h, w = frame_bgr.shape[:2]
    return frame_from_i420(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2YUV_I420), w, h), frame_bgr


def main() -> int:
    parser = argparse.ArgumentParser(description="Live mango ripeness detection on a webcam or video.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (default 0).")
    parser.add_argument("--model", default="Models/mango.onnx", help="Path to the ONNX detector.")
    parser.add_argument("--labels", default="Models/labels.txt", help="Path to labels.txt (one label per line).")
    parser.add_argument("--config", default=None, help="Optional pipeline config JSON.")
    parser.add_argument("--every", type=int, default=None, help="Run the pipeline on every Nth frame.")
    parser.add_argument("--timeout", type=float, default=None, help="Per-run timeout in seconds.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--no-show", action="store_true", help="Do not open a preview window.")
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, ...).")
    parser.add_argument("--log-file", default=None, help="Optional rotating log file.")
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_file)

    cfg = load_pipeline_config(Path(args.config)) if args.config else PipelineConfig()
    overrides = {}
    if args.every is not None:
        overrides["sample_interval"] = args.every
    if args.timeout is not None:
        overrides["run_timeout_s"] = args.timeout
    if overrides:
        cfg = replace(cfg, **overrides)
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    pipeline = load_pipeline(args.model, args.labels, cfg=cfg)

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    throttle = pipeline.stream()
    frame_idx = 0
    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break
            frame_idx += 1

            raw, frame = _to_i420(frame)
            throttle.on_frame(raw)

            if not args.no_show:
                vis = draw_detections(frame, throttle.cell.snapshot())
                cv2.imshow("mango", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            if args.max_frames and frame_idx >= args.max_frames:
                break
    finally:
        throttle.close()
        cap.release()
        if not args.no_show:
            cv2.destroyAllWindows()

    logger.info("Stream stats: {}", throttle.stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
