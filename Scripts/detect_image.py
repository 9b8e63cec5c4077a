import argparse
from dataclasses import replace
from pathlib import Path

import cv2
from loguru import logger

from mango_kit import PipelineConfig, draw_detections, load_pipeline, load_pipeline_config
from mango_kit.logging_config import setup_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect mangoes and their ripeness on a single photo.")
    parser.add_argument("image", help="Path to an input photo.")
    parser.add_argument("--model", default="Models/mango.onnx", help="Path to the ONNX detector.")
    parser.add_argument("--labels", default="Models/labels.txt", help="Path to labels.txt (one label per line).")
    parser.add_argument("--config", default=None, help="Optional pipeline config JSON.")
    parser.add_argument("--layout", default=None, help="Output layout: class_only / objectness.")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out", default=None, help="Optional output path for the annotated image.")
    parser.add_argument("--show", action="store_true", help="Show a window with the annotated image.")
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, ...).")
    args = parser.parse_args()

    setup_logging(args.log_level)

    cfg = load_pipeline_config(Path(args.config)) if args.config else PipelineConfig.for_still_images()
    overrides = {}
    if args.layout is not None:
        overrides["attribute_layout"] = args.layout
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if overrides:
        cfg = replace(cfg, **overrides)

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    pipeline = load_pipeline(args.model, args.labels, cfg=cfg, onnx_providers=onnx_providers)

    img = cv2.imread(args.image)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")

    detections = pipeline.run_image(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
    logger.info("Detected {} mango(es) in {}", len(detections), args.image)

    h, w = img.shape[:2]
    for det in detections:
        print(f"{det.label}\t{det.confidence:.2f}\t{det.to_pixels(w, h)}")

    if args.out or args.show:
        vis = draw_detections(img, detections)
        if args.out:
            ok = cv2.imwrite(args.out, vis)
            if not ok:
                raise RuntimeError(f"Failed to write output image: {args.out}")
        if args.show:
            cv2.imshow("detections", vis)
            cv2.waitKey(0)
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
