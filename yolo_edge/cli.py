from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DetectorConfig, load_detector_config
from .errors import PreconditionFailure, YoloEdgeError
from .log import setup_logging
from .metadata import COCO_CLASS_NAMES, label_text, load_class_names, names_as_mapping

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yolo-edge",
        description="Detect objects in one image with a fixed-input YOLO model and save an annotated copy.",
    )
    parser.add_argument("image", help="Path to the input image.")
    parser.add_argument("model", help="ncnn model base path (<base>.param/.bin) or an .onnx file.")
    parser.add_argument("--config", default=None, help="Optional JSON detector config.")
    parser.add_argument("--int8", action="store_true", default=None, help="Use INT8 inference (disables FP16 arithmetic).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (default 0.25).")
    parser.add_argument("--nms", type=float, default=None, help="IoU threshold for NMS (default 0.45).")
    parser.add_argument("--agnostic", action="store_true", default=None, help="Class-agnostic NMS.")
    parser.add_argument("--cpu", action="store_true", help="Disable the GPU backend.")
    parser.add_argument("--backend", default=None, help="Force backend: ncnn / onnxruntime.")
    parser.add_argument("--names", default=None, help="Class metadata file with a `names:` mapping (default: COCO).")
    parser.add_argument("--out", default="output.jpg", help="Where to write the annotated image.")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines.")
    return parser


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    cfg = load_detector_config(Path(args.config)) if args.config else DetectorConfig()
    overrides = {}
    if args.int8 is not None:
        overrides["use_int8"] = True
    if args.conf is not None:
        overrides["confidence_threshold"] = float(args.conf)
    if args.nms is not None:
        overrides["nms_threshold"] = float(args.nms)
    if args.agnostic is not None:
        overrides["class_agnostic_nms"] = True
    if args.cpu:
        overrides["use_gpu_backend"] = False
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def run(args: argparse.Namespace) -> int:
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for the CLI. Install with `pip install opencv-python`.") from e

    from .runtime import load_pipeline
    from .visualize import draw_detections

    cfg = resolve_config(args)
    names = load_class_names(args.names) if args.names else names_as_mapping(COCO_CLASS_NAMES)

    img = cv2.imread(args.image)
    if img is None or img.size == 0:
        raise PreconditionFailure(f"Failed to read image: {args.image}")

    # A custom names file fixes the label count the output tensor must carry.
    num_labels = len(names) if args.names else None
    pipeline = load_pipeline(args.model, config=cfg, backend=args.backend, num_labels=num_labels)
    detections = pipeline(img)

    for det in detections:
        x0, y0, x1, y1 = det.as_xyxy()
        print(f"{label_text(names, det.label, det.probability)} [{x0:.1f}, {y0:.1f}, {x1:.1f}, {y1:.1f}]")

    vis = draw_detections(img, detections, class_names=names)
    if not cv2.imwrite(args.out, vis):
        raise PreconditionFailure(f"Failed to write output image: {args.out}")
    logger.info("Saved result as %s (%d objects)", args.out, len(detections))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json_format=args.log_json)
    try:
        return run(args)
    except (YoloEdgeError, OSError, ValueError, RuntimeError, ImportError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
