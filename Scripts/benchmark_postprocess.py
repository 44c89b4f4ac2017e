from __future__ import annotations

import argparse
import time
from typing import Callable, List

import numpy as np

from yolo_edge import NMSConfig, compute_letterbox, decode_detections, nms_sorted, sort_detections


def _stage_line(label: str, samples_s: List[float]) -> str:
    ms = np.asarray(samples_s, dtype=np.float64) * 1000.0
    p50, p95 = np.percentile(ms, [50.0, 95.0])
    return f"{label}: n={ms.size} mean={ms.mean():.3f}ms p50={p50:.3f}ms p95={p95:.3f}ms max={ms.max():.3f}ms"


def synthetic_output(anchors: int, num_labels: int, size: int, hit_rate: float, seed: int = 0) -> np.ndarray:
    """(4 + C, A) tensor where roughly `hit_rate` of anchors score above 0.5."""
    rng = np.random.default_rng(seed)
    out = np.empty((4 + num_labels, anchors), dtype=np.float32)
    out[0:2] = rng.uniform(0, size, size=(2, anchors))
    out[2:4] = rng.uniform(8, 120, size=(2, anchors))
    out[4:] = rng.uniform(0.0, 0.2, size=(num_labels, anchors))
    hits = rng.random(anchors) < hit_rate
    labels = rng.integers(0, num_labels, size=anchors)
    out[4 + labels[hits], np.flatnonzero(hits)] = rng.uniform(0.5, 1.0, size=int(hits.sum()))
    return out


def _time(fn: Callable[[], object], repeats: int, warmup: int) -> List[float]:
    samples: List[float] = []
    for k in range(warmup + repeats):
        t0 = time.perf_counter()
        fn()
        t1 = time.perf_counter()
        if k >= warmup:
            samples.append(t1 - t0)
    return samples


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode / sort / NMS on a synthetic YOLO output tensor.")
    parser.add_argument("--anchors", type=int, default=4725, help="Anchor count (4725 for a 480x480 input).")
    parser.add_argument("--labels", type=int, default=80, help="Number of classes.")
    parser.add_argument("--imgsz", type=int, default=480, help="Square input size.")
    parser.add_argument("--hit-rate", type=float, default=0.2, help="Fraction of anchors above threshold.")
    parser.add_argument("--conf", type=float, default=0.25, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS.")
    parser.add_argument("--agnostic", action="store_true", help="Class-agnostic NMS.")
    parser.add_argument("--workers", type=int, default=4, help="Threads for the parallel sort.")
    parser.add_argument("--warmup", type=int, default=3, help="Warmup runs not recorded.")
    parser.add_argument("--repeats", type=int, default=20, help="Recorded runs per stage.")
    args = parser.parse_args()

    if args.anchors < 1 or args.labels < 1:
        raise ValueError("--anchors and --labels must be >= 1")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    out = synthetic_output(args.anchors, args.labels, args.imgsz, args.hit_rate)
    padded = compute_letterbox(args.imgsz, args.imgsz, target_size=args.imgsz).padded_size
    proposals = decode_detections(out, args.conf, padded)
    nms_cfg = NMSConfig(iou_threshold=args.iou, class_agnostic=args.agnostic)
    ordered = sort_detections(list(proposals), workers=1)

    t_decode = _time(lambda: decode_detections(out, args.conf, padded), args.repeats, args.warmup)
    t_sort_seq = _time(lambda: sort_detections(list(proposals), workers=1), args.repeats, args.warmup)
    t_sort_par = _time(
        lambda: sort_detections(list(proposals), workers=args.workers, parallel_threshold=0),
        args.repeats,
        args.warmup,
    )
    t_nms = _time(lambda: nms_sorted(ordered, nms_cfg), args.repeats, args.warmup)

    print(_stage_line("decode", t_decode))
    print(_stage_line("sort_sequential", t_sort_seq))
    print(_stage_line(f"sort_parallel_{args.workers}", t_sort_par))
    print(_stage_line("nms", t_nms))
    print(f"candidates={len(proposals)} kept={len(nms_sorted(ordered, nms_cfg))}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
