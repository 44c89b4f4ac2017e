from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.45
    # If False, only boxes sharing a label suppress each other.
    class_agnostic: bool = False


def box_iou(a: Detection, b: Detection) -> float:
    """
    IoU of two xywh boxes. A zero union (two empty boxes) gives 0.
    """
    ax0, ay0, ax1, ay1 = a.as_xyxy()
    bx0, by0, bx1, by1 = b.as_xyxy()
    inter_w = max(0.0, min(ax1, bx1) - max(ax0, bx0))
    inter_h = max(0.0, min(ay1, by1) - max(ay0, by0))
    inter = inter_w * inter_h
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def nms_sorted_indices(
    boxes: np.ndarray,
    labels: Optional[np.ndarray],
    cfg: NMSConfig,
) -> np.ndarray:
    """
    Greedy NMS over boxes already sorted by descending score.

    Expects boxes shape (N, 4) as x, y, w, h and labels shape (N,).
    Candidate i is dropped when its IoU with any kept box (of the same label
    unless class-agnostic) exceeds the threshold. Returns kept indices in input order.
    """

    boxes = np.asarray(boxes, dtype=np.float32).reshape(-1, 4)
    n = boxes.shape[0]
    if n == 0:
        return np.empty((0,), dtype=np.int32)
    if labels is None or cfg.class_agnostic:
        labels = np.zeros((n,), dtype=np.int64)
    else:
        labels = np.asarray(labels)

    x0 = boxes[:, 0]
    y0 = boxes[:, 1]
    x1 = x0 + boxes[:, 2]
    y1 = y0 + boxes[:, 3]
    areas = boxes[:, 2] * boxes[:, 3]

    keep = np.empty((n,), dtype=np.int32)
    kept = 0
    for i in range(n):
        k = keep[:kept]
        k = k[labels[k] == labels[i]]
        if k.size:
            w = np.maximum(0.0, np.minimum(x1[i], x1[k]) - np.maximum(x0[i], x0[k]))
            h = np.maximum(0.0, np.minimum(y1[i], y1[k]) - np.maximum(y0[i], y0[k]))
            inter = w * h
            union = areas[i] + areas[k] - inter
            iou = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)
            if np.any(iou > cfg.iou_threshold):
                continue
        keep[kept] = i
        kept += 1

    return keep[:kept].copy()


def nms_sorted(detections: Sequence[Detection], cfg: NMSConfig) -> List[Detection]:
    """
    Keep the subsequence of `detections` (sorted by descending probability) that
    survives greedy NMS. Suppressed detections are dropped, not modified.
    """
    if not detections:
        return []
    boxes = np.array([d.as_xywh() for d in detections], dtype=np.float32)
    labels = np.array([d.label for d in detections], dtype=np.int64)
    return [detections[i] for i in nms_sorted_indices(boxes, labels, cfg)]
