from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from .tensor import OutputTensorView
from .types import Detection


def decode_detections(
    preds,
    conf_threshold: float,
    padded_size: Tuple[int, int],
    num_labels: Optional[int] = None,
) -> List[Detection]:
    """
    Decode a channel-major (4 + C, A) output into candidate detections.

    Each anchor's best class score is its probability; only anchors scoring strictly
    above `conf_threshold` are emitted. Scores are used as-is (no sigmoid/softmax).
    Boxes are converted cxcywh -> corners and clamped to the padded input.

    Args:
        preds: raw output array, or an already validated OutputTensorView
        padded_size: (width, height) of the padded network input
        num_labels: expected class count; when given, the channel count must match
    """

    view = preds if isinstance(preds, OutputTensorView) else OutputTensorView(preds, num_labels=num_labels)
    if view.num_anchors == 0:
        return []

    scores = view.scores
    labels = np.argmax(scores, axis=1)
    probs = scores[np.arange(scores.shape[0]), labels]

    # Non-finite box values would survive clamping as NaN.
    keep = (probs > np.float32(conf_threshold)) & np.isfinite(view.boxes).all(axis=1)
    if not np.any(keep):
        return []

    boxes = view.boxes[keep]
    labels = labels[keep]
    probs = probs[keep]

    padded_w, padded_h = padded_size
    half = np.float32(0.5)
    cx, cy, w, h = boxes.T
    x0 = np.clip(cx - half * w, 0.0, padded_w).astype(np.float32)
    y0 = np.clip(cy - half * h, 0.0, padded_h).astype(np.float32)
    x1 = np.clip(cx + half * w, 0.0, padded_w).astype(np.float32)
    y1 = np.clip(cy + half * h, 0.0, padded_h).astype(np.float32)

    return [
        Detection(
            x=float(a),
            y=float(b),
            width=float(c - a),
            height=float(d - b),
            label=int(label),
            probability=float(prob),
        )
        for a, b, c, d, label, prob in zip(x0, y0, x1, y1, labels, probs)
    ]
