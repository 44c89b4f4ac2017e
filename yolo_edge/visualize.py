from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from .metadata import COCO_CLASS_NAMES, label_text, names_as_mapping
from .types import Detection

BOX_COLOR: Tuple[int, int, int] = (0, 255, 0)
TEXT_COLOR: Tuple[int, int, int] = (0, 0, 0)


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    class_names: Optional[Dict[int, str]] = None,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw each box and its "<name> <prob>%" label on a copy of a BGR image.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: iterable of Detection in original image coordinates.
        class_names: optional mapping {label: class_name}; defaults to COCO names.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    names = class_names if class_names is not None else names_as_mapping(COCO_CLASS_NAMES)
    out = image_bgr.copy()

    for det in detections:
        x0, y0, x1, y1 = (int(round(v)) for v in det.as_xyxy())
        cv2.rectangle(out, (x0, y0), (x1, y1), BOX_COLOR, thickness=box_thickness)
        cv2.putText(
            out,
            label_text(names, det.label, det.probability),
            (x0, y0 - 5),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            TEXT_COLOR,
            thickness=font_thickness,
        )

    return out
