from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .errors import PreconditionFailure
from .types import Detection


@dataclass(frozen=True)
class LetterboxTransform:
    """
    Uniform scale + centered padding that fits an image into the square detector input.

    `pad_x`/`pad_y` are the left/top offsets; the right/bottom side receives the
    remainder so odd padding totals still fill the padded input exactly.
    """

    scale: float
    pad_x: float
    pad_y: float
    resized_size: Tuple[int, int]  # (w, h)
    padded_size: Tuple[int, int]  # (w, h)

    @property
    def border(self) -> Tuple[int, int, int, int]:
        """(top, bottom, left, right) border widths for cv2.copyMakeBorder."""
        pad_w = self.padded_size[0] - self.resized_size[0]
        pad_h = self.padded_size[1] - self.resized_size[1]
        return pad_h // 2, pad_h - pad_h // 2, pad_w // 2, pad_w - pad_w // 2

    def to_padded(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.pad_x, y * self.scale + self.pad_y

    def to_original(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.pad_x) / self.scale, (y - self.pad_y) / self.scale


def compute_letterbox(width: int, height: int, target_size: int = 480, stride: int = 32) -> LetterboxTransform:
    if width <= 0 or height <= 0:
        raise PreconditionFailure(f"Image dimensions must be positive, got {width}x{height}")
    if target_size <= 0 or stride <= 0:
        raise PreconditionFailure(f"target_size and stride must be positive, got {target_size}, {stride}")

    scale = min(target_size / width, target_size / height)
    w = int(round(width * scale))
    h = int(round(height * scale))
    # The longer side lands on target_size exactly, whatever rounding did.
    if w >= h:
        w = target_size
    else:
        h = target_size

    padded = int(math.ceil(target_size / stride)) * stride
    pad_w = padded - w
    pad_h = padded - h

    return LetterboxTransform(
        scale=scale,
        pad_x=float(pad_w // 2),
        pad_y=float(pad_h // 2),
        resized_size=(w, h),
        padded_size=(padded, padded),
    )


def letterbox(image: np.ndarray, transform: LetterboxTransform, pad_value: float = 114.0) -> np.ndarray:
    """
    Resize and pad a BGR image according to `transform`.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    resized_w, resized_h = transform.resized_size
    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom, left, right = transform.border
    value = (pad_value,) * 3
    return cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=value)


def to_blob(padded_bgr: np.ndarray, norm_divisor: float = 255.0) -> np.ndarray:
    # BGR -> RGB, scale, HWC -> CHW, add batch
    blob = padded_bgr[:, :, ::-1].astype(np.float32) / float(norm_divisor)
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])


@dataclass(frozen=True)
class PreprocessRecipe:
    """
    The pixel recipe `to_blob` applies. An INT8 calibration table built with a
    different recipe silently degrades accuracy, so this is what calibration
    tooling must be fed.
    """

    target_size: int
    stride: int = 32
    norm_divisor: float = 255.0
    mean: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    # Target format; calibration tools read BGR and convert to it.
    pixel: str = "RGB"

    @property
    def input_size(self) -> int:
        """Side of the square tensor the network actually sees (target rounded up to the stride)."""
        return int(math.ceil(self.target_size / self.stride)) * self.stride

    @property
    def norm(self) -> Tuple[float, float, float]:
        n = 1.0 / self.norm_divisor
        return n, n, n

    def as_ncnn2table_args(self) -> List[str]:
        def fmt(values: Sequence[float]) -> str:
            return "[" + ",".join(f"{v:.6f}".rstrip("0").rstrip(".") or "0" for v in values) + "]"

        return [
            f"mean={fmt(self.mean)}",
            f"norm={fmt(self.norm)}",
            f"shape=[{self.input_size},{self.input_size},3]",
            f"pixel={self.pixel}",
        ]


def _clamp(v: float, hi: float) -> float:
    # min() first: a NaN coordinate lands on the upper bound.
    return max(0.0, min(hi, v))


def scale_detections(
    detections: List[Detection],
    transform: LetterboxTransform,
    orig_size: Tuple[int, int],
) -> List[Detection]:
    """
    Map boxes from padded-input space back to the original image, in place.

    Corners are clamped to [0, W-1] x [0, H-1].
    """

    orig_w, orig_h = orig_size
    max_x = float(orig_w - 1)
    max_y = float(orig_h - 1)
    for det in detections:
        x0, y0, x1, y1 = det.as_xyxy()
        x0, y0 = transform.to_original(x0, y0)
        x1, y1 = transform.to_original(x1, y1)
        det.set_xyxy(
            _clamp(x0, max_x),
            _clamp(y0, max_y),
            _clamp(x1, max_x),
            _clamp(y1, max_y),
        )
    return detections
