from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectorConfig
from .errors import PreconditionFailure
from .letterbox import LetterboxTransform, compute_letterbox, letterbox, to_blob
from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    transform: LetterboxTransform


@dataclass(frozen=True)
class StageTimings:
    preprocess_ms: float
    inference_ms: float
    postprocess_ms: float


class YoloPipeline:
    """
    Preprocess (letterbox) -> inference -> postprocess.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray` and returns a
    list of `Detection` in original image coordinates.

    The backend session is owned by the pipeline and reused across calls. Calls
    are serialized by an internal lock, so at most one forward pass is in flight.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        config: DetectorConfig = DetectorConfig(),
        num_labels: Optional[int] = None,
    ):
        self._infer_fn = infer_fn
        self._lock = threading.Lock()
        self.backend = backend
        self.backend_name = backend_name
        self.config = config
        self.post = YoloPostprocessor(
            YoloPostConfig(
                conf_threshold=config.confidence_threshold,
                iou_threshold=config.nms_threshold,
                class_agnostic_nms=config.class_agnostic_nms,
                num_labels=num_labels,
            )
        )
        self.last_timings: Optional[StageTimings] = None

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise PreconditionFailure("Input image is empty or could not be decoded.")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise PreconditionFailure(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

        orig_h, orig_w = image_bgr.shape[:2]
        transform = compute_letterbox(
            orig_w,
            orig_h,
            target_size=self.config.target_input_size,
            stride=self.config.stride_multiple,
        )
        padded = letterbox(image_bgr, transform, pad_value=self.config.pad_value)
        blob = to_blob(padded, norm_divisor=self.config.norm_divisor)
        return PreprocessResult(blob=blob, orig_size=(orig_w, orig_h), transform=transform)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        t0 = time.perf_counter()
        prep = self.preprocess(image_bgr)
        with self._lock:
            t1 = time.perf_counter()
            preds = self._infer_fn(prep.blob)
            t2 = time.perf_counter()
        detections = self.post.process(preds, prep.transform, prep.orig_size)
        t3 = time.perf_counter()

        self.last_timings = StageTimings(
            preprocess_ms=(t1 - t0) * 1000.0,
            inference_ms=(t2 - t1) * 1000.0,
            postprocess_ms=(t3 - t2) * 1000.0,
        )
        logger.info(
            "Inference: %.2f ms | Postprocess: %.2f ms (%d objects)",
            self.last_timings.inference_ms,
            self.last_timings.postprocess_ms,
            len(detections),
        )
        return detections


def infer_backend_name(model_path: PathLike) -> str:
    suffix = Path(model_path).suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    # ncnn models are addressed by their .param/.bin pair or its shared base path.
    if suffix in {".param", ".bin", ""}:
        return "ncnn"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")


def load_pipeline(
    model_path: PathLike,
    *,
    config: DetectorConfig = DetectorConfig(),
    backend: Optional[str] = None,
    num_labels: Optional[int] = None,
    onnx_providers: Optional[Sequence[str]] = None,
) -> YoloPipeline:
    """
    Create a pipeline for a model on disk.

        pipe = load_pipeline("models/yolo11n")        # ncnn .param/.bin pair
        pipe = load_pipeline("models/yolo11n.onnx")   # onnxruntime

    Args:
        model_path: ncnn base path (or either file of the pair), or an .onnx file
        backend: "ncnn" / "onnxruntime", or None to infer from the extension
        num_labels: expected class count, validated against the output tensor
    """

    chosen = (backend or infer_backend_name(model_path)).lower()
    logger.info(
        "CONFIG backend=%s int8=%s conf=%.2f nms=%.2f",
        chosen,
        config.use_int8,
        config.confidence_threshold,
        config.nms_threshold,
    )

    if chosen == "ncnn":
        from .backends.ncnn_backend import NcnnBackend

        ncnn_backend = NcnnBackend(model_path, config)
        return YoloPipeline(
            ncnn_backend.infer,
            backend=ncnn_backend,
            backend_name="ncnn",
            config=config,
            num_labels=num_labels,
        )

    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend

        ort_backend = OnnxRuntimeBackend(model_path, config, providers=onnx_providers)
        return YoloPipeline(
            ort_backend.infer,
            backend=ort_backend,
            backend_name="onnxruntime",
            config=config,
            num_labels=num_labels,
        )

    raise ValueError(f"Unsupported backend: {backend!r}")
