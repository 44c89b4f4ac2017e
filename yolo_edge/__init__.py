"""
YOLO detection for edge devices: letterbox preprocessing, a pluggable inference
backend (ncnn or ONNX Runtime), and NumPy post-processing (decode, sort, NMS,
inverse letterbox).

Pre/post-processing only needs NumPy and OpenCV; inference runtimes are
imported lazily by their backends.
"""

from .types import Detection
from .errors import ModelNotFound, PreconditionFailure, ShapeMismatch, YoloEdgeError
from .config import DetectorConfig, load_detector_config
from .letterbox import LetterboxTransform, PreprocessRecipe, compute_letterbox, letterbox, scale_detections, to_blob
from .tensor import OutputTensorView
from .decode import decode_detections
from .sort import sort_detections
from .nms import NMSConfig, box_iou, nms_sorted, nms_sorted_indices
from .postprocess import YoloPostprocessor, YoloPostConfig
from .runtime import YoloPipeline, load_pipeline
from .metadata import COCO_CLASS_NAMES, load_class_names
from .visualize import draw_detections

__all__ = [
    "Detection",
    "YoloEdgeError",
    "PreconditionFailure",
    "ModelNotFound",
    "ShapeMismatch",
    "DetectorConfig",
    "load_detector_config",
    "LetterboxTransform",
    "PreprocessRecipe",
    "compute_letterbox",
    "letterbox",
    "scale_detections",
    "to_blob",
    "OutputTensorView",
    "decode_detections",
    "sort_detections",
    "NMSConfig",
    "box_iou",
    "nms_sorted",
    "nms_sorted_indices",
    "YoloPostprocessor",
    "YoloPostConfig",
    "YoloPipeline",
    "load_pipeline",
    "COCO_CLASS_NAMES",
    "load_class_names",
    "draw_detections",
]
