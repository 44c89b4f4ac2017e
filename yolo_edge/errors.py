"""
Exceptions raised by yolo_edge.

Degenerate geometry (zero-area boxes) is not an error: IoU evaluates to 0.
"""

from __future__ import annotations


class YoloEdgeError(Exception):
    """Base class for all yolo_edge errors."""


class PreconditionFailure(YoloEdgeError, ValueError):
    """Input image, config or model files are unusable; the request is aborted."""


class ModelNotFound(PreconditionFailure, FileNotFoundError):
    pass


class ShapeMismatch(YoloEdgeError, ValueError):
    """Detector output does not match the expected (4 + num_labels, anchors) layout."""
