from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .decode import decode_detections
from .letterbox import LetterboxTransform, scale_detections
from .nms import NMSConfig, nms_sorted
from .sort import PARALLEL_THRESHOLD, sort_detections
from .tensor import OutputTensorView
from .types import Detection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Post-processing settings for YOLO (4 + C, anchors) outputs.
    """

    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_agnostic_nms: bool = False
    # When set, the output channel count must equal 4 + num_labels.
    num_labels: Optional[int] = None
    sort_workers: Optional[int] = None
    sort_parallel_threshold: int = PARALLEL_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.num_labels is not None and self.num_labels < 1:
            raise ValueError("num_labels must be >= 1")


class YoloPostprocessor:
    """
    decode -> sort -> NMS -> map back to the original image.

    Layout handled (per image): (4 + C, A) channel-major, e.g. 84 x 4725 for an
    80-class model at 480x480, with an optional leading batch axis of 1.
    """

    def __init__(self, cfg: YoloPostConfig = YoloPostConfig()):
        self.cfg = cfg
        self.nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold, class_agnostic=cfg.class_agnostic_nms)

    def process(
        self,
        preds: np.ndarray,
        transform: LetterboxTransform,
        orig_size: Tuple[int, int],
    ) -> List[Detection]:
        """
        Convert a raw model output into filtered detections in original image coordinates.

        Args:
            preds: model output for a single image
            transform: letterbox applied to produce the model input
            orig_size: (width, height) of the original image
        """

        view = OutputTensorView(preds, num_labels=self.cfg.num_labels)
        logger.debug("output shape: channels=%d anchors=%d", view.num_channels, view.num_anchors)

        proposals = self.decode(view, transform.padded_size)
        if not proposals:
            return []

        sort_detections(
            proposals,
            workers=self.cfg.sort_workers,
            parallel_threshold=self.cfg.sort_parallel_threshold,
        )
        picked = nms_sorted(proposals, self.nms_cfg)
        logger.debug("candidates=%d kept=%d", len(proposals), len(picked))

        return scale_detections(picked, transform, orig_size)

    def decode(self, preds, padded_size: Tuple[int, int]) -> List[Detection]:
        return decode_detections(
            preds,
            conf_threshold=self.cfg.conf_threshold,
            padded_size=padded_size,
            num_labels=self.cfg.num_labels,
        )
