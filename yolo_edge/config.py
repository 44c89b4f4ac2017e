from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .letterbox import PreprocessRecipe


@dataclass(frozen=True)
class DetectorConfig:
    """
    Detector settings, fixed at construction. Derive variants with
    `dataclasses.replace`, never by mutation.
    """

    use_gpu_backend: bool = True
    use_int8: bool = False
    confidence_threshold: float = 0.25
    nms_threshold: float = 0.45
    class_agnostic_nms: bool = False
    target_input_size: int = 480
    stride_multiple: int = 32
    num_threads: int = 4
    pad_value: float = 114.0
    norm_divisor: float = 255.0
    input_name: str = "in0"
    output_name: str = "out0"

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ValueError("nms_threshold must be in [0, 1]")
        if self.target_input_size <= 0:
            raise ValueError("target_input_size must be > 0")
        if self.stride_multiple <= 0:
            raise ValueError("stride_multiple must be > 0")
        if self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")
        if self.norm_divisor <= 0:
            raise ValueError("norm_divisor must be > 0")

    @property
    def use_fp16_arithmetic(self) -> bool:
        # INT8 inference and FP16 arithmetic are mutually exclusive.
        return not self.use_int8

    def preprocess_recipe(self) -> PreprocessRecipe:
        return PreprocessRecipe(
            target_size=self.target_input_size,
            stride=self.stride_multiple,
            norm_divisor=self.norm_divisor,
        )


_BOOL_KEYS = {"use_gpu_backend", "use_int8", "class_agnostic_nms"}
_FLOAT_KEYS = {"confidence_threshold", "nms_threshold", "pad_value", "norm_divisor"}
_INT_KEYS = {"target_input_size", "stride_multiple", "num_threads"}
_STR_KEYS = {"input_name", "output_name"}


def _coerce(key: str, value: Any) -> Any:
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
        return value
    if key in _FLOAT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer")
        return int(value)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string")
    return value


def detector_config_from_dict(payload: Dict[str, Any]) -> DetectorConfig:
    allowed = _BOOL_KEYS | _FLOAT_KEYS | _INT_KEYS | _STR_KEYS
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")
    return DetectorConfig(**{k: _coerce(k, v) for k, v in payload.items()})


def load_detector_config(path: Path) -> DetectorConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")
    return detector_config_from_dict(payload)
