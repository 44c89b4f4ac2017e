from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..config import DetectorConfig
from ..errors import ModelNotFound


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)

_GPU_PROVIDERS = ("CUDAExecutionProvider", "CPUExecutionProvider")
_CPU_PROVIDERS = ("CPUExecutionProvider",)


class OnnxRuntimeBackend:
    """
    ONNX Runtime forward-pass runner.

    The session is created once here and reused for every call. Input/output names
    default to the model's first input/output; `DetectorConfig.input_name` and
    `output_name` are ncnn blob names and are not applied here.

    `use_int8` has no runtime switch in ORT: pass an already quantized model.
    """

    def __init__(
        self,
        model_path: PathLike,
        cfg: DetectorConfig = DetectorConfig(),
        providers: Optional[Sequence[str]] = None,
    ):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelNotFound(f"Model file not found: {self.model_path}")

        if providers is None:
            wanted = _GPU_PROVIDERS if cfg.use_gpu_backend else _CPU_PROVIDERS
            available = set(ort.get_available_providers())
            providers = [p for p in wanted if p in available] or list(_CPU_PROVIDERS)

        sess_opts = ort.SessionOptions()
        sess_opts.intra_op_num_threads = int(cfg.num_threads)
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=list(providers))

        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name
        if cfg.use_int8:
            logger.warning("use_int8 has no effect with onnxruntime; load a quantized .onnx instead")
        logger.info("onnxruntime session ready: %s providers=%s", self.model_path, self.providers_in_use)

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        inputs: Dict[str, Any] = {self.input_name: np.asarray(blob, dtype=np.float32)}
        outputs = self.session.run([self.output_name], inputs)
        return outputs[0]
