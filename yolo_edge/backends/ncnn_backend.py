from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from ..config import DetectorConfig
from ..errors import ModelNotFound, PreconditionFailure


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def model_files(model_path: PathLike) -> Tuple[Path, Path]:
    """
    Resolve an ncnn model to its (.param, .bin) pair.

    Accepts the shared base path ("models/yolo11n") or either file of the pair.
    """
    p = Path(model_path)
    if p.suffix in {".param", ".bin"}:
        p = p.with_suffix("")
    return p.with_name(p.name + ".param"), p.with_name(p.name + ".bin")


class NcnnBackend:
    """
    ncnn forward-pass runner.

    The network and its options are set up once here and never changed afterwards.
    An instance serves one inference at a time; callers running several threads
    must serialize calls (YoloPipeline does).

    Expects an NCHW float32 blob shaped (1, 3, H, W) and returns the output blob as
    a (channels, anchors) array.
    """

    def __init__(self, model_path: PathLike, cfg: DetectorConfig = DetectorConfig()):
        try:
            import ncnn  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("ncnn is required for the ncnn backend. Install it with `pip install ncnn`.") from e

        self._ncnn = ncnn
        self.cfg = cfg
        self.param_path, self.bin_path = model_files(model_path)
        for path in (self.param_path, self.bin_path):
            if not path.exists():
                raise ModelNotFound(f"Model file not found: {path}")

        net = ncnn.Net()
        net.opt.use_vulkan_compute = bool(cfg.use_gpu_backend)
        net.opt.use_bf16_storage = True
        net.opt.use_int8_inference = bool(cfg.use_int8)
        net.opt.use_fp16_arithmetic = cfg.use_fp16_arithmetic
        net.opt.use_packing_layout = True
        net.opt.num_threads = int(cfg.num_threads)

        if net.load_param(str(self.param_path)) != 0:
            raise PreconditionFailure(f"Failed to load ncnn param file: {self.param_path}")
        if net.load_model(str(self.bin_path)) != 0:
            raise PreconditionFailure(f"Failed to load ncnn model file: {self.bin_path}")
        self.net = net

        logger.info(
            "ncnn model loaded: %s (vulkan=%s int8=%s fp16=%s threads=%d)",
            self.param_path.with_suffix(""),
            cfg.use_gpu_backend,
            cfg.use_int8,
            cfg.use_fp16_arithmetic,
            cfg.num_threads,
        )

    def infer(self, blob: np.ndarray) -> np.ndarray:
        x = np.asarray(blob, dtype=np.float32)
        if x.ndim == 4:
            if x.shape[0] != 1:
                raise PreconditionFailure(f"Batch > 1 is not supported (got shape {x.shape}).")
            x = x[0]
        x = np.ascontiguousarray(x)

        with self.net.create_extractor() as ex:
            ex.input(self.cfg.input_name, self._ncnn.Mat(x))
            ret, out = ex.extract(self.cfg.output_name)
            if ret != 0:
                raise RuntimeError(f"ncnn extract({self.cfg.output_name!r}) failed with code {ret}")
            y = np.array(out)

        logger.info("out shape: w=%d, h=%d, c=%d", out.w, out.h, out.c)
        return y
