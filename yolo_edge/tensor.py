from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .errors import ShapeMismatch


class OutputTensorView:
    """
    Validated (channels, anchors) view over a detector output buffer.

    Accepts either a 2-D array, a 3-D array with a leading batch axis of 1, or a
    flat buffer together with an explicit `shape`. The buffer length is checked
    against `channels * anchors` before any indexed access.
    """

    def __init__(
        self,
        data: np.ndarray,
        shape: Optional[Tuple[int, int]] = None,
        num_labels: Optional[int] = None,
    ):
        arr = np.asarray(data, dtype=np.float32)

        if shape is not None:
            channels, anchors = (int(s) for s in shape)
            if channels < 0 or anchors < 0:
                raise ShapeMismatch(f"Negative tensor shape {shape}")
            if arr.size != channels * anchors:
                raise ShapeMismatch(
                    f"Buffer holds {arr.size} values, expected channels*anchors = {channels}*{anchors} = {channels * anchors}"
                )
            arr = arr.reshape(channels, anchors)
        else:
            if arr.ndim == 3:
                if arr.shape[0] != 1:
                    raise ShapeMismatch(f"Batch > 1 is not supported (got shape {arr.shape}). Pass one image at a time.")
                arr = arr[0]
            if arr.ndim != 2:
                raise ShapeMismatch(f"Expected a (channels, anchors) output, got shape {arr.shape}")

        channels = arr.shape[0]
        if channels < 5:
            raise ShapeMismatch(f"Output has {channels} channels; need 4 box values plus at least one class score")
        if num_labels is not None and channels != 4 + num_labels:
            raise ShapeMismatch(f"Output has {channels} channels, expected 4 + {num_labels} labels = {4 + num_labels}")

        self._data = arr

    @property
    def num_channels(self) -> int:
        return int(self._data.shape[0])

    @property
    def num_anchors(self) -> int:
        return int(self._data.shape[1])

    @property
    def num_labels(self) -> int:
        return self.num_channels - 4

    @property
    def boxes(self) -> np.ndarray:
        """(A, 4) rows of cx, cy, w, h."""
        return self._data[0:4, :].T

    @property
    def scores(self) -> np.ndarray:
        """(A, num_labels) per-class scores."""
        return self._data[4:, :].T

    def row(self, anchor: int) -> np.ndarray:
        if not 0 <= anchor < self.num_anchors:
            raise IndexError(f"anchor {anchor} out of range (num_anchors={self.num_anchors})")
        return self._data[:, anchor]
