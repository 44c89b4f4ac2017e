"""
Descending-probability sort for candidate detections.

Small inputs use a plain in-place sort. Large inputs are partitioned in the
calling thread into disjoint index ranges, which are then sorted concurrently on
a thread pool and joined before returning.

Ties (equal probabilities) come out in no particular order. The parallel path
makes this visible: two runs over the same input may order tied detections
differently. Callers must not rely on tie order.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from .types import Detection

PARALLEL_THRESHOLD = 4096
_MIN_RANGE = 512


def _by_probability(det: Detection) -> float:
    return det.probability


def _partition(items: List[Detection], left: int, right: int) -> Tuple[int, int]:
    """
    Hoare partition of items[left:right + 1] around the middle element's probability,
    descending. Returns (j, i): items[left:j + 1] >= pivot >= items[i:right + 1].
    """
    i, j = left, right
    pivot = items[(left + right) // 2].probability
    while i <= j:
        while items[i].probability > pivot:
            i += 1
        while items[j].probability < pivot:
            j -= 1
        if i <= j:
            items[i], items[j] = items[j], items[i]
            i += 1
            j -= 1
    return j, i


def _split_ranges(items: List[Detection], max_ranges: int, min_range: int) -> List[Tuple[int, int]]:
    """Partition items into about `max_ranges` disjoint, ordered [lo, hi] ranges."""
    ranges = [(0, len(items) - 1)]
    while len(ranges) < max_ranges:
        # Split the widest range next.
        idx = max(range(len(ranges)), key=lambda k: ranges[k][1] - ranges[k][0])
        lo, hi = ranges[idx]
        if hi - lo + 1 < min_range:
            break
        j, i = _partition(items, lo, hi)
        parts = []
        if lo <= j:
            parts.append((lo, j))
        # Elements strictly between j and i equal the pivot and are already placed.
        if j + 1 < i:
            parts.append((j + 1, i - 1))
        if i <= hi:
            parts.append((i, hi))
        ranges[idx:idx + 1] = parts
    return ranges


def _sort_range(items: List[Detection], lo: int, hi: int) -> None:
    items[lo:hi + 1] = sorted(items[lo:hi + 1], key=_by_probability, reverse=True)


def sort_detections(
    detections: List[Detection],
    workers: Optional[int] = None,
    parallel_threshold: int = PARALLEL_THRESHOLD,
) -> List[Detection]:
    """
    Sort `detections` in place by non-increasing probability and return it.

    Args:
        workers: thread pool size for the parallel path (default: CPU count, max 8)
        parallel_threshold: inputs shorter than this are sorted sequentially
    """

    n = len(detections)
    if n < 2:
        return detections

    if workers is None:
        workers = min(8, os.cpu_count() or 1)

    if workers <= 1 or n < parallel_threshold:
        detections.sort(key=_by_probability, reverse=True)
        return detections

    ranges = _split_ranges(detections, max_ranges=workers * 2, min_range=_MIN_RANGE)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_sort_range, detections, lo, hi) for lo, hi in ranges]
        for fut in futures:
            fut.result()
    return detections
