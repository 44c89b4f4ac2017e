"""
Inference backends for yolo_edge.

Each backend imports its runtime lazily so pre/post-processing stays usable
without any inference runtime installed.
"""

from __future__ import annotations

__all__ = []
