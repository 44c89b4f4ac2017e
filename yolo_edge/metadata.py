from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence, Union

COCO_CLASS_NAMES: List[str] = [
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard", "cell phone",
    "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
]


def load_class_names(metadata_path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class names from a `names:` mapping, as written by Ultralytics exports:

        names:
          0: person
          1: bicycle
          ...

    Only this block is read, so no YAML parser is needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace():
                break
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            if not left.isdigit():
                continue
            names[int(left)] = right.strip().strip("'").strip('"')

    return names


def names_as_mapping(names: Union[Sequence[str], Dict[int, str]]) -> Dict[int, str]:
    if isinstance(names, dict):
        return dict(names)
    return dict(enumerate(names))


def label_text(names: Dict[int, str], label: int, probability: float) -> str:
    """Render "<name> <percent>%", falling back to the numeric label for unknown ids."""
    return f"{names.get(label, str(label))} {probability * 100:.1f}%"
