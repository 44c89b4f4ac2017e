from dataclasses import dataclass
from typing import Tuple


@dataclass
class Detection:
    """
    One labeled box. Coordinates are (x, y, width, height) in whichever pixel
    space the current pipeline stage works in (padded input, then original image).
    """

    x: float
    y: float
    width: float
    height: float
    label: int
    probability: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def set_xyxy(self, x0: float, y0: float, x1: float, y1: float) -> None:
        self.x = x0
        self.y = y0
        self.width = x1 - x0
        self.height = y1 - y0
