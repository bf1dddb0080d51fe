from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Detection:
    """
    One decoded detection in original image pixel coordinates.

    Corners are integers (x2/y2 exclusive, like an OpenCV Rect) and the box
    always has a positive area. `class_id` is None when the class is unknown.
    """

    x1: int
    y1: int
    x2: int
    y2: int
    score: float
    class_id: Optional[int] = None

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.x1, self.y1, self.x2, self.y2

    def as_xywh(self) -> Tuple[int, int, int, int]:
        return self.x1, self.y1, self.width, self.height
