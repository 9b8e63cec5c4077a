from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class Plane:
    """
    One pixel plane of a camera frame.

    `pixel_stride` is the byte distance between two horizontally adjacent
    samples (1 for planar chroma, 2 for interleaved NV12/NV21 chroma).
    """

    data: bytes
    row_stride: int
    pixel_stride: int = 1


@dataclass(frozen=True)
class RawFrame:
    """
    4:2:0 camera frame as delivered by the capture callback.

    planes[0] is luma, planes[1] is U (Cb), planes[2] is V (Cr).
    """

    width: int
    height: int
    planes: Sequence[Plane]


@dataclass(frozen=True)
class Detection:
    """
    One labeled box in normalized frame coordinates (left/top/width/height in [0, 1]).
    """

    left: float
    top: float
    width: float
    height: float
    confidence: float
    class_index: int
    label: str = ""
    # Decode order; used to break confidence ties during suppression.
    anchor: int = 0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_ltwh(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom

    def to_pixels(self, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
        """Scale to pixel xyxy for an image of the given size."""
        return (
            int(round(self.left * image_width)),
            int(round(self.top * image_height)),
            int(round(self.right * image_width)),
            int(round(self.bottom * image_height)),
        )


# Published result of one pipeline run. Immutable once built.
DetectionSet = Tuple[Detection, ...]
