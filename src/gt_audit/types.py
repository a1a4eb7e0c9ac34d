from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    x: float  # center x, normalized
    y: float  # center y, normalized
    w: float
    h: float

    def to_xyxy(self) -> tuple[float, float, float, float]:
        return (
            self.x - self.w / 2.0,
            self.y - self.h / 2.0,
            self.x + self.w / 2.0,
            self.y + self.h / 2.0,
        )

    @property
    def area(self) -> float:
        x1, y1, x2, y2 = self.to_xyxy()
        return (x2 - x1) * (y2 - y1)

    def iou(self, other: BoundingBox) -> float:
        from gt_audit.vision.geometry import iou

        return iou(self, other)


@dataclass(frozen=True)
class Annotation:
    class_id: int
    class_name: str
    bbox: BoundingBox
    line_num: int  # 1-based line in the label file


@dataclass(frozen=True)
class RawDetection:
    box_xyxy: tuple[float, float, float, float]  # model pixel space
    class_scores: tuple[float, ...]


@dataclass(frozen=True)
class Detection:
    class_name: str
    confidence: float  # 0.0 to 1.0
    bbox: BoundingBox
