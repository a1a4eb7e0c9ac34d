"""Box geometry: overlap metric, validity checks and coordinate conversion."""

from __future__ import annotations

import math

from gt_audit.types import BoundingBox


CORNER_TOLERANCE = 0.01


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """Intersection-over-union of two center-form boxes, in [0, 1]."""
    ax1, ay1, ax2, ay2 = a.to_xyxy()
    bx1, by1, bx2, by2 = b.to_xyxy()

    ix1 = max(ax1, bx1)
    iy1 = max(ay1, by1)
    ix2 = min(ax2, bx2)
    iy2 = min(ay2, by2)

    inter = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    area_a = (ax2 - ax1) * (ay2 - ay1)
    area_b = (bx2 - bx1) * (by2 - by1)
    union = area_a + area_b - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def box_problem(bbox: BoundingBox) -> str | None:
    """Return why a normalized box is unusable, or None when it is valid."""
    if not all(math.isfinite(v) for v in (bbox.x, bbox.y, bbox.w, bbox.h)):
        return "Bounding box has non-finite coordinates"
    if bbox.w <= 0.0 or bbox.h <= 0.0:
        return "Bounding box has non-positive width or height"
    if bbox.w > 1.0 or bbox.h > 1.0:
        return "Bounding box is larger than the image"

    lower = -CORNER_TOLERANCE
    upper = 1.0 + CORNER_TOLERANCE
    if any(c < lower or c > upper for c in bbox.to_xyxy()):
        return "Bounding box coordinates out of valid range [0, 1]"
    return None


def is_valid_box(bbox: BoundingBox) -> bool:
    return box_problem(bbox) is None


def xyxy_to_normalized(
    box_xyxy: tuple[float, float, float, float],
    width: int | float,
    height: int | float,
) -> BoundingBox:
    """Convert a pixel corner box into a normalized center-form box."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {width}x{height}")
    x1, y1, x2, y2 = (float(v) for v in box_xyxy)
    w = (x2 - x1) / width
    h = (y2 - y1) / height
    return BoundingBox(
        x=(x1 + x2) / 2.0 / width,
        y=(y1 + y2) / 2.0 / height,
        w=w,
        h=h,
    )
