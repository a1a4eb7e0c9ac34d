"""Raw detection decoding and per-class non-maximum suppression."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from gt_audit.types import Detection, RawDetection
from gt_audit.vision.geometry import iou, xyxy_to_normalized


def decode_raw_detections(
    raw: Sequence[RawDetection],
    *,
    image_width: int,
    image_height: int,
    class_names: Mapping[int, str],
    confidence_threshold: float,
) -> list[Detection]:
    """Turn backend output into normalized detections above the threshold.

    The class is the first index holding the maximum score. Input order is
    preserved.
    """
    out: list[Detection] = []
    for item in raw:
        if not item.class_scores:
            continue
        class_idx = max(range(len(item.class_scores)), key=lambda i: item.class_scores[i])
        confidence = float(item.class_scores[class_idx])
        if confidence < confidence_threshold:
            continue
        out.append(
            Detection(
                class_name=str(class_names.get(class_idx, f"class_{class_idx}")),
                confidence=confidence,
                bbox=xyxy_to_normalized(item.box_xyxy, image_width, image_height),
            )
        )
    return out


def non_max_suppression(detections: Sequence[Detection], iou_threshold: float) -> list[Detection]:
    """Collapse overlapping same-class detections, keeping the most confident.

    Ties on confidence keep their input order. Detections with different
    class names never suppress each other.
    """
    ranked = sorted(detections, key=lambda d: d.confidence, reverse=True)
    suppressed = [False] * len(ranked)
    keep: list[Detection] = []

    for i, det in enumerate(ranked):
        if suppressed[i]:
            continue
        keep.append(det)
        for j in range(i + 1, len(ranked)):
            if suppressed[j]:
                continue
            other = ranked[j]
            if other.class_name != det.class_name:
                continue
            if iou(det.bbox, other.bbox) > iou_threshold:
                suppressed[j] = True
    return keep
