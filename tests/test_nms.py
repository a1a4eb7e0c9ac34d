from __future__ import annotations

import pytest

from gt_audit.types import BoundingBox, Detection, RawDetection
from gt_audit.vision.nms import decode_raw_detections, non_max_suppression


def det(name: str, conf: float, box: tuple[float, float, float, float]) -> Detection:
    return Detection(class_name=name, confidence=conf, bbox=BoundingBox(*box))


def test_overlapping_same_class_keeps_most_confident() -> None:
    low = det("dog", 0.6, (0.5, 0.5, 0.2, 0.2))
    high = det("dog", 0.9, (0.51, 0.5, 0.2, 0.2))

    kept = non_max_suppression([low, high], iou_threshold=0.5)
    assert kept == [high]


def test_different_classes_never_suppress_each_other() -> None:
    dog = det("dog", 0.9, (0.5, 0.5, 0.2, 0.2))
    cat = det("cat", 0.8, (0.5, 0.5, 0.2, 0.2))

    kept = non_max_suppression([dog, cat], iou_threshold=0.1)
    assert kept == [dog, cat]


def test_class_comparison_is_exact_string_match() -> None:
    a = det("Dress", 0.9, (0.5, 0.5, 0.2, 0.2))
    b = det("dress", 0.8, (0.5, 0.5, 0.2, 0.2))
    assert non_max_suppression([a, b], iou_threshold=0.5) == [a, b]


def test_low_overlap_is_kept() -> None:
    a = det("dog", 0.9, (0.2, 0.2, 0.2, 0.2))
    b = det("dog", 0.8, (0.7, 0.7, 0.2, 0.2))
    assert non_max_suppression([b, a], iou_threshold=0.5) == [a, b]


def test_overlap_equal_to_threshold_is_kept() -> None:
    a = det("dog", 0.9, (0.25, 0.5, 0.5, 0.5))
    b = det("dog", 0.8, (0.46875, 0.5, 0.3125, 0.5))  # iou == 0.3
    assert non_max_suppression([a, b], iou_threshold=0.3) == [a, b]
    assert non_max_suppression([a, b], iou_threshold=0.29) == [a]


def test_confidence_ties_keep_input_order() -> None:
    first = det("dog", 0.8, (0.5, 0.5, 0.2, 0.2))
    second = det("dog", 0.8, (0.5, 0.5, 0.2, 0.2))
    other = det("cat", 0.8, (0.1, 0.1, 0.1, 0.1))

    kept = non_max_suppression([first, other, second], iou_threshold=0.5)
    assert kept == [first, other]
    assert kept[0] is first


def test_suppressed_detection_does_not_suppress_others() -> None:
    a = det("dog", 0.9, (0.40, 0.5, 0.2, 0.2))
    b = det("dog", 0.8, (0.45, 0.5, 0.2, 0.2))  # overlaps a and c
    c = det("dog", 0.7, (0.50, 0.5, 0.2, 0.2))  # overlaps b only

    kept = non_max_suppression([c, b, a], iou_threshold=0.5)
    assert kept == [a, c]


def test_nms_is_idempotent() -> None:
    detections = [
        det("dog", 0.9, (0.5, 0.5, 0.2, 0.2)),
        det("dog", 0.85, (0.52, 0.5, 0.2, 0.2)),
        det("dog", 0.4, (0.1, 0.1, 0.1, 0.1)),
        det("cat", 0.7, (0.5, 0.5, 0.2, 0.2)),
        det("cat", 0.7, (0.9, 0.9, 0.1, 0.1)),
    ]
    once = non_max_suppression(detections, iou_threshold=0.5)
    twice = non_max_suppression(once, iou_threshold=0.5)
    assert twice == once


def test_nms_is_deterministic() -> None:
    detections = [det("dog", 0.5 + i * 0.01, (0.1 * i, 0.5, 0.3, 0.3)) for i in range(1, 8)]
    results = [non_max_suppression(detections, iou_threshold=0.4) for _ in range(5)]
    assert all(r == results[0] for r in results)


def test_empty_input() -> None:
    assert non_max_suppression([], iou_threshold=0.5) == []


def test_decode_picks_argmax_and_normalizes() -> None:
    raw = [
        RawDetection(box_xyxy=(100.0, 50.0, 300.0, 150.0), class_scores=(0.1, 0.7, 0.2)),
        RawDetection(box_xyxy=(0.0, 0.0, 40.0, 20.0), class_scores=(0.05, 0.1, 0.1)),
    ]
    out = decode_raw_detections(
        raw,
        image_width=400,
        image_height=200,
        class_names={0: "person", 1: "dog"},
        confidence_threshold=0.25,
    )

    assert len(out) == 1
    assert out[0].class_name == "dog"
    assert out[0].confidence == pytest.approx(0.7)
    assert out[0].bbox.x == pytest.approx(0.5)
    assert out[0].bbox.w == pytest.approx(0.5)


def test_decode_unknown_class_and_first_max_wins() -> None:
    raw = [RawDetection(box_xyxy=(0.0, 0.0, 10.0, 10.0), class_scores=(0.1, 0.6, 0.6))]
    out = decode_raw_detections(
        raw,
        image_width=10,
        image_height=10,
        class_names={},
        confidence_threshold=0.5,
    )
    assert [d.class_name for d in out] == ["class_1"]


def test_decode_skips_empty_score_vectors() -> None:
    raw = [RawDetection(box_xyxy=(0.0, 0.0, 10.0, 10.0), class_scores=())]
    out = decode_raw_detections(
        raw,
        image_width=10,
        image_height=10,
        class_names={0: "dog"},
        confidence_threshold=0.0,
    )
    assert out == []
