"""Match detections against ground truth and classify discrepancies."""

from __future__ import annotations

from collections.abc import Sequence

from gt_audit.audit.schemas import Issue
from gt_audit.types import Annotation, Detection
from gt_audit.vision.equivalence import ClassEquivalence
from gt_audit.vision.geometry import box_problem, iou


MATCH_IOU_THRESHOLD = 0.3
MIN_UNLABELED_IMAGE_SIDE = 100


def check_geometry(image: str, annotations: Sequence[Annotation]) -> tuple[list[Issue], list[int]]:
    """Return localization issues for invalid boxes and indices of valid ones."""
    issues: list[Issue] = []
    valid: list[int] = []

    for idx, ann in enumerate(annotations):
        problem = box_problem(ann.bbox)
        if problem is None:
            valid.append(idx)
            continue
        b = ann.bbox
        issues.append(
            Issue.of(
                "localization",
                image=image,
                description=(
                    f"Invalid bbox for '{ann.class_name}': "
                    f"x={b.x:.3f}, y={b.y:.3f}, w={b.w:.3f}, h={b.h:.3f}"
                ),
                gt_class=ann.class_name,
                explanation=problem,
                line_num=ann.line_num,
            )
        )
    return issues, valid


def _best_match(det: Detection, annotations: Sequence[Annotation], candidates: list[int]) -> tuple[int | None, float]:
    best_idx: int | None = None
    best_iou = 0.0
    for idx in candidates:
        score = iou(det.bbox, annotations[idx].bbox)
        # strict comparison keeps the first annotation on ties
        if best_idx is None or score > best_iou:
            best_idx = idx
            best_iou = score
    return best_idx, best_iou


def classify_image(
    image: str,
    annotations: Sequence[Annotation],
    detections: Sequence[Detection],
    equivalence: ClassEquivalence,
) -> list[Issue]:
    """Compare one image's labels with its post-NMS detections.

    Each detection is paired with the valid annotation it overlaps most.
    Pairs at or above ``MATCH_IOU_THRESHOLD`` claim the annotation and have
    their classes compared; an annotation already claimed by an earlier
    detection is not compared again. Detections below the threshold are
    missing labels, and annotations nobody claimed are spurious.
    """
    issues, valid = check_geometry(image, annotations)
    matched = [False] * len(annotations)

    for det in detections:
        best_idx, best_iou = _best_match(det, annotations, valid)

        if best_idx is None or best_iou < MATCH_IOU_THRESHOLD:
            issues.append(
                Issue.of(
                    "missing_label",
                    image=image,
                    description=(
                        f"Detected '{det.class_name}' ({det.confidence * 100:.1f}%) "
                        "with no matching ground-truth box"
                    ),
                    detected_class=det.class_name,
                    confidence=det.confidence,
                    iou=best_iou,
                )
            )
            continue

        if matched[best_idx]:
            continue
        matched[best_idx] = True

        ann = annotations[best_idx]
        if equivalence.equivalent(ann.class_name, det.class_name):
            continue
        issues.append(
            Issue.of(
                "class_mismatch",
                image=image,
                description=(
                    f"Labeled '{ann.class_name}' but detected '{det.class_name}' "
                    f"({det.confidence * 100:.1f}%, IoU {best_iou:.2f})"
                ),
                gt_class=ann.class_name,
                detected_class=det.class_name,
                confidence=det.confidence,
                iou=best_iou,
                explanation=f"'{ann.class_name}' and '{det.class_name}' are not equivalent classes",
                line_num=ann.line_num,
            )
        )

    for idx in valid:
        if matched[idx]:
            continue
        ann = annotations[idx]
        issues.append(
            Issue.of(
                "spurious_label",
                image=image,
                description=f"Labeled '{ann.class_name}' but nothing was detected there",
                gt_class=ann.class_name,
                line_num=ann.line_num,
            )
        )
    return issues


def heuristic_issues(
    image: str,
    annotations: Sequence[Annotation],
    width: int,
    height: int,
) -> list[Issue]:
    """Model-free checks: box geometry and possibly unlabeled images."""
    issues, _ = check_geometry(image, annotations)
    if not annotations and width > MIN_UNLABELED_IMAGE_SIDE and height > MIN_UNLABELED_IMAGE_SIDE:
        issues.append(
            Issue.of(
                "spurious_label",
                image=image,
                description="Image has no annotations - verify if this is intentional",
                explanation="Possibly missing annotations",
            )
        )
    return issues
