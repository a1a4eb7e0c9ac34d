"""Per-image auditors: model-free heuristics and detector-backed matching."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

import cv2
import numpy as np

from gt_audit.audit.matcher import check_geometry, classify_image, heuristic_issues
from gt_audit.audit.schemas import ImageResult, Issue
from gt_audit.config import AppSettings
from gt_audit.errors import ConfigurationError, ImageLoadError, InferenceError
from gt_audit.types import Annotation, Detection
from gt_audit.vision.detector import InferenceBackend, UltralyticsBackend
from gt_audit.vision.equivalence import ClassEquivalence
from gt_audit.vision.nms import decode_raw_detections, non_max_suppression


logger = logging.getLogger(__name__)


class Auditor(Protocol):
    name: str

    def audit_image(self, image_path: Path, annotations: Sequence[Annotation]) -> ImageResult: ...

    def detect(self, image: np.ndarray) -> list[Detection]: ...


def load_image(path: Path) -> np.ndarray:
    """Read an image as BGR, raising ImageLoadError when it cannot be decoded."""
    if not path.exists():
        raise ImageLoadError(f"No such file: {path}")
    try:
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise ImageLoadError(str(exc)) from exc
    if image is None or image.size == 0:
        raise ImageLoadError(f"Could not decode image: {path.name}")
    return image


def load_failure_result(
    filename: str,
    gt_count: int,
    exc: Exception,
    reason: str = "Failed to load image",
) -> ImageResult:
    return ImageResult(
        filename=filename,
        gt_count=gt_count,
        detection_count=0,
        issues=[
            Issue.of(
                "image_load_error",
                image=filename,
                description=f"{reason}: {exc}",
            )
        ],
    )


class HeuristicAuditor:
    """Geometry-only audit used when no detection model is configured."""

    name = "heuristic"

    def audit_image(self, image_path: Path, annotations: Sequence[Annotation]) -> ImageResult:
        filename = image_path.name
        try:
            image = load_image(image_path)
        except ImageLoadError as exc:
            return load_failure_result(filename, len(annotations), exc)

        height, width = image.shape[:2]
        return ImageResult(
            filename=filename,
            gt_count=len(annotations),
            detection_count=0,
            issues=heuristic_issues(filename, annotations, width, height),
        )

    def detect(self, image: np.ndarray) -> list[Detection]:
        return []


class ModelAuditor:
    """Match ground truth against detections from an inference backend.

    The backend handle is shared by every worker thread, so inference calls
    are serialized behind a lock. Decoding, NMS and matching run unlocked.
    """

    name = "yolo"

    def __init__(
        self,
        backend: InferenceBackend,
        *,
        confidence_threshold: float = 0.25,
        iou_threshold: float = 0.5,
        equivalence: ClassEquivalence | None = None,
    ):
        self.backend = backend
        self.confidence_threshold = confidence_threshold
        self.iou_threshold = iou_threshold
        self.equivalence = equivalence or ClassEquivalence()
        self._lock = threading.Lock()

    def detect(self, image: np.ndarray) -> list[Detection]:
        height, width = image.shape[:2]
        with self._lock:
            try:
                raw = self.backend.infer(image)
            except Exception as exc:  # noqa: BLE001
                raise InferenceError(f"{type(exc).__name__}: {exc}") from exc

        detections = decode_raw_detections(
            raw,
            image_width=width,
            image_height=height,
            class_names=self.backend.class_names,
            confidence_threshold=self.confidence_threshold,
        )
        return non_max_suppression(detections, self.iou_threshold)

    def audit_image(self, image_path: Path, annotations: Sequence[Annotation]) -> ImageResult:
        filename = image_path.name
        try:
            image = load_image(image_path)
        except ImageLoadError as exc:
            return load_failure_result(filename, len(annotations), exc)

        try:
            detections = self.detect(image)
        except InferenceError as exc:
            logger.warning("Inference failed for %s: %s", image_path, exc)
            geometry, _ = check_geometry(filename, annotations)
            failure = Issue.of(
                "inference_error",
                image=filename,
                description=f"Detection failed: {exc}",
            )
            return ImageResult(
                filename=filename,
                gt_count=len(annotations),
                detection_count=0,
                issues=[failure, *geometry],
            )

        return ImageResult(
            filename=filename,
            gt_count=len(annotations),
            detection_count=len(detections),
            issues=classify_image(filename, annotations, detections, self.equivalence),
        )


BackendFactory = Callable[[AppSettings], InferenceBackend]


def ultralytics_backend(settings: AppSettings) -> InferenceBackend:
    if settings.model.path is None:
        raise ConfigurationError("No model path configured")
    return UltralyticsBackend(
        model_path=settings.model.path,
        conf=settings.audit.confidence_threshold,
        device=settings.model.device,
    )


def _build_heuristic(settings: AppSettings, backend_factory: BackendFactory) -> Auditor:
    return HeuristicAuditor()


def _build_model(settings: AppSettings, backend_factory: BackendFactory) -> Auditor:
    if not settings.model.path:
        raise ConfigurationError("YOLO/BYOM method requires a model path (--model)")
    model_path = Path(settings.model.path)
    if not model_path.exists():
        raise ConfigurationError(f"Model file not found: {model_path}")

    equivalence = ClassEquivalence().with_extra_groups(settings.matching.extra_equivalence_groups)
    try:
        backend = backend_factory(settings)
    except Exception as exc:  # noqa: BLE001
        raise ConfigurationError(f"Failed to load model {model_path}: {exc}") from exc
    return ModelAuditor(
        backend,
        confidence_threshold=settings.audit.confidence_threshold,
        iou_threshold=settings.audit.iou_threshold,
        equivalence=equivalence,
    )


AUDITOR_BUILDERS: dict[str, Callable[[AppSettings, BackendFactory], Auditor]] = {
    "heuristic": _build_heuristic,
    "yolo": _build_model,
}

METHOD_ALIASES = {
    "zero-shot": "heuristic",
    "byom": "yolo",
}


def resolve_method(settings: AppSettings) -> str:
    """Canonical method name; a configured model path implies the yolo method."""
    if settings.model.path:
        return "yolo"
    method = settings.audit.method.strip().lower()
    method = METHOD_ALIASES.get(method, method)
    if method not in AUDITOR_BUILDERS:
        known = ", ".join(sorted([*AUDITOR_BUILDERS, *METHOD_ALIASES]))
        raise ConfigurationError(f"Unknown method: {settings.audit.method}. Use one of: {known}")
    return method


def build_auditor(settings: AppSettings, backend_factory: BackendFactory = ultralytics_backend) -> Auditor:
    """Create the auditor for the configured method. Fails before any image is read."""
    method = resolve_method(settings)
    return AUDITOR_BUILDERS[method](settings, backend_factory)
