"""Parallel per-image audit and dataset-level aggregation."""

from __future__ import annotations

import logging
import os
import random
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from gt_audit.audit.auditors import (
    Auditor,
    BackendFactory,
    build_auditor,
    load_failure_result,
    resolve_method,
    ultralytics_backend,
)
from gt_audit.audit.schemas import AuditResult, ImageResult
from gt_audit.config import AppSettings
from gt_audit.datasets.yolo import YoloDataset
from gt_audit.types import Annotation


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def select_images(images: Sequence[Path], sample: int, seed: int) -> list[Path]:
    """Return all images, or a seeded random sample of ``sample`` of them."""
    selected = list(images)
    if sample <= 0 or sample >= len(selected):
        return selected
    rng = random.Random(seed)
    rng.shuffle(selected)
    return selected[:sample]


def default_workers() -> int:
    return os.cpu_count() or 1


def _audit_one(auditor: Auditor, dataset: YoloDataset, image_path: Path) -> ImageResult:
    annotations: list[Annotation] = []
    try:
        annotations = dataset.load_annotations(image_path)
        return auditor.audit_image(image_path, annotations)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Audit failed for %s", image_path)
        return load_failure_result(image_path.name, len(annotations), exc, reason="Audit failed")


def audit_images(
    auditor: Auditor,
    dataset: YoloDataset,
    images: Sequence[Path],
    *,
    workers: int | None = None,
    progress_cb: ProgressCallback | None = None,
) -> list[ImageResult]:
    """Audit every image on a fixed-size thread pool.

    Results come back in the order of ``images`` whatever order workers
    finish in.
    """
    total = len(images)
    if total == 0:
        return []

    done = 0
    done_lock = threading.Lock()

    def run(image_path: Path) -> ImageResult:
        nonlocal done
        result = _audit_one(auditor, dataset, image_path)
        if progress_cb is not None:
            with done_lock:
                done += 1
                progress_cb(done, total)
        return result

    max_workers = min(workers or default_workers(), total)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="gt-audit") as executor:
        return list(executor.map(run, images))


def run_audit(
    dataset: YoloDataset,
    settings: AppSettings,
    *,
    auditor: Auditor | None = None,
    backend_factory: BackendFactory = ultralytics_backend,
    progress_cb: ProgressCallback | None = None,
) -> AuditResult:
    """Audit a dataset end to end and aggregate the per-image results."""
    method = resolve_method(settings)
    if auditor is None:
        auditor = build_auditor(settings, backend_factory)

    all_images = dataset.list_images()
    images = select_images(all_images, settings.audit.sample, settings.audit.seed)
    logger.info(
        "Auditing %d of %d images with method=%s workers=%s",
        len(images),
        len(all_images),
        method,
        settings.audit.workers or default_workers(),
    )

    started = time.perf_counter()
    results = audit_images(
        auditor,
        dataset,
        images,
        workers=settings.audit.workers,
        progress_cb=progress_cb,
    )
    audit_result = AuditResult.build(
        dataset_path=str(dataset.path),
        method=method,
        confidence_threshold=settings.audit.confidence_threshold,
        iou_threshold=settings.audit.iou_threshold,
        total_images=len(all_images),
        image_results=results,
    )
    logger.info(
        "Audit finished in %.2fs: %d issues across %d images",
        time.perf_counter() - started,
        audit_result.total_issues,
        audit_result.images_with_issues,
    )
    return audit_result
