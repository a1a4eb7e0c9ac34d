"""Ultralytics YOLO inference backend producing raw, unsuppressed detections."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np
import torch
from ultralytics import YOLO

from gt_audit.types import RawDetection


class InferenceBackend(Protocol):
    class_names: dict[int, str]

    def infer(self, image: np.ndarray) -> list[RawDetection]: ...


def choose_device() -> str:
    """Pick best available torch device for inference."""
    if torch.cuda.is_available():
        return "cuda"
    if torch.backends.mps.is_available():
        return "mps"
    return "cpu"


class UltralyticsBackend:
    """Run a YOLO checkpoint and return every box the model scores above ``conf``.

    The library's own NMS is disabled (``iou=1.0``) so suppression happens in
    one place, on normalized boxes.
    """

    def __init__(self, model_path: str | Path, conf: float = 0.25, device: str | None = None):
        self.conf = conf
        self.device = device or choose_device()
        self.model = YOLO(str(model_path))
        self.class_names: dict[int, str] = {int(k): str(v) for k, v in self.model.names.items()}

    def infer(self, image: np.ndarray) -> list[RawDetection]:
        results = self.model(image, conf=self.conf, iou=1.0, device=self.device, verbose=False)
        result = results[0]

        out: list[RawDetection] = []
        if result.boxes is None or len(result.boxes) == 0:
            return out

        xyxy = result.boxes.xyxy.cpu().numpy()
        confs = result.boxes.conf.cpu().numpy()
        class_ids = result.boxes.cls.cpu().numpy()
        num_classes = max(len(self.class_names), int(class_ids.max()) + 1)

        for (x1, y1, x2, y2), conf, class_id in zip(xyxy, confs, class_ids):
            scores = [0.0] * num_classes
            scores[int(class_id)] = float(conf)
            out.append(
                RawDetection(
                    box_xyxy=(float(x1), float(y1), float(x2), float(y2)),
                    class_scores=tuple(scores),
                )
            )
        return out


def download_model(name: str, cache_dir: str | Path) -> Path:
    """Fetch a named Ultralytics checkpoint into ``cache_dir`` and return its path."""
    root = Path(cache_dir)
    root.mkdir(parents=True, exist_ok=True)
    target = root / Path(name).name
    if not target.exists():
        # ultralytics downloads known asset names to the requested path
        YOLO(str(target))
    return target
