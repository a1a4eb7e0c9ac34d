from __future__ import annotations

from pathlib import Path
from typing import Callable

import cv2
import numpy as np
import pytest


DatasetFactory = Callable[..., Path]


def write_image(path: Path, width: int = 320, height: int = 240) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = np.full((height, width, 3), 127, dtype=np.uint8)
    assert cv2.imwrite(str(path), frame)


@pytest.fixture
def make_dataset(tmp_path: Path) -> DatasetFactory:
    """Build a YOLO dataset under images/val + labels/val with a data.yaml."""

    def _make(
        labels: dict[str, str | None],
        names: list[str] | None = None,
        broken: tuple[str, ...] = (),
        size: tuple[int, int] = (320, 240),
    ) -> Path:
        root = tmp_path / "dataset"
        images_dir = root / "images" / "val"
        labels_dir = root / "labels" / "val"
        images_dir.mkdir(parents=True, exist_ok=True)
        labels_dir.mkdir(parents=True, exist_ok=True)

        for image_name, label_text in labels.items():
            image_path = images_dir / image_name
            if image_name in broken:
                image_path.write_bytes(b"not an image")
            else:
                write_image(image_path, *size)
            if label_text is not None:
                (labels_dir / f"{image_path.stem}.txt").write_text(label_text, encoding="utf-8")

        names = names if names is not None else ["dog", "cat"]
        yaml_lines = ["names:"] + [f"  - {name}" for name in names]
        (root / "data.yaml").write_text("\n".join(yaml_lines) + "\n", encoding="utf-8")
        return root

    return _make
