"""YOLO dataset layout detection, class names and label parsing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from gt_audit.errors import DatasetError
from gt_audit.types import Annotation, BoundingBox


logger = logging.getLogger(__name__)

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}
SPLITS = ("val", "train", "test", "")
CLASS_YAML_NAMES = ("dataset.yaml", "data/dataset.yaml", "data.yaml")


def label_path_for_image(labels_dir: Path, image_path: Path) -> Path:
    """Resolve corresponding YOLO label path for an image."""
    return labels_dir / f"{image_path.stem}.txt"


def list_images(images_dir: Path) -> list[Path]:
    """List images in deterministic order."""
    if not images_dir.is_dir():
        return []
    return sorted(p for p in images_dir.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_EXTS)


def detect_structure(root: Path) -> tuple[Path, Path]:
    """Find the images/labels directory pair, preferring the val split."""
    for split in SPLITS:
        images_dir = root / "images" / split if split else root / "images"
        labels_dir = root / "labels" / split if split else root / "labels"
        labels_alt = root / "data" / split / "labels" if split else root / "data" / "labels"

        if not images_dir.is_dir():
            continue
        if labels_dir.is_dir():
            return images_dir, labels_dir
        if labels_alt.is_dir():
            return images_dir, labels_alt

    raise DatasetError(
        f"Could not detect dataset structure in {root}. Expected images/ and labels/ directories."
    )


def _names_from_yaml(raw: dict[str, Any]) -> dict[int, str]:
    names = raw.get("names")
    if isinstance(names, list):
        return {i: str(name) for i, name in enumerate(names) if name is not None}
    if isinstance(names, dict):
        out: dict[int, str] = {}
        for key, value in names.items():
            try:
                out[int(key)] = str(value)
            except (TypeError, ValueError):
                continue
        return out
    return {}


def load_class_names(root: Path) -> dict[int, str]:
    """Read class names from dataset.yaml/data.yaml, falling back to classes.txt."""
    for rel in CLASS_YAML_NAMES:
        path = root / rel
        if not path.exists():
            continue
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise DatasetError(f"Failed to parse {path}: {exc}") from exc
        if not isinstance(raw, dict):
            continue
        names = _names_from_yaml(raw)
        if names:
            return names

    txt_path = root / "classes.txt"
    if txt_path.exists():
        lines = [line.strip() for line in txt_path.read_text(encoding="utf-8").splitlines()]
        names = {i: name for i, name in enumerate(lines) if name}
        if names:
            return names

    logger.warning("No class names found in %s, using class ids", root)
    return {}


def parse_label_line(line: str) -> tuple[int, BoundingBox] | None:
    parts = line.split()
    if len(parts) < 5:
        return None
    try:
        class_id = int(parts[0])
        x, y, w, h = (float(v) for v in parts[1:5])
    except ValueError:
        return None
    return class_id, BoundingBox(x=x, y=y, w=w, h=h)


@dataclass
class YoloDataset:
    """A YOLO-format dataset resolved on disk."""

    path: Path
    images_dir: Path
    labels_dir: Path
    class_names: dict[int, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> YoloDataset:
        root = Path(path)
        images_dir, labels_dir = detect_structure(root)
        return cls(
            path=root,
            images_dir=images_dir,
            labels_dir=labels_dir,
            class_names=load_class_names(root),
        )

    def list_images(self) -> list[Path]:
        return list_images(self.images_dir)

    @property
    def image_count(self) -> int:
        return len(self.list_images())

    def label_path(self, image_path: Path) -> Path:
        return label_path_for_image(self.labels_dir, image_path)

    def class_name(self, class_id: int) -> str:
        return self.class_names.get(class_id, f"class_{class_id}")

    def load_annotations(self, image_path: Path) -> list[Annotation]:
        """Parse the image's label file; missing or unreadable files mean no labels."""
        label_path = self.label_path(image_path)
        if not label_path.exists():
            return []
        try:
            content = label_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", label_path, exc)
            return []

        annotations: list[Annotation] = []
        for line_num, line in enumerate(content.split("\n"), start=1):
            parsed = parse_label_line(line)
            if parsed is None:
                if line.strip():
                    logger.debug("Skipping malformed label line %s:%d", label_path, line_num)
                continue
            class_id, bbox = parsed
            annotations.append(
                Annotation(
                    class_id=class_id,
                    class_name=self.class_name(class_id),
                    bbox=bbox,
                    line_num=line_num,
                )
            )
        return annotations
