"""Project configuration models and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class AuditSettings(BaseModel):
    method: str = "heuristic"
    confidence_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    iou_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    workers: int | None = Field(default=None, ge=1)
    sample: int = Field(default=0, ge=0)
    seed: int = 42


class ModelSettings(BaseModel):
    path: str | None = None
    cache_dir: str = "models"
    device: str | None = None


class MatchingSettings(BaseModel):
    extra_equivalence_groups: list[list[str]] = Field(default_factory=list)


class ReportSettings(BaseModel):
    output: str | None = None
    fail_on_high: int | None = Field(default=None, ge=0)
    fail_on_medium: int | None = Field(default=None, ge=0)


class AppSettings(BaseModel):
    audit: AuditSettings = Field(default_factory=AuditSettings)
    model: ModelSettings = Field(default_factory=ModelSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_settings(config_path: str | Path | None = None) -> AppSettings:
    """Load YAML configuration into typed app settings."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        return AppSettings()

    with path.open("r", encoding="utf-8") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    return AppSettings.model_validate(raw)


def with_overrides(settings: AppSettings, overrides: dict[str, dict[str, Any]]) -> AppSettings:
    """Return settings with non-None section values replaced, revalidated."""
    raw = settings.model_dump()
    for section, values in overrides.items():
        for key, value in values.items():
            if value is not None:
                raw.setdefault(section, {})[key] = value
    return AppSettings.model_validate(raw)
