"""Issue taxonomy and audit result models shared by the engine and reports."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field

from gt_audit import __version__


IssueSeverity = Literal["high", "medium", "low"]
IssueType = Literal[
    "class_mismatch",
    "missing_label",
    "spurious_label",
    "localization",
    "image_load_error",
    "inference_error",
]

SEVERITIES: tuple[IssueSeverity, ...] = get_args(IssueSeverity)
ISSUE_TYPES: tuple[IssueType, ...] = get_args(IssueType)

SEVERITY_BY_TYPE: dict[IssueType, IssueSeverity] = {
    "class_mismatch": "high",
    "missing_label": "medium",
    "spurious_label": "low",
    "localization": "high",
    "image_load_error": "high",
    "inference_error": "high",
}


class Issue(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    image: str
    severity: IssueSeverity
    issue_type: IssueType = Field(alias="type")
    description: str
    gt_class: str | None = None
    detected_class: str | None = None
    confidence: float | None = None
    iou: float | None = None
    explanation: str | None = None
    line_num: int | None = None

    @classmethod
    def of(cls, issue_type: IssueType, *, image: str, description: str, **fields) -> Issue:
        """Build an issue whose severity follows from its type."""
        return cls(
            image=image,
            severity=SEVERITY_BY_TYPE[issue_type],
            issue_type=issue_type,
            description=description,
            **fields,
        )


class ImageResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filename: str
    gt_count: int = Field(ge=0)
    detection_count: int = Field(ge=0)
    issues: list[Issue] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    def count_severity(self, severity: IssueSeverity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)

    @property
    def high_count(self) -> int:
        return self.count_severity("high")

    @property
    def medium_count(self) -> int:
        return self.count_severity("medium")

    @property
    def low_count(self) -> int:
        return self.count_severity("low")


class AuditSummary(BaseModel):
    total_images: int = Field(ge=0)
    images_audited: int = Field(ge=0)
    images_with_issues: int = Field(ge=0)
    total_issues: int = Field(ge=0)
    by_severity: dict[str, int]
    by_type: dict[str, int]


def summarize(
    image_results: Sequence[ImageResult],
    total_images: int,
    images_audited: int,
) -> tuple[AuditSummary, list[ImageResult]]:
    """Recompute summary counts and the flagged image list from scratch.

    Flagged images are ordered by issue count, descending; ties keep the
    order of ``image_results``.
    """
    by_severity = {severity: 0 for severity in SEVERITIES}
    by_type = {issue_type: 0 for issue_type in ISSUE_TYPES}
    total_issues = 0

    for result in image_results:
        for issue in result.issues:
            by_severity[issue.severity] += 1
            by_type[issue.issue_type] += 1
            total_issues += 1

    flagged = sorted(
        (r for r in image_results if r.has_issues),
        key=lambda r: len(r.issues),
        reverse=True,
    )
    summary = AuditSummary(
        total_images=total_images,
        images_audited=images_audited,
        images_with_issues=len(flagged),
        total_issues=total_issues,
        by_severity=by_severity,
        by_type=by_type,
    )
    return summary, flagged


class AuditResult(BaseModel):
    """Dataset-level audit outcome consumed by report writers."""

    generator: str = "gt-audit"
    generator_version: str = __version__
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    dataset_path: str
    method: str
    confidence_threshold: float
    iou_threshold: float
    total_images: int = Field(ge=0)
    images_audited: int = Field(ge=0)
    summary: AuditSummary
    flagged_images: list[ImageResult] = Field(default_factory=list)
    image_results: list[ImageResult] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        *,
        dataset_path: str,
        method: str,
        confidence_threshold: float,
        iou_threshold: float,
        total_images: int,
        image_results: Sequence[ImageResult],
    ) -> AuditResult:
        results = list(image_results)
        summary, flagged = summarize(results, total_images, len(results))
        return cls(
            dataset_path=dataset_path,
            method=method,
            confidence_threshold=confidence_threshold,
            iou_threshold=iou_threshold,
            total_images=total_images,
            images_audited=len(results),
            summary=summary,
            flagged_images=flagged,
            image_results=results,
        )

    def recompute(self) -> None:
        """Rebuild summary and flagged images from ``image_results``."""
        self.summary, self.flagged_images = summarize(
            self.image_results,
            self.total_images,
            self.images_audited,
        )

    @property
    def images_with_issues(self) -> int:
        return self.summary.images_with_issues

    @property
    def total_issues(self) -> int:
        return self.summary.total_issues

    @property
    def high_count(self) -> int:
        return self.summary.by_severity.get("high", 0)

    @property
    def medium_count(self) -> int:
        return self.summary.by_severity.get("medium", 0)

    @property
    def low_count(self) -> int:
        return self.summary.by_severity.get("low", 0)

    def issues_by_type(self) -> list[tuple[str, int]]:
        """Non-zero type counts, largest first, taxonomy order on ties."""
        items = [(name, count) for name, count in self.summary.by_type.items() if count > 0]
        return sorted(items, key=lambda item: item[1], reverse=True)
