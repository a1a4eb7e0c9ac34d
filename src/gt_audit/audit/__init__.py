"""Audit engine: issue models, matching and the per-dataset pipeline."""

from gt_audit.audit.schemas import (
    AuditResult,
    AuditSummary,
    ImageResult,
    Issue,
    IssueSeverity,
    IssueType,
)

__all__ = [
    "AuditResult",
    "AuditSummary",
    "ImageResult",
    "Issue",
    "IssueSeverity",
    "IssueType",
]
