"""JSON and HTML report rendering for audit results."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from gt_audit.audit.schemas import AuditResult


TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
HTML_SUFFIXES = {".html", ".htm"}


def report_payload(result: AuditResult) -> dict[str, Any]:
    """JSON-ready report body; per-image results are summarized, not repeated."""
    return result.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"image_results"},
    )


def write_json_report(result: AuditResult, output_path: str | Path) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(report_payload(result), f, indent=2)
    return path


def render_html_report(result: AuditResult) -> str:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("report.html")
    return template.render(
        result=result,
        summary=result.summary,
        issues_by_type=result.issues_by_type(),
        flagged_images=result.flagged_images,
    )


def write_html_report(result: AuditResult, output_path: str | Path) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html_report(result), encoding="utf-8")
    return path


def write_report(result: AuditResult, output_path: str | Path) -> Path:
    """Write an HTML report for .html/.htm paths, JSON otherwise."""
    path = Path(output_path)
    if path.suffix.lower() in HTML_SUFFIXES:
        return write_html_report(result, path)
    return write_json_report(result, path)
