"""gt-audit command line interface."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from gt_audit.audit.schemas import AuditResult
from gt_audit.config import DEFAULT_CONFIG_PATH, AppSettings, load_settings, with_overrides
from gt_audit.errors import ConfigurationError, DatasetError

app = typer.Typer(help="Fast ground truth label validation for object detection datasets", no_args_is_help=True)


def threshold_failures(
    result: AuditResult,
    fail_on_high: int | None,
    fail_on_medium: int | None,
) -> list[str]:
    """Messages for every CI threshold the result exceeds."""
    failures: list[str] = []
    if fail_on_high is not None and result.high_count > fail_on_high:
        failures.append(
            f"High severity issues ({result.high_count}) exceed threshold ({fail_on_high})"
        )
    if fail_on_medium is not None:
        medium_plus = result.high_count + result.medium_count
        if medium_plus > fail_on_medium:
            failures.append(
                f"Medium+ severity issues ({medium_plus}) exceed threshold ({fail_on_medium})"
            )
    return failures


def print_summary(result: AuditResult, elapsed_seconds: float) -> None:
    print()
    print("AUDIT SUMMARY")
    print(f"  Total images:       {result.total_images}")
    print(f"  Images audited:     {result.images_audited}")
    print(f"  Images with issues: {result.images_with_issues}")
    print(f"  Total issues:       {result.total_issues}")
    print()
    print("  By severity:")
    print(f"    High:   {result.high_count}")
    print(f"    Medium: {result.medium_count}")
    print(f"    Low:    {result.low_count}")
    by_type = result.issues_by_type()
    if by_type:
        print()
        print("  By type:")
        for issue_type, count in by_type:
            print(f"    {issue_type}: {count}")
    print()
    print(f"  Time: {elapsed_seconds:.2f}s")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_settings_or_exit(config: Path, overrides: dict[str, dict[str, object]]) -> AppSettings:
    try:
        return with_overrides(load_settings(config), overrides)
    except (ValidationError, yaml.YAMLError, OSError) as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc


@app.command("validate")
def validate(
    dataset: Path = typer.Argument(..., help="Path to dataset (YOLO format)"),
    method: str | None = typer.Option(None, "--method", "-m", help="Detection method: heuristic (zero-shot) or yolo (byom)"),
    model: Path | None = typer.Option(None, help="Path to detector checkpoint (implies yolo method)"),
    confidence: float | None = typer.Option(None, "--confidence", "-c", help="Confidence threshold for detections"),
    iou: float | None = typer.Option(None, help="IoU threshold for NMS"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Report path (.json or .html)"),
    sample: int | None = typer.Option(None, help="Number of images to sample (0 = all)"),
    seed: int | None = typer.Option(None, help="Random seed for sampling"),
    fail_on_high: int | None = typer.Option(None, help="Fail if high severity issues exceed this count"),
    fail_on_medium: int | None = typer.Option(None, help="Fail if high+medium severity issues exceed this count"),
    workers: int | None = typer.Option(None, "--workers", "-j", help="Number of parallel workers"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="App config yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Validate ground truth labels against heuristics or a detector."""
    from gt_audit.audit.auditors import build_auditor
    from gt_audit.audit.pipeline import run_audit, select_images
    from gt_audit.datasets.yolo import YoloDataset
    from gt_audit.reports.writer import write_report

    _configure_logging(verbose)
    settings = _load_settings_or_exit(
        config,
        {
            "audit": {
                "method": method,
                "confidence_threshold": confidence,
                "iou_threshold": iou,
                "workers": workers,
                "sample": sample,
                "seed": seed,
            },
            "model": {"path": str(model) if model is not None else None},
            "report": {
                "output": str(output) if output is not None else None,
                "fail_on_high": fail_on_high,
                "fail_on_medium": fail_on_medium,
            },
        },
    )

    start = time.perf_counter()
    try:
        print(f"Loading dataset: {dataset}")
        ds = YoloDataset.load(dataset)
        all_images = ds.list_images()
        print(f"  Classes: {len(ds.class_names)}")
        print(f"  Images: {len(all_images)}")
        auditor = build_auditor(settings)
    except (ConfigurationError, DatasetError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    expected = len(select_images(all_images, settings.audit.sample, settings.audit.seed))
    if expected < len(all_images):
        print(f"  Sampled: {expected} images (seed={settings.audit.seed})")
    print(f"Auditing {expected} images with method '{auditor.name}'...")

    with typer.progressbar(length=expected, label="Auditing") as bar:
        result = run_audit(ds, settings, auditor=auditor, progress_cb=lambda done, total: bar.update(1))

    print_summary(result, time.perf_counter() - start)

    if settings.report.output:
        report_path = write_report(result, settings.report.output)
        print(f"Report saved: {report_path}")

    failures = threshold_failures(result, settings.report.fail_on_high, settings.report.fail_on_medium)
    for message in failures:
        typer.echo(f"FAIL: {message}", err=True)
    if failures:
        raise typer.Exit(code=1)
    if settings.report.fail_on_high is not None or settings.report.fail_on_medium is not None:
        print("PASS: Issue counts within thresholds")


@app.command("info")
def info(
    dataset: Path = typer.Argument(..., help="Path to dataset"),
) -> None:
    """Show information about a dataset."""
    from gt_audit.datasets.yolo import YoloDataset

    try:
        ds = YoloDataset.load(dataset)
    except DatasetError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    print(f"Dataset: {dataset}")
    print(f"Images: {ds.image_count}")
    print(f"Classes: {len(ds.class_names)}")
    print()
    print("Class names:")
    for class_id in sorted(ds.class_names):
        print(f"  {class_id}: {ds.class_names[class_id]}")


@app.command("download")
def download(
    model: str = typer.Argument("yolov8n.pt", help="Ultralytics checkpoint name"),
    cache_dir: Path | None = typer.Option(None, help="Model cache directory (defaults to config model.cache_dir)"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="App config yaml"),
) -> None:
    """Download a detector checkpoint into the model cache directory."""
    from gt_audit.vision.detector import download_model

    settings = _load_settings_or_exit(config, {})
    target_dir = cache_dir or Path(settings.model.cache_dir)
    print(f"Model cache directory: {target_dir}")
    path = download_model(model, target_dir)
    print(f"Model ready: {path}")


if __name__ == "__main__":
    app()
