"""Report writers for audit results."""

from gt_audit.reports.writer import write_html_report, write_json_report, write_report

__all__ = [
    "write_html_report",
    "write_json_report",
    "write_report",
]
