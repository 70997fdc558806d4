"""Reports for workflow listings."""

from flowcheck.report.reporter import generate_json_report, generate_markdown_report

__all__ = ["generate_json_report", "generate_markdown_report"]
