"""Report rendering utilities."""

from .export import (
    ERROR_HEADERS,
    PUSH_HEADERS,
    REPORT_HEADERS,
    REPORT_SUBJECT,
    ReportSummary,
    build_batch_report,
    build_push_report,
    build_report,
    compose_summary,
    report_filename,
)

__all__ = [
    "ERROR_HEADERS",
    "PUSH_HEADERS",
    "REPORT_HEADERS",
    "REPORT_SUBJECT",
    "ReportSummary",
    "build_batch_report",
    "build_push_report",
    "build_report",
    "compose_summary",
    "report_filename",
]
