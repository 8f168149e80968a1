"""Lint findings, reports and report writers."""

from .report import Finding, LintReport, Severity
from .writer import REPORT_BASENAME, SUPPORTED_FORMATS, ReportWriter

__all__ = [
    "Finding",
    "LintReport",
    "Severity",
    "ReportWriter",
    "REPORT_BASENAME",
    "SUPPORTED_FORMATS",
]
