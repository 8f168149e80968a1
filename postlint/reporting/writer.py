"""Report writer - persist lint reports as JSON, Markdown and plain text."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from postlint.reporting.report import LintReport

logger = logging.getLogger(__name__)

REPORT_BASENAME = "postlint-report"
SUPPORTED_FORMATS = ("json", "markdown", "text")
_EXTENSIONS = {"json": "json", "markdown": "md", "text": "txt"}


class ReportWriter:
    """Write report artifacts into one directory."""

    def __init__(self, output_dir: Path | str, loader=None) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.loader = loader

    def write(self, report: LintReport, formats: Optional[Iterable[str]] = None) -> List[Path]:
        """
        Write the report in each requested format.

        Args:
            report: Report to persist
            formats: Subset of ``json``, ``markdown``, ``text`` (default: json + markdown)

        Returns:
            Paths written, in the order requested

        Raises:
            ValueError: If a format is unknown, or markdown is requested without a loader
        """
        formats = list(formats or ("json", "markdown"))
        unknown = [f for f in formats if f not in SUPPORTED_FORMATS]
        if unknown:
            raise ValueError(
                f"Unknown report format(s): {', '.join(unknown)}. "
                f"Supported: {', '.join(SUPPORTED_FORMATS)}"
            )

        written: List[Path] = []
        for fmt in formats:
            path = self.output_dir / f"{REPORT_BASENAME}.{_EXTENSIONS[fmt]}"
            path.write_text(self.render(report, fmt), encoding="utf-8")
            written.append(path)
            logger.info("Wrote %s report to %s", fmt, path)
        return written

    def render(self, report: LintReport, fmt: str) -> str:
        if fmt == "json":
            return report.to_json() + "\n"
        if fmt == "markdown":
            if self.loader is None:
                raise ValueError("Markdown reports need a template loader")
            return report.to_markdown(self.loader)
        return report.to_text() + "\n"
