"""Lint findings and the report that aggregates them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """Finding severity, ordered from most to least serious."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, threshold: "Severity") -> bool:
        """True when this severity is as serious as ``threshold`` or more."""
        return self.rank <= threshold.rank

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"Unknown severity '{value}'. Expected one of: "
                f"{', '.join(s.value for s in cls)}"
            ) from None


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass
class Finding:
    """One violation of one rule at one location."""

    rule: str
    check: str
    severity: Severity
    path: str
    message: str
    line: Optional[int] = None
    related: List[str] = field(default_factory=list)

    def sort_key(self):
        return (self.path, self.line or 0, self.severity.rank, self.rule, self.message)

    def location(self) -> str:
        return f"{self.path}:{self.line}" if self.line else self.path

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "rule": self.rule,
            "check": self.check,
            "severity": self.severity.value,
            "path": self.path,
            "line": self.line,
            "message": self.message,
        }
        if self.related:
            data["related"] = list(self.related)
        return data


@dataclass
class LintReport:
    """Aggregated result of one lint run."""

    findings: List[Finding] = field(default_factory=list)
    articles_checked: int = 0
    rules_run: List[str] = field(default_factory=list)
    root: Optional[str] = None
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    def sorted_findings(self) -> List[Finding]:
        return sorted(self.findings, key=Finding.sort_key)

    def counts(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    def has_failures(self, fail_on: Severity = Severity.ERROR) -> bool:
        return any(f.severity.at_least(fail_on) for f in self.findings)

    def exit_code(self, fail_on: Severity = Severity.ERROR) -> int:
        return 1 if self.has_failures(fail_on) else 0

    def files_with_findings(self) -> List[str]:
        return sorted({f.path for f in self.findings})

    def findings_by_path(self) -> Dict[str, List[Finding]]:
        grouped: Dict[str, List[Finding]] = {}
        for finding in self.sorted_findings():
            grouped.setdefault(finding.path, []).append(finding)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "root": self.root,
            "articles_checked": self.articles_checked,
            "rules_run": list(self.rules_run),
            "summary": {
                **self.counts(),
                "total": len(self.findings),
                "files_with_findings": len(self.files_with_findings()),
            },
            "findings": [f.to_dict() for f in self.sorted_findings()],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def to_text(self) -> str:
        """Compiler-style lines plus a one-line summary."""
        lines = [
            f"{f.location()}: {f.severity.value} [{f.rule}] {f.message}"
            for f in self.sorted_findings()
        ]
        counts = self.counts()
        lines.append(
            f"{self.articles_checked} article(s) checked: "
            f"{counts['error']} error(s), {counts['warning']} warning(s), "
            f"{counts['info']} info"
        )
        return "\n".join(lines)

    def to_markdown(self, loader) -> str:
        """Render with the ``report_markdown`` template of a TemplateLoader."""
        return loader.render("report_markdown", report=self, counts=self.counts())
