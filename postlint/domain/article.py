"""
Article domain model.

Represents one Markdown post of the corpus: its front matter fields, its body
and the structure extracted from the body (code fences, links, headings).
Articles that violate expectations are still representable so every problem
can be reported instead of stopping at the first one.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

CORE_FIELDS = ("title", "date", "categories", "tags", "mermaid", "toc")

POST_FILENAME_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})-(?P<slug>.+)\.(?P<ext>md|markdown)$"
)

_EXCEPTION_NAME_PATTERN = re.compile(r"\b([A-Z][A-Za-z0-9]*(?:Exception|Error))\b")


@dataclass(frozen=True)
class PostFilename:
    """Parsed ``YYYY-MM-DD-slug.md`` post filename."""

    date: date
    slug: str
    ext: str

    @classmethod
    def parse(cls, name: str) -> Optional["PostFilename"]:
        """Return the parsed filename, or None if it does not follow the convention."""
        match = POST_FILENAME_PATTERN.match(name)
        if not match:
            return None
        try:
            parsed = datetime.strptime(match.group("date"), "%Y-%m-%d").date()
        except ValueError:
            return None
        return cls(date=parsed, slug=match.group("slug"), ext=match.group("ext"))


@dataclass(frozen=True)
class CodeBlock:
    """A fenced code block. ``end_line`` is None when the fence never closes."""

    language: str
    info: str
    fence: str
    start_line: int
    end_line: Optional[int]
    content: str

    @property
    def closed(self) -> bool:
        return self.end_line is not None


@dataclass(frozen=True)
class Link:
    """A hyperlink found in the body. ``kind`` is inline, image, autolink or reference."""

    url: str
    text: str
    line: int
    kind: str = "inline"

    @property
    def is_external(self) -> bool:
        return self.url.lower().startswith(("http://", "https://"))


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line: int


@dataclass
class Article:
    """
    Article domain model.

    Attributes:
        path: File the article was loaded from
        title: Human-readable headline
        date: Publication timestamp (timezone-aware) or None if missing/invalid
        categories: Ordered pair, e.g. ["AWS", "AWS Shield"]
        tags: Keyword labels, e.g. ["aws", "shield", "software.amazon.awssdk.services.shield"]
        mermaid: Diagram rendering flag (None when absent)
        toc: Table of contents flag (None when absent)
        body: Markdown body below the front matter
        body_start_line: File line number of the first body line
        raw_text: Whole file content
        front_matter: Raw front matter mapping as parsed by YAML
        extra_fields: Front matter keys outside CORE_FIELDS
        parse_error: Why the file or its front matter could not be parsed
        field_errors: Per-field coercion problems, keyed by field name
        code_blocks / links / headings: Structure extracted from the body
    """

    path: Path
    title: Optional[str] = None
    date: Optional[datetime] = None
    categories: Any = None
    tags: Any = None
    mermaid: Any = None
    toc: Any = None
    body: str = ""
    body_start_line: int = 1
    raw_text: str = ""
    raw_bytes: bytes = b""
    front_matter: Dict[str, Any] = field(default_factory=dict)
    extra_fields: Dict[str, Any] = field(default_factory=dict)
    parse_error: Optional[str] = None
    parse_error_line: Optional[int] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    code_blocks: List[CodeBlock] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    headings: List[Heading] = field(default_factory=list)
    display_path: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def post_filename(self) -> Optional[PostFilename]:
        return PostFilename.parse(self.filename)

    @property
    def filename_date(self) -> Optional[date]:
        parsed = self.post_filename
        return parsed.date if parsed else None

    @property
    def slug(self) -> str:
        """Slug from the filename; the bare stem when the convention is not followed."""
        parsed = self.post_filename
        return parsed.slug if parsed else self.path.stem

    @property
    def content_digest(self) -> str:
        """sha256 of the raw file bytes."""
        return hashlib.sha256(self.raw_bytes).hexdigest()

    @property
    def service(self) -> Optional[str]:
        """Service name from the second category, if present."""
        if isinstance(self.categories, list) and len(self.categories) > 1:
            value = self.categories[1]
            return str(value) if value is not None else None
        return None

    @property
    def exception_names(self) -> List[str]:
        """Exception class names mentioned in the title, in order of appearance."""
        if not isinstance(self.title, str):
            return []
        names: List[str] = []
        for name in _EXCEPTION_NAME_PATTERN.findall(self.title):
            if name not in names:
                names.append(name)
        return names

    @property
    def label(self) -> str:
        """Path used in findings and logs."""
        return self.display_path or str(self.path)

    @property
    def has_front_matter(self) -> bool:
        return self.parse_error is None

    def get_field(self, field_name: str, default: Any = None) -> Any:
        """
        Get field value with support for non-core front matter keys.

        Args:
            field_name: Field name to retrieve
            default: Default value if field not found

        Returns:
            Field value or default
        """
        if field_name in CORE_FIELDS:
            value = getattr(self, field_name)
            return default if value is None else value
        return self.extra_fields.get(field_name, default)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the front matter fields and location, extra keys flattened in."""
        data: Dict[str, Any] = {
            "path": self.label,
            "title": self.title,
            "date": self.date.isoformat() if self.date else None,
            "categories": self.categories,
            "tags": self.tags,
            "mermaid": self.mermaid,
            "toc": self.toc,
        }
        data.update(self.extra_fields)
        return data
