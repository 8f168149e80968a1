"""
Article scaffolding.

Renders a new post in the corpus template (introduction, explanation, common
causes, Java example, best practices, references) and writes it under the
``YYYY-MM-DD-slug.md`` name. A scaffolded post passes the default lint rules.
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

import yaml

from postlint.parsing.front_matter import format_date
from postlint.templates.loader import TemplateLoader
from postlint.utils.logger import get_logger, log_operation
from postlint.utils.timezone import localize, now_in

logger = get_logger(__name__)

EXCEPTION_NAME_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]*(?:Exception|Error)$")
JAVA_PACKAGE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*(?:\.[a-z][a-z0-9_]*)*$")
DOCS_SEARCH_URL = "https://docs.aws.amazon.com/search/doc-search.html?searchQuery={query}"


class ArticleExistsError(FileExistsError):
    """Raised when the target post file already exists."""


def slugify(text: str) -> str:
    """
    Lowercase ASCII slug: accents folded, runs of other characters become ``-``.

    Example:
        >>> slugify("AWS Shield: ResourceNotFoundException")
        "aws-shield-resourcenotfoundexception"
    """
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", folded.lower()).strip("-")


def _yaml_flow_list(values: List[str]) -> str:
    return yaml.safe_dump(values, default_flow_style=True, allow_unicode=True).strip()


@dataclass
class ArticleSpec:
    """
    Inputs for a new article.

    Attributes:
        title: Headline; must name the exception
        service: AWS service name, e.g. "AWS Shield"
        exception: Exception class name, e.g. "ResourceNotFoundException"
        java_package: SDK package, e.g. "software.amazon.awssdk.services.shield"
        date: Publication time; naive values are taken in the scaffold timezone
        extra_tags: Tags appended after the standard three
        docs_url: Service documentation link for the References section
        slug: Filename slug (default: slugified title)
    """

    title: str
    service: str
    exception: str
    java_package: str
    date: Optional[datetime] = None
    mermaid: bool = True
    toc: bool = True
    extra_tags: List[str] = field(default_factory=list)
    docs_url: Optional[str] = None
    slug: Optional[str] = None

    def validate(self) -> None:
        """
        Raises:
            ValueError: If a field would produce an article the linter rejects
        """
        for name in ("title", "service", "exception", "java_package"):
            if not str(getattr(self, name) or "").strip():
                raise ValueError(f"'{name}' must not be empty")
        if not EXCEPTION_NAME_PATTERN.match(self.exception):
            raise ValueError(
                f"Exception name '{self.exception}' must be a class name ending in Exception or Error"
            )
        if self.exception not in self.title:
            raise ValueError(f"Title must name the exception '{self.exception}'")
        if not JAVA_PACKAGE_PATTERN.match(self.java_package):
            raise ValueError(f"Java package '{self.java_package}' must be a lowercase dotted name")
        if not self.resolved_slug:
            raise ValueError(f"Cannot derive a slug from title '{self.title}'")

    @property
    def resolved_slug(self) -> str:
        return slugify(self.slug) if self.slug else slugify(self.title)

    @property
    def categories(self) -> List[str]:
        return ["AWS", self.service.strip()]

    @property
    def tags(self) -> List[str]:
        tags: List[str] = []
        candidates = ["aws", slugify(self.service), self.java_package]
        candidates += [t.strip().lower() for t in self.extra_tags]
        for tag in candidates:
            if tag and tag not in tags:
                tags.append(tag)
        return tags

    @property
    def resolved_docs_url(self) -> str:
        return self.docs_url or DOCS_SEARCH_URL.format(query=quote_plus(self.service.strip()))

    def publication_date(self, timezone: str = "UTC") -> datetime:
        """The article date as an aware datetime, defaulting to now."""
        if self.date is None:
            return now_in(timezone)
        if self.date.tzinfo is None:
            return localize(self.date.replace(microsecond=0), timezone)
        return self.date.replace(microsecond=0)


def render_article(
    spec: ArticleSpec,
    loader: TemplateLoader,
    published: Optional[datetime] = None,
    timezone: str = "UTC",
) -> str:
    """
    Render the ``article`` template for ``spec``.

    Args:
        spec: Article inputs
        loader: Template loader holding the ``article`` template
        published: Resolved publication date (default: spec.publication_date)
        timezone: Zone for naive or missing dates

    Raises:
        ValueError: If the article inputs are invalid or the template is missing
    """
    spec.validate()
    published = published or spec.publication_date(timezone)
    return loader.render(
        "article",
        title=spec.title.strip(),
        title_yaml=json.dumps(spec.title.strip(), ensure_ascii=False),
        date=format_date(published),
        categories_yaml=_yaml_flow_list(spec.categories),
        tags_yaml=_yaml_flow_list(spec.tags),
        mermaid=spec.mermaid,
        toc=spec.toc,
        service=spec.service.strip(),
        exception=spec.exception,
        java_package=spec.java_package,
        docs_url=spec.resolved_docs_url,
    )


@log_operation("create_article")
def create_article(
    spec: ArticleSpec,
    posts_dir: Path | str,
    loader: TemplateLoader,
    overwrite: bool = False,
    timezone: str = "UTC",
) -> Path:
    """
    Write a new post ``<posts_dir>/<YYYY-MM-DD>-<slug>.md``.

    Args:
        spec: Article inputs
        posts_dir: Destination directory (created if missing)
        loader: Template loader holding the ``article`` template
        overwrite: Replace an existing file instead of failing
        timezone: Zone for naive or missing dates

    Returns:
        Path of the written post

    Raises:
        ArticleExistsError: If the file exists and overwrite is False
        ValueError: If the article inputs are invalid
    """
    published = spec.publication_date(timezone)
    content = render_article(spec, loader, published=published, timezone=timezone)

    target_dir = Path(posts_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{published.strftime('%Y-%m-%d')}-{spec.resolved_slug}.md"

    try:
        with open(path, "w" if overwrite else "x", encoding="utf-8") as f:
            f.write(content)
    except FileExistsError:
        raise ArticleExistsError(f"Post already exists: {path}") from None

    logger.info(
        f"Created post {path.name}",
        operation="create_article",
        context={"path": str(path), "service": spec.service, "exception": spec.exception},
    )
    return path
