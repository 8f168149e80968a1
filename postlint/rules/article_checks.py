"""
Article Checks for the Lint Engine

Each check inspects one Article and yields a Violation per problem found.
Checks are generators with no side effects; the engine attaches rule name,
severity and path.

Front matter checks stay silent when the front matter could not be parsed at
all: that condition is reported once, by ``front_matter_valid``.

Registered checks:
    - front_matter_valid: front matter present, valid YAML mapping, UTF-8 file
    - required_fields: required keys present and non-empty, date parses
    - filename_convention: YYYY-MM-DD-slug.md naming
    - filename_date_matches: filename date agrees with the date field
    - categories_shape: [AWS, <service>] pair
    - tags_shape: non-empty, unique, lowercase tags
    - flag_types: mermaid/toc are booleans
    - allowed_keys: no unknown front matter keys
    - code_fence_language: fenced code blocks carry a language tag
    - code_fence_closed: fenced code blocks are closed
    - required_sections: template headings are present
    - title_names_exception: the title names an exception class
"""

import re
from typing import Any, Dict, Iterator, List, Optional, Sequence

from postlint.domain.article import CORE_FIELDS, Article
from postlint.rules.engine import SCOPE_ARTICLE, Violation
from postlint.utils.logger import get_logger
from postlint.utils.timezone import to_utc

logger = get_logger(__name__)

DEFAULT_REQUIRED_FIELDS = ("title", "date")
DEFAULT_SLUG_PATTERN = r"[A-Za-z0-9]+(?:[-_.][A-Za-z0-9]+)*"
DEFAULT_SECTIONS = ("Common Causes", "References")
DEFAULT_FLAGS = ("mermaid", "toc")


def front_matter_key_line(article: Article, key: str) -> Optional[int]:
    """File line of a top-level ``key:`` inside the front matter block, if found."""
    if not article.raw_text:
        return None
    pattern = re.compile(rf"^{re.escape(key)}\s*:")
    lines = article.raw_text.splitlines()
    last = min(len(lines), max(article.body_start_line - 2, 0))
    for idx in range(1, last):
        if pattern.match(lines[idx]):
            return idx + 1
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def front_matter_valid(article: Article, context: Dict[str, Any], **params) -> Iterator[Violation]:
    """
    Report files whose front matter cannot be used.

    Covers: not UTF-8, no leading ``---`` block, unterminated block,
    YAML syntax errors and non-mapping documents.
    """
    if article.parse_error:
        yield Violation(article.parse_error, line=article.parse_error_line)


def required_fields(
    article: Article,
    context: Dict[str, Any],
    fields: Optional[Sequence[str]] = None,
    **params,
) -> Iterator[Violation]:
    """
    Report missing or empty required front matter fields.

    Args:
        article: Article under check
        context: Lint context (unused)
        fields: Keys that must be present and non-empty (default: title, date)

    A present but unparsable ``date`` and a non-string ``title`` are
    reported here as well.
    """
    if not article.has_front_matter:
        return

    for name in fields or DEFAULT_REQUIRED_FIELDS:
        if name not in article.front_matter:
            yield Violation(f"Missing required front matter field '{name}'")
            continue
        if _is_blank(article.front_matter[name]):
            yield Violation(
                f"Front matter field '{name}' is empty",
                line=front_matter_key_line(article, name),
            )
            continue
        if name in article.field_errors:
            yield Violation(
                f"Invalid '{name}': {article.field_errors[name]}",
                line=front_matter_key_line(article, name),
            )


def filename_convention(
    article: Article,
    context: Dict[str, Any],
    slug_pattern: str = DEFAULT_SLUG_PATTERN,
    **params,
) -> Iterator[Violation]:
    """Check the ``YYYY-MM-DD-slug.md`` naming Jekyll requires for posts."""
    parsed = article.post_filename
    if parsed is None:
        yield Violation(
            f"Filename '{article.filename}' does not follow YYYY-MM-DD-slug.md"
        )
        return

    if not re.fullmatch(slug_pattern, parsed.slug):
        yield Violation(f"Slug '{parsed.slug}' does not match pattern {slug_pattern}")


def filename_date_matches(
    article: Article,
    context: Dict[str, Any],
    allow_utc_shift: bool = True,
    **params,
) -> Iterator[Violation]:
    """
    Compare the filename date prefix with the front matter ``date``.

    The date as written (in its own UTC offset) must match. With
    ``allow_utc_shift`` the UTC calendar date is accepted too, since an
    offset can move a late-evening post to the next day.
    """
    if not article.has_front_matter or article.date is None:
        return
    filename_date = article.filename_date
    if filename_date is None:
        return

    written = article.date.date()
    if written == filename_date:
        return
    if allow_utc_shift and to_utc(article.date).date() == filename_date:
        return

    yield Violation(
        f"Filename date {filename_date.isoformat()} does not match "
        f"front matter date {written.isoformat()}",
        line=front_matter_key_line(article, "date"),
    )


def categories_shape(
    article: Article,
    context: Dict[str, Any],
    length: int = 2,
    root: Optional[str] = "AWS",
    **params,
) -> Iterator[Violation]:
    """Check ``categories`` is ``[<root>, <service>]``."""
    if not article.has_front_matter:
        return

    line = front_matter_key_line(article, "categories")
    if "categories" not in article.front_matter:
        yield Violation("Missing front matter field 'categories'")
        return

    categories = article.categories
    if not isinstance(categories, list):
        yield Violation(
            f"'categories' must be a list, got {type(categories).__name__}", line=line
        )
        return

    if length and len(categories) != length:
        yield Violation(
            f"'categories' must have exactly {length} entries, got {len(categories)}",
            line=line,
        )

    for idx, value in enumerate(categories):
        if not isinstance(value, str) or not value.strip():
            yield Violation(f"categories[{idx}] must be a non-empty string", line=line)

    if root and categories and categories[0] != root:
        yield Violation(f"First category must be '{root}', got '{categories[0]}'", line=line)


def tags_shape(
    article: Article,
    context: Dict[str, Any],
    min_count: int = 1,
    lowercase: bool = True,
    **params,
) -> Iterator[Violation]:
    """Check ``tags`` is a list of unique, non-empty (optionally lowercase) strings."""
    if not article.has_front_matter:
        return

    line = front_matter_key_line(article, "tags")
    if "tags" not in article.front_matter:
        yield Violation("Missing front matter field 'tags'")
        return

    tags = article.tags
    if not isinstance(tags, list):
        yield Violation(f"'tags' must be a list, got {type(tags).__name__}", line=line)
        return

    if len(tags) < min_count:
        yield Violation(f"'tags' needs at least {min_count} entries, got {len(tags)}", line=line)

    seen = set()
    for idx, tag in enumerate(tags):
        if not isinstance(tag, str) or not tag.strip():
            yield Violation(f"tags[{idx}] must be a non-empty string", line=line)
            continue
        if lowercase and tag != tag.lower():
            yield Violation(f"Tag '{tag}' is not lowercase", line=line)
        if tag in seen:
            yield Violation(f"Duplicate tag '{tag}'", line=line)
        seen.add(tag)


def flag_types(
    article: Article,
    context: Dict[str, Any],
    flags: Optional[Sequence[str]] = None,
    required: bool = False,
    **params,
) -> Iterator[Violation]:
    """Check rendering flags (``mermaid``, ``toc``) are booleans when present."""
    if not article.has_front_matter:
        return

    for flag in flags or DEFAULT_FLAGS:
        if flag not in article.front_matter:
            if required:
                yield Violation(f"Missing front matter flag '{flag}'")
            continue
        value = article.front_matter[flag]
        if not isinstance(value, bool):
            yield Violation(
                f"'{flag}' must be true or false, got {value!r}",
                line=front_matter_key_line(article, flag),
            )


def allowed_keys(
    article: Article,
    context: Dict[str, Any],
    keys: Optional[Sequence[str]] = None,
    **params,
) -> Iterator[Violation]:
    """Report front matter keys outside the allowed set (default: the core fields)."""
    if not article.has_front_matter:
        return

    allowed = set(keys or CORE_FIELDS)
    for key in article.front_matter:
        if key not in allowed:
            yield Violation(
                f"Unknown front matter key '{key}'",
                line=front_matter_key_line(article, str(key)),
            )


def code_fence_language(
    article: Article,
    context: Dict[str, Any],
    allowed: Optional[Sequence[str]] = None,
    **params,
) -> Iterator[Violation]:
    """
    Every fenced code block needs a language tag for syntax highlighting.

    Args:
        allowed: Optional allow-list of languages (case-insensitive); empty
            accepts any tag
    """
    allowed_set = {a.lower() for a in allowed} if allowed else set()
    for block in article.code_blocks:
        if not block.language:
            yield Violation("Code block has no language tag", line=block.start_line)
        elif allowed_set and block.language.lower() not in allowed_set:
            yield Violation(
                f"Code block language '{block.language}' is not one of: "
                f"{', '.join(sorted(allowed_set))}",
                line=block.start_line,
            )


def code_fence_closed(article: Article, context: Dict[str, Any], **params) -> Iterator[Violation]:
    for block in article.code_blocks:
        if not block.closed:
            yield Violation(
                f"Code block opened with {block.fence} is never closed",
                line=block.start_line,
            )


def required_sections(
    article: Article,
    context: Dict[str, Any],
    sections: Optional[Sequence[str]] = None,
    **params,
) -> Iterator[Violation]:
    """Each phrase must appear (case-insensitive) in at least one heading."""
    headings: List[str] = [h.text.lower() for h in article.headings]
    for phrase in sections or DEFAULT_SECTIONS:
        if not any(phrase.lower() in text for text in headings):
            yield Violation(f"Missing section heading containing '{phrase}'")


def title_names_exception(
    article: Article, context: Dict[str, Any], **params
) -> Iterator[Violation]:
    if not article.has_front_matter or not isinstance(article.title, str) or not article.title.strip():
        return
    if not article.exception_names:
        yield Violation(
            f"Title does not name an exception class: '{article.title}'",
            line=front_matter_key_line(article, "title"),
        )


ARTICLE_CHECKS = {
    "front_matter_valid": front_matter_valid,
    "required_fields": required_fields,
    "filename_convention": filename_convention,
    "filename_date_matches": filename_date_matches,
    "categories_shape": categories_shape,
    "tags_shape": tags_shape,
    "flag_types": flag_types,
    "allowed_keys": allowed_keys,
    "code_fence_language": code_fence_language,
    "code_fence_closed": code_fence_closed,
    "required_sections": required_sections,
    "title_names_exception": title_names_exception,
}


def register_article_checks(engine: Any) -> None:
    """
    Register all article checks with the lint engine.

    Example:
        >>> engine = LintEngine()
        >>> register_article_checks(engine)
    """
    for name, func in ARTICLE_CHECKS.items():
        engine.register_check(name, func, scope=SCOPE_ARTICLE)

    logger.info(
        f"Registered {len(ARTICLE_CHECKS)} article checks with LintEngine",
        operation="register_article_checks",
    )
