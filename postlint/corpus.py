"""
Corpus loading.

Discovers post files and turns each into an Article. Loading never stops on
content problems: undecodable files and broken front matter are recorded on
the Article so the lint checks can report them alongside everything else.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from postlint.domain.article import Article
from postlint.parsing.front_matter import (
    FrontMatterError,
    parse_date,
    parse_front_matter,
    split_front_matter,
)
from postlint.parsing.markdown import extract_code_blocks, extract_headings, extract_links
from postlint.utils.logger import get_logger

logger = get_logger(__name__)

POST_EXTENSIONS = (".md", ".markdown")

PathLike = Union[str, Path]


def _display_path(path: Path, root: Optional[Path]) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def _apply_front_matter(article: Article, front_matter: Dict[str, Any]) -> None:
    article.front_matter = front_matter

    title = front_matter.get("title")
    if title is not None and not isinstance(title, str):
        article.field_errors["title"] = f"title must be a string, got {type(title).__name__}"
        title = str(title)
    article.title = title

    raw_date = front_matter.get("date")
    if raw_date is not None and raw_date != "":
        try:
            article.date = parse_date(raw_date)
        except ValueError as e:
            article.field_errors["date"] = str(e)

    article.categories = front_matter.get("categories")
    article.tags = front_matter.get("tags")
    article.mermaid = front_matter.get("mermaid")
    article.toc = front_matter.get("toc")

    core = {"title", "date", "categories", "tags", "mermaid", "toc"}
    article.extra_fields = {str(k): v for k, v in front_matter.items() if k not in core}


def _apply_body(article: Article, body: str, body_start_line: int) -> None:
    article.body = body
    article.body_start_line = body_start_line
    article.code_blocks = extract_code_blocks(body, body_start_line)
    article.links = extract_links(body, body_start_line)
    article.headings = extract_headings(body, body_start_line)


def load_article(path: PathLike, root: Optional[PathLike] = None) -> Article:
    """
    Load a single post.

    Args:
        path: Post file
        root: Directory findings are reported relative to

    Returns:
        Article; ``parse_error`` is set when the file is not UTF-8 or its
        front matter is missing or broken

    Raises:
        OSError: If the file cannot be read
    """
    path = Path(path)
    raw = path.read_bytes()
    article = Article(
        path=path,
        raw_bytes=raw,
        display_path=_display_path(path, Path(root) if root is not None else None),
    )

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        article.parse_error = f"File is not valid UTF-8 ({e.reason} at byte {e.start})"
        logger.warning(
            "Undecodable post",
            operation="load_article",
            context={"path": article.label},
            error=article.parse_error,
        )
        return article

    article.raw_text = text

    try:
        front_matter, body, body_start_line = parse_front_matter(text)
    except FrontMatterError as e:
        article.parse_error = e.message
        article.parse_error_line = e.line
        logger.debug(
            "Front matter rejected",
            operation="load_article",
            context={"path": article.label, "line": e.line},
        )
        try:
            _, body, body_start_line = split_front_matter(text)
        except FrontMatterError:
            body, body_start_line = text, 1
        _apply_body(article, body, body_start_line)
        return article

    _apply_front_matter(article, front_matter)
    _apply_body(article, body, body_start_line)
    return article


def discover_posts(paths: Iterable[PathLike]) -> List[Path]:
    """
    Expand files and directories into a sorted, de-duplicated list of posts.

    Directories are walked recursively for ``.md``/``.markdown`` files,
    skipping hidden directories. Files named explicitly are always included.

    Raises:
        FileNotFoundError: If a given path does not exist
    """
    found = set()
    for entry in paths:
        entry = Path(entry)
        if entry.is_dir():
            for candidate in entry.rglob("*"):
                if not candidate.is_file():
                    continue
                if candidate.suffix.lower() not in POST_EXTENSIONS:
                    continue
                hidden = any(
                    part.startswith(".") for part in candidate.relative_to(entry).parts[:-1]
                )
                if not hidden:
                    found.add(candidate)
        elif entry.is_file():
            found.add(entry)
        else:
            raise FileNotFoundError(f"No such file or directory: {entry}")
    return sorted(found)


@dataclass
class Corpus:
    """The set of articles being linted."""

    articles: List[Article] = field(default_factory=list)
    root: Optional[Path] = None

    @classmethod
    def load(cls, paths: Sequence[PathLike], root: Optional[PathLike] = None) -> "Corpus":
        """
        Discover and load every post under ``paths``.

        Args:
            paths: Files and/or directories
            root: Directory findings are reported relative to (default: cwd)
        """
        root_path = Path(root) if root is not None else Path.cwd()
        start_time = time.time()
        articles = [load_article(p, root_path) for p in discover_posts(paths)]
        duration_ms = (time.time() - start_time) * 1000

        unparsed = sum(1 for a in articles if a.parse_error)
        logger.info(
            f"Loaded {len(articles)} post(s)",
            operation="load_corpus",
            context={"posts": len(articles), "unparsed": unparsed, "root": str(root_path)},
            duration_ms=duration_ms,
        )
        return cls(articles=articles, root=root_path)

    def __iter__(self) -> Iterator[Article]:
        return iter(self.articles)

    def __len__(self) -> int:
        return len(self.articles)
