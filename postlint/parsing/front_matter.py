"""
Front matter parsing for Jekyll-style posts.

A post starts with a YAML block delimited by ``---`` lines:

    ---
    title: "Handling ThrottlingException in Amazon SNS"
    date: 2023-05-14 10:00:00 -0000
    categories: [AWS, Amazon SNS]
    ---

The block is parsed with a PyYAML safe loader that leaves timestamps as
strings, so every date goes through ``parse_date``.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

import yaml

from postlint.utils.timezone import to_utc

FRONT_MATTER_DELIMITER = "---"
FRONT_MATTER_TERMINATORS = ("---", "...")

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

# Tried in order against the date exactly as written in the post.
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M %z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


class FrontMatterLoader(yaml.SafeLoader):
    """Safe loader without the implicit timestamp resolver."""


FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class FrontMatterError(ValueError):
    """Raised when a post's front matter is missing or cannot be parsed."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line


def _is_delimiter(line: str, accepted: Tuple[str, ...]) -> bool:
    return line.rstrip("\r\n").rstrip() in accepted


def split_front_matter(text: str) -> Tuple[Optional[str], str, int]:
    """
    Split a post into its front matter block and body.

    Args:
        text: Whole file content

    Returns:
        (front matter YAML text or None when the file has no block,
         body text, 1-based file line of the first body line)

    Raises:
        FrontMatterError: If the block is opened but never closed
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    lines = text.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0], (FRONT_MATTER_DELIMITER,)):
        return None, text, 1

    for idx in range(1, len(lines)):
        if _is_delimiter(lines[idx], FRONT_MATTER_TERMINATORS):
            yaml_text = "".join(lines[1:idx])
            body = "".join(lines[idx + 1 :])
            return yaml_text, body, idx + 2

    raise FrontMatterError("Front matter block opened on line 1 is never closed", line=1)


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str, int]:
    """
    Parse the front matter of a post.

    Args:
        text: Whole file content

    Returns:
        (front matter mapping, body text, 1-based file line of the first body line)

    Raises:
        FrontMatterError: If the block is missing, unterminated, invalid YAML,
            or not a mapping, or holds a tagged value that cannot be
            constructed
    """
    yaml_text, body, body_start_line = split_front_matter(text)
    if yaml_text is None:
        raise FrontMatterError("No front matter block (file must start with '---')", line=1)

    try:
        data = yaml.load(yaml_text, Loader=FrontMatterLoader)
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            # Mark lines are 0-based and relative to the block, which starts on file line 2
            line = mark.line + 2
        problem = getattr(e, "problem", None) or str(e)
        raise FrontMatterError(f"Invalid YAML in front matter: {problem}", line=line) from e
    except (ValueError, OverflowError) as e:
        # Explicitly tagged scalars such as "!!timestamp 2023-02-30" fail in the constructor
        raise FrontMatterError(f"Invalid value in front matter: {e}", line=2) from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise FrontMatterError(
            f"Front matter must be a mapping, got {type(data).__name__}", line=2
        )

    return data, body, body_start_line


def parse_date(value: Any) -> datetime:
    """
    Coerce a front matter ``date`` value to a timezone-aware datetime.

    Naive values are taken as UTC, bare dates as midnight UTC.

    Raises:
        ValueError: If the value is not a recognisable date
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a date: {value!r}")

    if isinstance(value, datetime):
        return to_utc(value) if value.tzinfo is None else value

    if isinstance(value, date):
        return to_utc(datetime(value.year, value.month, value.day))

    if not isinstance(value, str):
        raise ValueError(f"Not a date: {value!r}")

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return to_utc(parsed) if parsed.tzinfo is None else parsed

    raise ValueError(f"Unrecognised date format: {value!r}")


def format_date(value: datetime) -> str:
    """Format a datetime the way posts write it: ``YYYY-MM-DD HH:MM:SS +HHMM``."""
    if value.tzinfo is None:
        value = to_utc(value)
    return value.strftime("%Y-%m-%d %H:%M:%S %z")
