"""Front matter and Markdown parsing."""

from .front_matter import (
    FrontMatterError,
    format_date,
    parse_date,
    parse_front_matter,
    split_front_matter,
)
from .markdown import extract_code_blocks, extract_headings, extract_links

__all__ = [
    "FrontMatterError",
    "format_date",
    "parse_date",
    "parse_front_matter",
    "split_front_matter",
    "extract_code_blocks",
    "extract_headings",
    "extract_links",
]
