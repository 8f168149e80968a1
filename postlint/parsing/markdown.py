"""
Line-oriented Markdown scanner.

Extracts the parts of a post body the lint checks look at: fenced code
blocks, links and ATX headings. It is not a renderer; it follows the
CommonMark rules for fences closely enough to find untagged and unclosed
blocks, and skips code when looking for links and headings.
"""

import re
from typing import List, Optional, Set

from postlint.domain.article import CodeBlock, Heading, Link

_FENCE_OPEN = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
_HEADING = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?[ \t]*$")
_INLINE_LINK = re.compile(
    r"(?P<bang>!?)\[(?P<text>[^\]]*)\]\(\s*<?(?P<url>[^)\s>]+)>?(?:\s+(?:\"[^\"]*\"|'[^']*'))?\s*\)"
)
_AUTOLINK = re.compile(r"<(?P<url>[A-Za-z][A-Za-z0-9+.-]{1,31}:[^<>\s]+)>")
_REFERENCE_DEF = re.compile(r"^ {0,3}\[(?P<label>[^\]]+)\]:\s*<?(?P<url>[^\s>]+)>?")
_CODE_SPAN = re.compile(r"(`+)(?:(?!\1).)+?\1")
_CLOSING_HASHES = re.compile(r"(?:^|[ \t]+)#+$")


def _closes(line: str, fence: str) -> bool:
    stripped = line.rstrip("\r\n")
    indent = len(stripped) - len(stripped.lstrip(" "))
    if indent > 3:
        return False
    candidate = stripped.strip()
    if not candidate or candidate[0] != fence[0]:
        return False
    return len(candidate) >= len(fence) and set(candidate) == {fence[0]}


def extract_code_blocks(body: str, start_line: int = 1) -> List[CodeBlock]:
    """
    Find fenced code blocks.

    Args:
        body: Markdown text
        start_line: File line number of the first line of ``body``

    Returns:
        Code blocks in document order; a block still open at end of input has
        ``end_line`` None.
    """
    blocks: List[CodeBlock] = []
    lines = body.splitlines()
    idx = 0
    while idx < len(lines):
        match = _FENCE_OPEN.match(lines[idx])
        if not match:
            idx += 1
            continue

        fence = match.group("fence")
        info = match.group("info").strip()
        # Backtick fences may not carry backticks in their info string
        if fence[0] == "`" and "`" in info:
            idx += 1
            continue

        language = info.split()[0] if info else ""
        # kramdown attribute style: ```{.java}
        language = language.strip("{}").lstrip(".")

        content_lines: List[str] = []
        end_idx: Optional[int] = None
        scan = idx + 1
        while scan < len(lines):
            if _closes(lines[scan], fence):
                end_idx = scan
                break
            content_lines.append(lines[scan])
            scan += 1

        blocks.append(
            CodeBlock(
                language=language,
                info=info,
                fence=fence,
                start_line=start_line + idx,
                end_line=start_line + end_idx if end_idx is not None else None,
                content="\n".join(content_lines),
            )
        )
        if end_idx is None:
            break
        idx = end_idx + 1

    return blocks


def code_line_numbers(blocks: List[CodeBlock], last_line: int) -> Set[int]:
    """File line numbers covered by the given code blocks, fences included."""
    covered: Set[int] = set()
    for block in blocks:
        end = block.end_line if block.end_line is not None else last_line
        covered.update(range(block.start_line, end + 1))
    return covered


def _prose_lines(body: str, start_line: int):
    lines = body.splitlines()
    blocks = extract_code_blocks(body, start_line)
    covered = code_line_numbers(blocks, start_line + len(lines) - 1)
    for offset, line in enumerate(lines):
        line_no = start_line + offset
        if line_no in covered:
            continue
        yield line_no, line


def extract_links(body: str, start_line: int = 1) -> List[Link]:
    """
    Find inline links and images, autolinks and reference definitions.

    Links inside fenced code blocks and inline code spans are ignored.
    """
    links: List[Link] = []
    for line_no, line in _prose_lines(body, start_line):
        reference = _REFERENCE_DEF.match(line)
        if reference:
            links.append(
                Link(
                    url=reference.group("url"),
                    text=reference.group("label"),
                    line=line_no,
                    kind="reference",
                )
            )
            continue

        text = _CODE_SPAN.sub(lambda m: " " * len(m.group(0)), line)
        for match in _INLINE_LINK.finditer(text):
            links.append(
                Link(
                    url=match.group("url"),
                    text=match.group("text"),
                    line=line_no,
                    kind="image" if match.group("bang") else "inline",
                )
            )
        for match in _AUTOLINK.finditer(text):
            links.append(
                Link(url=match.group("url"), text=match.group("url"), line=line_no, kind="autolink")
            )
    return links


def extract_headings(body: str, start_line: int = 1) -> List[Heading]:
    """Find ATX headings outside fenced code blocks."""
    headings: List[Heading] = []
    for line_no, line in _prose_lines(body, start_line):
        match = _HEADING.match(line)
        if not match:
            continue
        text = _CLOSING_HASHES.sub("", match.group("text") or "").strip()
        headings.append(Heading(level=len(match.group("hashes")), text=text, line=line_no))
    return headings
