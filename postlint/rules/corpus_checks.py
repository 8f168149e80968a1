"""
Corpus Checks for the Lint Engine

Checks that need to see every article at once: duplicates and link
reachability. Each yields Violations carrying the path they refer to.

Registered checks:
    - unique_content: byte-identical files
    - near_duplicate_content: bodies with high shingle overlap
    - duplicate_topic: two articles for the same (service, exception)
    - unique_slug: the same slug published under different dates
    - external_links_resolve: external links answer with a non-error status
"""

import re
from collections import defaultdict
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from postlint.domain.article import Article
from postlint.rules.engine import SCOPE_CORPUS, Violation
from postlint.utils.logger import get_logger

logger = get_logger(__name__)

_WORD_PATTERN = re.compile(r"[a-z0-9]+")


def _sorted_articles(corpus) -> List[Article]:
    return sorted(corpus, key=lambda a: a.label)


def unique_content(corpus, context: Dict[str, Any], **params) -> Iterator[Violation]:
    """
    Report byte-identical files.

    The first file of each group (by path) is the original; every later file
    gets one finding naming it.
    """
    groups: Dict[str, List[Article]] = defaultdict(list)
    for article in _sorted_articles(corpus):
        groups[article.content_digest].append(article)

    for members in groups.values():
        original = members[0]
        for duplicate in members[1:]:
            yield Violation(
                f"Identical content to {original.label}",
                path=duplicate.label,
                related=[original.label],
            )


def shingles(text: str, size: int) -> FrozenSet[Tuple[str, ...]]:
    """Set of ``size``-word windows over the lowercased words of ``text``."""
    words = _WORD_PATTERN.findall(text.lower())
    if not words:
        return frozenset()
    if len(words) < size:
        return frozenset([tuple(words)])
    return frozenset(tuple(words[i:i + size]) for i in range(len(words) - size + 1))


def jaccard(a: FrozenSet, b: FrozenSet) -> float:
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def near_duplicate_content(
    corpus,
    context: Dict[str, Any],
    threshold: float = 0.8,
    shingle_size: int = 5,
    **params,
) -> Iterator[Violation]:
    """
    Report pairs of article bodies whose word-shingle Jaccard similarity is
    at least ``threshold``.

    Byte-identical pairs are left to ``unique_content``. The later article of
    each pair (by path) carries the finding.
    """
    articles = [a for a in _sorted_articles(corpus) if a.body.strip()]
    signatures = [(a, shingles(a.body, shingle_size)) for a in articles]

    for i, (first, first_set) in enumerate(signatures):
        if not first_set:
            continue
        for second, second_set in signatures[i + 1:]:
            if not second_set or first.content_digest == second.content_digest:
                continue
            # Jaccard can never exceed the ratio of the set sizes
            small, large = sorted((len(first_set), len(second_set)))
            if small / large < threshold:
                continue
            score = jaccard(first_set, second_set)
            if score >= threshold:
                yield Violation(
                    f"Body is {score:.0%} similar to {first.label}",
                    path=second.label,
                    related=[first.label],
                )


def duplicate_topic(corpus, context: Dict[str, Any], **params) -> Iterator[Violation]:
    """
    Report articles covering an exception already covered for the same service.

    The topic key is the service (second category, case-insensitive) plus each
    exception class named in the title.
    """
    topics: Dict[Tuple[str, str], List[Article]] = defaultdict(list)
    for article in _sorted_articles(corpus):
        service = article.service
        if not service or not service.strip():
            continue
        for name in article.exception_names:
            topics[(service.strip().lower(), name)].append(article)

    for (_, exception), members in topics.items():
        original = members[0]
        for duplicate in members[1:]:
            if duplicate.label == original.label:
                continue
            yield Violation(
                f"{exception} for {duplicate.service} is already covered by {original.label}",
                path=duplicate.label,
                related=[original.label],
            )


def unique_slug(
    corpus, context: Dict[str, Any], case_insensitive: bool = True, **params
) -> Iterator[Violation]:
    """Report the same slug used by more than one post."""
    groups: Dict[str, List[Article]] = defaultdict(list)
    for article in _sorted_articles(corpus):
        if article.post_filename is None:
            continue
        key = article.slug.lower() if case_insensitive else article.slug
        groups[key].append(article)

    for members in groups.values():
        original = members[0]
        for duplicate in members[1:]:
            yield Violation(
                f"Slug '{duplicate.slug}' is already used by {original.label}",
                path=duplicate.label,
                related=[original.label],
            )


def external_links_resolve(
    corpus,
    context: Dict[str, Any],
    ignore: Optional[Sequence[str]] = None,
    **params,
) -> Iterator[Violation]:
    """
    Report external links that do not resolve.

    Needs ``context["link_checker"]`` (a LinkChecker). Each distinct URL is
    requested once; every occurrence of a broken URL gets its own finding.

    Args:
        ignore: Regular expressions; matching URLs are not checked
    """
    checker = context.get("link_checker")
    if checker is None:
        logger.warning(
            "external_links_resolve skipped: no link checker in context",
            operation="external_links_resolve",
        )
        return

    patterns = [re.compile(p) for p in ignore or []]
    occurrences = []
    for article in _sorted_articles(corpus):
        for link in article.links:
            if not link.is_external:
                continue
            if any(p.search(link.url) for p in patterns):
                continue
            occurrences.append((article, link))

    urls = list(dict.fromkeys(link.url for _, link in occurrences))
    logger.info(
        f"Checking {len(urls)} external link(s)",
        operation="external_links_resolve",
        context={"urls": len(urls), "occurrences": len(occurrences)},
    )
    statuses = {url: checker.check(url) for url in urls}

    for article, link in occurrences:
        status = statuses[link.url]
        if not status.ok:
            yield Violation(
                f"Broken link {link.url} ({status.describe()})",
                line=link.line,
                path=article.label,
            )


CORPUS_CHECKS = {
    "unique_content": unique_content,
    "near_duplicate_content": near_duplicate_content,
    "duplicate_topic": duplicate_topic,
    "unique_slug": unique_slug,
    "external_links_resolve": external_links_resolve,
}


def register_corpus_checks(engine: Any) -> None:
    """Register all corpus checks with the lint engine."""
    for name, func in CORPUS_CHECKS.items():
        engine.register_check(name, func, scope=SCOPE_CORPUS)

    logger.info(
        f"Registered {len(CORPUS_CHECKS)} corpus checks with LintEngine",
        operation="register_corpus_checks",
    )
