"""Lint Engine Module"""

from .engine import (
    LintEngine,
    RuleConfig,
    RegisteredCheck,
    Violation,
    SCOPE_ARTICLE,
    SCOPE_CORPUS,
)
from .context import build_context
from .article_checks import ARTICLE_CHECKS, register_article_checks
from .corpus_checks import CORPUS_CHECKS, register_corpus_checks


def register_checks(engine: LintEngine) -> None:
    """Register every built-in article and corpus check."""
    register_article_checks(engine)
    register_corpus_checks(engine)


__all__ = [
    "LintEngine",
    "RuleConfig",
    "RegisteredCheck",
    "Violation",
    "SCOPE_ARTICLE",
    "SCOPE_CORPUS",
    "build_context",
    "ARTICLE_CHECKS",
    "CORPUS_CHECKS",
    "register_article_checks",
    "register_corpus_checks",
    "register_checks",
]
