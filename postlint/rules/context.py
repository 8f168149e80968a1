"""
Context Builder for the Lint Engine

Assembles the shared data checks may need into a single dictionary. Article
checks mostly ignore it; corpus checks such as external_links_resolve read
their collaborators from it.
"""

from typing import Dict, Any, Optional
from datetime import datetime
from pathlib import Path
import logging

from postlint.utils.timezone import now_in

logger = logging.getLogger(__name__)


def build_context(
    settings: Optional[Any] = None,
    link_checker: Optional[Any] = None,
    now: Optional[datetime] = None,
    root: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Build context object for a lint run.

    Args:
        settings: Application settings object
        link_checker: LinkChecker used by external_links_resolve (None disables it)
        now: Reference time for the run (defaults to now in the settings timezone)
        root: Directory findings are reported relative to

    Returns:
        Dict with:
        - settings: The settings object (or None)
        - link_checker: The link checker (or None)
        - now: Timezone-aware reference time
        - root: Lint root (or None)

    Example:
        >>> context = build_context(settings, LinkChecker())
        >>> report = engine.lint(corpus, context)
    """
    if now is None:
        zone = getattr(settings, "timezone", None) or "UTC"
        now = now_in(zone)

    context = {
        "settings": settings,
        "link_checker": link_checker,
        "now": now,
        "root": root,
    }

    logger.debug(f"Built lint context (link checking: {'on' if link_checker else 'off'})")
    return context
