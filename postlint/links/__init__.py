"""External link checking."""

from .checker import LinkChecker, LinkStatus

__all__ = ["LinkChecker", "LinkStatus"]
