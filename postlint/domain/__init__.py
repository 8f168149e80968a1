"""Domain models for postlint."""

from .article import Article, CodeBlock, Heading, Link, PostFilename

__all__ = ["Article", "CodeBlock", "Heading", "Link", "PostFilename"]
