"""Jinja2 templates for articles, reports and notifications."""

from .loader import DEFAULT_TEMPLATES_PATH, TemplateLoader

__all__ = ["DEFAULT_TEMPLATES_PATH", "TemplateLoader"]
