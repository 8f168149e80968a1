"""New article scaffolding."""

from .article import ArticleExistsError, ArticleSpec, create_article, render_article, slugify

__all__ = ["ArticleExistsError", "ArticleSpec", "create_article", "render_article", "slugify"]
