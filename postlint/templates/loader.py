"""
Jinja2 template loader.

Templates live as named entries of one YAML file and are compiled on demand.
The file is read once and cached.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import jinja2
import yaml

from postlint.utils.logger import StructuredLogger, get_logger

DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "config" / "templates.yaml"


class TemplateLoader:
    """
    Loader for message and document templates from YAML configuration.

    Supports Jinja2 rendering with strict undefined variables so a missing
    value fails loudly instead of rendering as an empty string.
    """

    def __init__(
        self,
        template_path: Optional[str] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        """
        Initialize template loader.

        Args:
            template_path: Path to the templates YAML file (default: packaged templates.yaml)
            logger: Optional structured logger instance
        """
        self.template_path = str(template_path or DEFAULT_TEMPLATES_PATH)
        self.logger = logger or get_logger(__name__)
        self._templates: Dict[str, str] = {}
        self._loaded = False
        self._environment = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
        )

    def load_templates(self) -> None:
        """Load all templates from the YAML file."""
        if self._loaded:
            return

        try:
            with open(self.template_path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            self.logger.error(
                f"Templates file not found: {self.template_path}",
                operation="load_templates",
                error=str(e),
            )
            raise
        except yaml.YAMLError as e:
            self.logger.error(
                "Failed to load templates",
                operation="load_templates",
                error=str(e),
            )
            raise ValueError(f"Invalid YAML in {self.template_path}: {e}") from e

        if not isinstance(content, dict) or not all(
            isinstance(v, str) for v in content.values()
        ):
            raise ValueError(
                f"{self.template_path} must map template names to template strings"
            )

        self._templates = content
        self._loaded = True
        self.logger.debug(
            f"Loaded {len(self._templates)} templates",
            operation="load_templates",
            context={"path": self.template_path},
        )

    def render(self, template_name: str, **context: Any) -> str:
        """
        Render a template with context variables.

        Args:
            template_name: Name of template (key in the YAML file)
            **context: Variables to inject into template

        Returns:
            Rendered template string

        Raises:
            ValueError: If template not found
            jinja2.TemplateError: If template rendering fails
        """
        if not self._loaded:
            self.load_templates()

        if template_name not in self._templates:
            raise ValueError(
                f"Template '{template_name}' not found. Available: {list(self._templates.keys())}"
            )

        try:
            template = self._environment.from_string(self._templates[template_name])
            return template.render(**context)
        except jinja2.TemplateError as e:
            self.logger.error(
                f"Failed to render template '{template_name}'",
                operation="render_template",
                error=str(e),
            )
            raise

    def get_template_names(self) -> List[str]:
        """Get list of available template names."""
        if not self._loaded:
            self.load_templates()
        return list(self._templates.keys())
