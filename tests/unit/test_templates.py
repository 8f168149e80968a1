"""
Unit tests for the Jinja2 template loader
"""

import jinja2
import pytest

from postlint.templates import DEFAULT_TEMPLATES_PATH, TemplateLoader


@pytest.fixture
def templates_file(tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text(
        "greeting: |\n"
        "  Hello {{ name }}!\n"
        "listing: |\n"
        "  {% for item in items %}\n"
        "  - {{ item }}\n"
        "  {% endfor %}\n",
        encoding="utf-8",
    )
    return path


class TestTemplateLoader:
    def test_packaged_templates(self):
        loader = TemplateLoader()
        assert loader.template_path == str(DEFAULT_TEMPLATES_PATH)
        assert {"article", "report_markdown", "slack_summary"} <= set(loader.get_template_names())

    def test_render(self, templates_file):
        loader = TemplateLoader(str(templates_file))
        assert loader.render("greeting", name="SNS") == "Hello SNS!\n"

    def test_block_tags_leave_no_blank_lines(self, templates_file):
        loader = TemplateLoader(str(templates_file))
        assert loader.render("listing", items=["a", "b"]) == "- a\n- b\n"

    def test_file_read_once(self, templates_file):
        loader = TemplateLoader(str(templates_file))
        loader.render("greeting", name="x")
        templates_file.write_text("greeting: changed\n", encoding="utf-8")
        assert loader.render("greeting", name="y") == "Hello y!\n"

    def test_unknown_template(self, templates_file):
        loader = TemplateLoader(str(templates_file))
        with pytest.raises(ValueError, match="Template 'missing' not found"):
            loader.render("missing")

    def test_missing_variable_is_an_error(self, templates_file):
        loader = TemplateLoader(str(templates_file))
        with pytest.raises(jinja2.UndefinedError):
            loader.render("greeting")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TemplateLoader(str(tmp_path / "none.yaml")).get_template_names()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("greeting: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid YAML"):
            TemplateLoader(str(path)).load_templates()

    def test_non_string_templates_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("greeting:\n  nested: value\n", encoding="utf-8")
        with pytest.raises(ValueError, match="must map template names"):
            TemplateLoader(str(path)).load_templates()
