"""
Unit Tests for the Lint Engine Core

Tests cover:
- Rule loading from YAML
- Rule schema validation
- Check registry (article and corpus scopes)
- Enabling and disabling rules
- Path exclusions
- Error handling (log and continue)
- Structured LintReport results
"""

import pytest
from unittest.mock import Mock

from postlint.corpus import Corpus
from postlint.reporting.report import Severity
from postlint.rules.engine import (
    DEFAULT_RULES_PATH,
    SCOPE_CORPUS,
    LintEngine,
    Violation,
)


def _article(label):
    article = Mock()
    article.label = label
    return article


def _corpus(*labels):
    return Corpus(articles=[_article(label) for label in labels], root=None)


class TestRuleLoading:
    """Rule loading from YAML files"""

    def test_load_rules_from_valid_yaml(self, tmp_path):
        """Test loading valid rules from YAML file"""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(
            """
version: 1
rules:
  - name: required-fields
    check: required_fields
    severity: warning
    description: "Title and date present"
    exclude: ["drafts/*"]
    params:
      fields: [title]
"""
        )

        engine = LintEngine(str(rules_file))

        assert len(engine.rules) == 1
        rule = engine.rules[0]
        assert rule.name == "required-fields"
        assert rule.check == "required_fields"
        assert rule.severity is Severity.WARNING
        assert rule.enabled is True
        assert rule.description == "Title and date present"
        assert rule.exclude == ["drafts/*"]
        assert rule.params == {"fields": ["title"]}

    def test_severity_defaults_to_error(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("rules:\n  - name: a\n    check: a_check\n")
        engine = LintEngine(str(rules_file))
        assert engine.rules[0].severity is Severity.ERROR
        assert engine.rules[0].params == {}

    def test_load_rules_file_not_found(self):
        """Test error when rules file doesn't exist"""
        with pytest.raises(FileNotFoundError):
            LintEngine("/nonexistent/path/rules.yaml")

    def test_load_rules_invalid_yaml(self, tmp_path):
        """Test error on invalid YAML syntax"""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("rules:\n  - name: a\n    params: [unclosed bracket\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            LintEngine(str(rules_file))

    def test_load_rules_empty_file(self, tmp_path):
        """Test handling empty YAML file"""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("")

        engine = LintEngine(str(rules_file))
        assert len(engine.rules) == 0

    def test_load_rules_no_rules_key(self, tmp_path):
        """Test handling YAML with no 'rules' key"""
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("version: 1\n")

        engine = LintEngine(str(rules_file))
        assert len(engine.rules) == 0

    def test_load_rules_null_rules(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("rules:\n")
        assert LintEngine(str(rules_file)).rules == []

    def test_duplicate_rule_names_rejected(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(
            "rules:\n  - name: a\n    check: x\n  - name: a\n    check: y\n"
        )
        with pytest.raises(ValueError, match="Duplicate rule name 'a'"):
            LintEngine(str(rules_file))

    def test_default_rules_file_loads(self):
        engine = LintEngine()
        assert engine.rules_config_path == str(DEFAULT_RULES_PATH)
        names = [rule.name for rule in engine.rules]
        assert "front-matter-valid" in names
        assert engine.get_rule("external-links-resolve").enabled is False


class TestSchemaValidation:
    """Rule schema validation"""

    @pytest.mark.parametrize(
        "rule_yaml",
        [
            "  - name: a\n",  # missing check
            "  - check: a\n",  # missing name
            "  - name: Bad Name\n    check: a\n",
            "  - name: a\n    check: a\n    severity: fatal\n",
            "  - name: a\n    check: a\n    enabled: 'yes'\n",
            "  - name: a\n    check: a\n    params: [1, 2]\n",
            "  - name: a\n    check: a\n    unknown_key: 1\n",
        ],
    )
    def test_invalid_rule_rejected(self, tmp_path, rule_yaml):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("rules:\n" + rule_yaml)
        with pytest.raises(ValueError, match="validation failed"):
            LintEngine(str(rules_file))

    def test_unknown_top_level_key_rejected(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("rules: []\nextra: true\n")
        with pytest.raises(ValueError, match="validation failed"):
            LintEngine(str(rules_file))

    def test_invalid_version_rejected(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("version: 2\nrules: []\n")
        with pytest.raises(ValueError, match="validation failed"):
            LintEngine(str(rules_file))


class TestRegistry:
    """Check registry"""

    def test_register_check(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("")
        engine = LintEngine(str(rules_file))

        func = Mock(return_value=[])
        engine.register_check("my_check", func)
        assert engine.checks["my_check"].func is func
        assert engine.checks["my_check"].scope == "article"

    def test_register_non_callable_raises(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("")
        engine = LintEngine(str(rules_file))
        with pytest.raises(TypeError):
            engine.register_check("bad", "not callable")

    def test_register_unknown_scope_raises(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("")
        engine = LintEngine(str(rules_file))
        with pytest.raises(ValueError, match="Unknown check scope"):
            engine.register_check("bad", lambda *a, **k: [], scope="site")


class TestToggles:
    def _engine(self, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(
            "rules:\n  - name: a\n    check: x\n  - name: b\n    check: x\n    enabled: false\n"
        )
        return LintEngine(str(rules_file))

    def test_enable_and_disable(self, tmp_path):
        engine = self._engine(tmp_path)
        assert [r.name for r in engine.enabled_rules()] == ["a"]

        engine.enable_rule("b")
        engine.disable_rule("a")
        assert [r.name for r in engine.enabled_rules()] == ["b"]

    def test_unknown_rule_raises_key_error(self, tmp_path):
        engine = self._engine(tmp_path)
        with pytest.raises(KeyError):
            engine.enable_rule("nope")


class TestLint:
    """Rule execution and structured results"""

    def _engine(self, tmp_path, rules_yaml):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text(rules_yaml)
        return LintEngine(str(rules_file))

    def test_article_check_called_per_article_with_params(self, tmp_path):
        engine = self._engine(
            tmp_path,
            "rules:\n  - name: r\n    check: c\n    severity: warning\n    params:\n      limit: 3\n",
        )
        calls = []

        def check(article, context, limit):
            calls.append((article.label, limit))
            yield Violation("problem", line=7)

        engine.register_check("c", check)
        report = engine.lint(_corpus("a.md", "b.md"), {"key": "value"})

        assert calls == [("a.md", 3), ("b.md", 3)]
        assert len(report.findings) == 2
        finding = report.findings[0]
        assert finding.rule == "r"
        assert finding.check == "c"
        assert finding.severity is Severity.WARNING
        assert finding.path == "a.md"
        assert finding.line == 7
        assert finding.message == "problem"
        assert report.articles_checked == 2
        assert report.rules_run == ["r"]

    def test_context_passed_to_checks(self, tmp_path):
        engine = self._engine(tmp_path, "rules:\n  - name: r\n    check: c\n")
        seen = []
        engine.register_check("c", lambda article, context: seen.append(context) or [])
        engine.lint(_corpus("a.md"), {"settings": "s"})
        assert seen == [{"settings": "s"}]

    def test_disabled_rule_not_run(self, tmp_path):
        engine = self._engine(tmp_path, "rules:\n  - name: r\n    check: c\n    enabled: false\n")
        func = Mock(return_value=[])
        engine.register_check("c", func)
        report = engine.lint(_corpus("a.md"))
        func.assert_not_called()
        assert report.rules_run == []

    def test_excluded_article_skipped(self, tmp_path):
        engine = self._engine(
            tmp_path, "rules:\n  - name: r\n    check: c\n    exclude: ['drafts/*']\n"
        )
        engine.register_check("c", lambda article, context: [Violation("x")])
        report = engine.lint(_corpus("drafts/a.md", "posts/b.md"))
        assert [f.path for f in report.findings] == ["posts/b.md"]

    def test_corpus_check_called_once(self, tmp_path):
        engine = self._engine(tmp_path, "rules:\n  - name: dup\n    check: d\n")
        corpus = _corpus("a.md", "b.md")
        func = Mock(return_value=[Violation("same as a.md", path="b.md", related=["a.md"])])
        engine.register_check("d", func, scope=SCOPE_CORPUS)

        report = engine.lint(corpus)
        func.assert_called_once_with(corpus, {})
        assert report.findings[0].path == "b.md"
        assert report.findings[0].related == ["a.md"]

    def test_corpus_findings_on_excluded_paths_dropped(self, tmp_path):
        engine = self._engine(
            tmp_path, "rules:\n  - name: dup\n    check: d\n    exclude: ['old/*']\n"
        )
        engine.register_check(
            "d",
            lambda corpus, context: [Violation("x", path="old/a.md"), Violation("y", path="new/b.md")],
            scope=SCOPE_CORPUS,
        )
        report = engine.lint(_corpus("old/a.md", "new/b.md"))
        assert [f.path for f in report.findings] == ["new/b.md"]

    def test_unregistered_check_reported(self, tmp_path):
        engine = self._engine(tmp_path, "rules:\n  - name: r\n    check: missing_check\n    severity: info\n")
        report = engine.lint(_corpus("a.md"))
        assert len(report.findings) == 1
        assert report.findings[0].severity is Severity.ERROR
        assert "No check registered for 'missing_check'" in report.findings[0].message
        assert report.findings[0].path == engine.rules_config_path

    def test_crashing_article_check_isolated(self, tmp_path):
        engine = self._engine(
            tmp_path,
            "rules:\n  - name: boom\n    check: boom\n    severity: info\n  - name: ok\n    check: ok\n",
        )

        def boom(article, context):
            if article.label == "a.md":
                raise RuntimeError("kaput")
            return []

        engine.register_check("boom", boom)
        engine.register_check("ok", lambda article, context: [Violation("fine")])

        report = engine.lint(_corpus("a.md", "b.md"))
        crash = [f for f in report.findings if f.rule == "boom"]
        assert len(crash) == 1
        assert crash[0].path == "a.md"
        assert crash[0].severity is Severity.ERROR
        assert "kaput" in crash[0].message
        assert len([f for f in report.findings if f.rule == "ok"]) == 2

    def test_crashing_corpus_check_isolated(self, tmp_path):
        engine = self._engine(tmp_path, "rules:\n  - name: boom\n    check: boom\n")

        def boom(corpus, context):
            raise RuntimeError("kaput")
            yield  # pragma: no cover

        engine.register_check("boom", boom, scope=SCOPE_CORPUS)
        report = engine.lint(_corpus("a.md"))
        assert len(report.findings) == 1
        assert "Check 'boom' failed: kaput" == report.findings[0].message

    def test_unexpected_param_surfaces_as_finding(self, tmp_path):
        engine = self._engine(
            tmp_path, "rules:\n  - name: r\n    check: c\n    params:\n      nope: 1\n"
        )
        engine.register_check("c", lambda article, context: [])
        report = engine.lint(_corpus("a.md"))
        assert "failed" in report.findings[0].message

    def test_rules_run_in_file_order(self, tmp_path):
        engine = self._engine(
            tmp_path, "rules:\n  - name: z\n    check: c\n  - name: a\n    check: c\n"
        )
        engine.register_check("c", lambda article, context: [])
        assert engine.lint(_corpus("a.md")).rules_run == ["z", "a"]
