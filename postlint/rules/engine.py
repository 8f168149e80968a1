"""
Lint Engine Core Module

Implements a configurable lint engine that:
- Loads and validates rules from YAML configuration (jsonschema)
- Provides a pluggable check registry with article and corpus scopes
- Runs every enabled rule and collects findings
- Isolates failing checks (log and continue)
- Returns a structured LintReport
"""

import fnmatch
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import jsonschema
import yaml

from postlint.reporting.report import Finding, LintReport, Severity
from postlint.utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
DEFAULT_RULES_PATH = CONFIG_DIR / "lint_rules.yaml"
DEFAULT_SCHEMA_PATH = CONFIG_DIR / "lint_rules.schema.json"

SCOPE_ARTICLE = "article"
SCOPE_CORPUS = "corpus"
SCOPES = (SCOPE_ARTICLE, SCOPE_CORPUS)


@dataclass
class Violation:
    """
    What a check reports. Corpus checks set ``path``; article checks leave it
    empty and the engine fills in the article being checked.
    """

    message: str
    line: Optional[int] = None
    path: Optional[str] = None
    related: List[str] = field(default_factory=list)


@dataclass
class RuleConfig:
    """Configuration for a single lint rule."""

    name: str
    check: str
    severity: Severity
    enabled: bool = True
    params: Dict[str, Any] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)
    description: Optional[str] = None

    def excludes(self, path: str) -> bool:
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude)


@dataclass
class RegisteredCheck:
    name: str
    func: Callable[..., Iterable[Violation]]
    scope: str


class LintEngine:
    """
    Core lint engine that runs configured rules over a corpus.

    Features:
    - Loads rules from YAML configuration, validated against a JSON schema
    - Pluggable check registry (article-scoped and corpus-scoped)
    - Per-rule severity, parameters and path exclusions
    - Graceful error handling: a crashing check becomes a finding
    """

    def __init__(self, rules_config_path: Optional[str] = None, schema_path: Optional[str] = None):
        """
        Initialize lint engine and load rules.

        Args:
            rules_config_path: Path to the rules YAML file (default: packaged lint_rules.yaml)
            schema_path: Path to the JSON schema (default: packaged lint_rules.schema.json)

        Raises:
            FileNotFoundError: If a config file is not found
            ValueError: If the rules are invalid
        """
        self.rules: List[RuleConfig] = []
        self.checks: Dict[str, RegisteredCheck] = {}
        self.rules_config_path = str(rules_config_path or DEFAULT_RULES_PATH)
        self.schema_path = str(schema_path or DEFAULT_SCHEMA_PATH)
        self.load_rules(self.rules_config_path)

    def _load_schema(self) -> Dict[str, Any]:
        try:
            with open(self.schema_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            logger.error(f"Lint rules schema file not found: {self.schema_path}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in lint rules schema: {e}")
            raise ValueError(f"Invalid JSON in {self.schema_path}: {e}") from e

    def load_rules(self, config_path: str) -> None:
        """
        Load rules from YAML configuration file.

        Args:
            config_path: Path to the rules YAML file

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If YAML or rule schema is invalid
        """
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            logger.error(f"Lint rules configuration file not found: {config_path}")
            raise
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in lint rules configuration: {e}")
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not config or "rules" not in config:
            logger.warning(f"No rules found in configuration: {config_path}")
            return

        schema = self._load_schema()
        try:
            jsonschema.validate(instance=config, schema=schema)
        except jsonschema.ValidationError as e:
            logger.error(f"Lint rules configuration failed schema validation: {e.message}")
            raise ValueError(f"Lint rules configuration validation failed: {e.message}") from e
        except jsonschema.SchemaError as e:
            logger.error(f"Lint rules schema is invalid: {e.message}")
            raise ValueError(f"Lint rules schema is invalid: {e.message}") from e

        seen = set()
        for rule_idx, rule_data in enumerate(config.get("rules") or []):
            rule = self._parse_rule(rule_data)
            if rule.name in seen:
                raise ValueError(f"Duplicate rule name '{rule.name}' at rule [{rule_idx}]")
            seen.add(rule.name)
            self.rules.append(rule)
            logger.debug(f"Loaded rule [{rule_idx}]: {rule.name}")

        logger.info(f"Successfully loaded {len(self.rules)} rules from {config_path}")

    def _parse_rule(self, rule_data: Dict[str, Any]) -> RuleConfig:
        """
        Build a RuleConfig from one schema-valid YAML rule entry.

        Raises:
            ValueError: If the severity is unknown
        """
        return RuleConfig(
            name=rule_data["name"],
            check=rule_data["check"],
            severity=Severity.parse(rule_data.get("severity", "error")),
            enabled=rule_data.get("enabled", True),
            params=dict(rule_data.get("params") or {}),
            exclude=list(rule_data.get("exclude") or []),
            description=rule_data.get("description"),
        )

    def register_check(
        self, name: str, func: Callable[..., Iterable[Violation]], scope: str = SCOPE_ARTICLE
    ) -> None:
        """
        Register a check implementation.

        Args:
            name: Check name used by rules (e.g., "required_fields")
            func: ``func(article, context, **params)`` for article scope,
                ``func(corpus, context, **params)`` for corpus scope
            scope: "article" or "corpus"

        Raises:
            TypeError: If func is not callable
            ValueError: If scope is unknown
        """
        if not callable(func):
            raise TypeError(f"Check must be callable, got {type(func)}")
        if scope not in SCOPES:
            raise ValueError(f"Unknown check scope '{scope}'. Expected one of: {', '.join(SCOPES)}")

        self.checks[name] = RegisteredCheck(name=name, func=func, scope=scope)
        logger.debug(f"Registered {scope} check: {name}")

    def get_rule(self, name: str) -> RuleConfig:
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(f"Unknown rule '{name}'")

    def enable_rule(self, name: str) -> None:
        self.get_rule(name).enabled = True

    def disable_rule(self, name: str) -> None:
        self.get_rule(name).enabled = False

    def enabled_rules(self) -> List[RuleConfig]:
        return [rule for rule in self.rules if rule.enabled]

    def _finding(self, rule: RuleConfig, path: str, violation: Violation) -> Finding:
        return Finding(
            rule=rule.name,
            check=rule.check,
            severity=rule.severity,
            path=violation.path or path,
            message=violation.message,
            line=violation.line,
            related=list(violation.related),
        )

    def _crash_finding(self, rule: RuleConfig, path: str, error: Exception) -> Finding:
        return Finding(
            rule=rule.name,
            check=rule.check,
            severity=Severity.ERROR,
            path=path,
            message=f"Check '{rule.check}' failed: {error}",
        )

    def run_article_rule(self, rule: RuleConfig, check: RegisteredCheck, article, context) -> List[Finding]:
        """Run one article-scoped rule against one article."""
        if rule.excludes(article.label):
            return []
        try:
            return [
                self._finding(rule, article.label, violation)
                for violation in check.func(article, context, **rule.params)
            ]
        except Exception as e:
            logger.error(
                f"Error running check '{rule.check}' for rule '{rule.name}'",
                operation="run_article_rule",
                context={"rule_name": rule.name, "path": article.label},
                error=str(e),
            )
            return [self._crash_finding(rule, article.label, e)]

    def run_corpus_rule(self, rule: RuleConfig, check: RegisteredCheck, corpus, context) -> List[Finding]:
        """Run one corpus-scoped rule; findings on excluded paths are dropped."""
        try:
            findings = [
                self._finding(rule, "", violation)
                for violation in check.func(corpus, context, **rule.params)
            ]
        except Exception as e:
            logger.error(
                f"Error running check '{rule.check}' for rule '{rule.name}'",
                operation="run_corpus_rule",
                context={"rule_name": rule.name},
                error=str(e),
            )
            label = str(corpus.root) if getattr(corpus, "root", None) else "<corpus>"
            return [self._crash_finding(rule, label, e)]
        return [f for f in findings if not rule.excludes(f.path)]

    def lint(self, corpus, context: Optional[Dict[str, Any]] = None) -> LintReport:
        """
        Main entry point: run every enabled rule over the corpus.

        Args:
            corpus: Corpus of articles
            context: Context dict from build_context (link checker, settings, ...)

        Returns:
            LintReport with all findings
        """
        context = context or {}
        findings: List[Finding] = []
        rules_run: List[str] = []
        articles = list(corpus)

        logger.info(
            f"Linting {len(articles)} article(s) with {len(self.enabled_rules())} rule(s)",
            operation="lint_start",
            context={"articles": len(articles), "rules": len(self.enabled_rules())},
        )

        for rule in self.enabled_rules():
            rules_run.append(rule.name)
            check = self.checks.get(rule.check)

            if check is None:
                logger.error(
                    f"Unknown check '{rule.check}' in rule '{rule.name}'",
                    operation="lint",
                    context={"rule_name": rule.name, "check": rule.check},
                    error=f"No check registered for '{rule.check}'",
                )
                findings.append(
                    Finding(
                        rule=rule.name,
                        check=rule.check,
                        severity=Severity.ERROR,
                        path=self.rules_config_path,
                        message=f"No check registered for '{rule.check}'",
                    )
                )
                continue

            before = len(findings)
            if check.scope == SCOPE_CORPUS:
                findings.extend(self.run_corpus_rule(rule, check, corpus, context))
            else:
                for article in articles:
                    findings.extend(self.run_article_rule(rule, check, article, context))

            logger.debug(
                f"Rule '{rule.name}' produced {len(findings) - before} finding(s)",
                operation="lint_rule",
                context={"rule_name": rule.name, "findings": len(findings) - before},
            )

        report = LintReport(
            findings=findings,
            articles_checked=len(articles),
            rules_run=rules_run,
            root=str(corpus.root) if getattr(corpus, "root", None) else None,
        )
        counts = report.counts()
        logger.info(
            f"Lint complete: {counts['error']} error(s), {counts['warning']} warning(s)",
            operation="lint_complete",
            context={**counts, "articles": len(articles)},
        )
        return report
