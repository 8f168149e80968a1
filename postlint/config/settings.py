"""
Configuration loader for postlint

Resolves settings from built-in defaults, an optional YAML file
(``.postlint.yml`` or ``POSTLINT_CONFIG_FILE``) and environment variables,
in increasing order of precedence. Also provides the logging filter that
keeps the Slack webhook secret out of log output.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import pytz
import yaml

from postlint.reporting.report import Severity
from postlint.utils.logger import ROOT_LOGGER_NAME

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".postlint.yml"

# setting name -> environment variable
ENV_VARS = {
    "posts_dir": "POSTLINT_POSTS_DIR",
    "rules_file": "POSTLINT_RULES_FILE",
    "templates_file": "POSTLINT_TEMPLATES_FILE",
    "report_dir": "POSTLINT_REPORT_DIR",
    "fail_on": "POSTLINT_FAIL_ON",
    "check_links": "POSTLINT_CHECK_LINKS",
    "link_timeout": "POSTLINT_LINK_TIMEOUT",
    "link_max_retries": "POSTLINT_LINK_MAX_RETRIES",
    "timezone": "POSTLINT_TIMEZONE",
    "log_level": "POSTLINT_LOG_LEVEL",
    "slack_enabled": "SLACK_ENABLED",
    "slack_webhook_url": "SLACK_WEBHOOK_URL",
    "report_bucket": "POSTLINT_REPORT_BUCKET",
    "report_prefix": "POSTLINT_REPORT_PREFIX",
    "aws_region": "AWS_REGION",
}

DEFAULTS: Dict[str, Any] = {
    "posts_dir": "_posts",
    "rules_file": None,
    "templates_file": None,
    "report_dir": None,
    "fail_on": "error",
    "check_links": False,
    "link_timeout": 10,
    "link_max_retries": 3,
    "timezone": "UTC",
    "log_level": "WARNING",
    "slack_enabled": False,
    "slack_webhook_url": None,
    "report_bucket": None,
    "report_prefix": "postlint",
    "aws_region": "us-east-1",
}


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        """
        Initialize filter with secrets to redact.

        Args:
            secrets: Dictionary of secrets to redact (values will be masked)
        """
        super().__init__()
        self.secrets = secrets or {}
        self.redacted_values: set = set()
        if self.secrets:
            self._extract_secret_values(self.secrets)

    def _extract_secret_values(self, obj: Any, max_depth: int = 5) -> None:
        """Recursively extract all secret values from nested structures."""
        if max_depth <= 0:
            return

        if isinstance(obj, dict):
            for value in obj.values():
                self._extract_secret_values(value, max_depth - 1)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                self._extract_secret_values(item, max_depth - 1)
        elif isinstance(obj, str) and len(obj) > 3:
            self.redacted_values.add(obj)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        record.msg = self._redact_string(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        return True

    def _redact_string(self, text: str) -> str:
        """Redact all secret values from string."""
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    raise ConfigurationError(f"{name} must be true or false, got {value!r}")


def _as_positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {number}")
    return number


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Settings:
    """
    Resolved postlint configuration.

    Attributes mirror the keys of DEFAULTS; ``fail_on`` is a Severity and
    ``config_file`` is the YAML file that was read, if any.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        config_file: Optional[str] = None,
        cwd: Optional[str] = None,
    ):
        """
        Initialize Settings.

        Args:
            environ: Environment mapping (default: os.environ)
            config_file: Explicit YAML config path (overrides POSTLINT_CONFIG_FILE)
            cwd: Directory searched for .postlint.yml (default: current directory)

        Raises:
            ConfigurationError: If the config file or any value is invalid
        """
        self.environ = dict(os.environ if environ is None else environ)
        self.config_file = self._locate_config_file(config_file, cwd)

        values = dict(DEFAULTS)
        if self.config_file is not None:
            values.update(self._load_config_file(self.config_file))
        for key, var in ENV_VARS.items():
            if var in self.environ:
                values[key] = self.environ[var]

        self._apply(values)
        self._validate()

    def _locate_config_file(self, explicit: Optional[str], cwd: Optional[str]) -> Optional[Path]:
        path = explicit or self.environ.get("POSTLINT_CONFIG_FILE")
        if path:
            candidate = Path(path)
            if not candidate.is_file():
                raise ConfigurationError(f"Config file not found: {candidate}")
            return candidate

        candidate = Path(cwd or os.getcwd()) / DEFAULT_CONFIG_FILENAME
        return candidate if candidate.is_file() else None

    @staticmethod
    def _load_config_file(path: Path) -> Dict[str, Any]:
        """
        Load settings from a YAML file.

        Raises:
            ConfigurationError: If the file is not a YAML mapping of known keys
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigurationError(f"{path} must contain a mapping, got {type(content).__name__}")

        unknown = sorted(str(k) for k in content if k not in DEFAULTS)
        if unknown:
            raise ConfigurationError(f"Unknown setting(s) in {path}: {', '.join(unknown)}")

        logger.debug(f"Loaded settings from {path}")
        return content

    def _apply(self, values: Dict[str, Any]) -> None:
        self.posts_dir = str(values["posts_dir"])
        self.rules_file = _as_optional_str(values["rules_file"])
        self.templates_file = _as_optional_str(values["templates_file"])
        self.report_dir = _as_optional_str(values["report_dir"])
        self.timezone = str(values["timezone"]).strip()
        self.log_level = str(values["log_level"]).strip().upper()
        self.slack_webhook_url = _as_optional_str(values["slack_webhook_url"])
        self.report_bucket = _as_optional_str(values["report_bucket"])
        self.report_prefix = str(values["report_prefix"]).strip("/") or "postlint"
        self.aws_region = str(values["aws_region"])

        self.check_links = _as_bool("check_links", values["check_links"])
        self.slack_enabled = _as_bool("slack_enabled", values["slack_enabled"])
        self.link_timeout = _as_positive_int("link_timeout", values["link_timeout"])
        self.link_max_retries = _as_positive_int("link_max_retries", values["link_max_retries"])

        try:
            self.fail_on = Severity.parse(values["fail_on"])
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def _validate(self) -> None:
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise ConfigurationError(f"Unknown timezone: {self.timezone}") from None

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

        if self.slack_enabled and not self.slack_webhook_url:
            raise ConfigurationError("SLACK_ENABLED is true but SLACK_WEBHOOK_URL is not set")

    def is_slack_enabled(self) -> bool:
        """Slack summaries are sent only when explicitly enabled."""
        return self.slack_enabled

    def is_report_upload_configured(self) -> bool:
        return self.report_bucket is not None

    @property
    def new_article_dir(self) -> Path:
        """Default destination of scaffolded articles."""
        return Path(self.posts_dir) / "aws"

    def secrets(self) -> Dict[str, Any]:
        """Values that must never appear in logs."""
        return {"slack_webhook_url": self.slack_webhook_url} if self.slack_webhook_url else {}


def setup_logging_redaction(settings: Settings) -> SecretRedactionFilter:
    """
    Attach a SecretRedactionFilter for the settings' secrets to every handler
    of the postlint root logger. A previously installed filter is replaced.
    """
    redaction_filter = SecretRedactionFilter(settings.secrets())
    for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
        for existing in [f for f in handler.filters if isinstance(f, SecretRedactionFilter)]:
            handler.removeFilter(existing)
        handler.addFilter(redaction_filter)
    return redaction_filter
