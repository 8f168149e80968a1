"""
postlint command line interface.

Usage examples:
    postlint lint _posts --format text --fail-on warning
    postlint lint --check-links --output-dir build/reports --notify-slack
    postlint new --title "Handling ThrottlingException in Amazon SNS" \\
        --service "Amazon SNS" --exception ThrottlingException \\
        --java-package software.amazon.awssdk.services.sns
    postlint rules

Exit codes:
    0  no finding at or above the --fail-on severity
    1  findings at or above the threshold (lint), or the post already exists (new)
    2  configuration or usage error
"""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from postlint import __version__
from postlint.config.settings import ConfigurationError, Settings, setup_logging_redaction
from postlint.corpus import Corpus
from postlint.links.checker import LinkChecker
from postlint.notifications.slack_service import SlackWebhookClient
from postlint.reporting.report import LintReport, Severity
from postlint.reporting.writer import SUPPORTED_FORMATS, ReportWriter
from postlint.rules import LintEngine, build_context, register_checks
from postlint.scaffold.article import ArticleExistsError, ArticleSpec, create_article
from postlint.storage.exceptions import ReportStorageError
from postlint.storage.s3_publisher import ReportPublisher
from postlint.templates.loader import TemplateLoader
from postlint.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_USAGE = 2

LINK_CHECK = "external_links_resolve"
SEVERITY_CHOICES = [s.value for s in Severity]
LOG_LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="postlint",
        description="Lint and scaffold the AWS SDK exception articles of a Jekyll _posts corpus.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        help="YAML settings file (default: .postlint.yml or POSTLINT_CONFIG_FILE).",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVEL_CHOICES,
        help="Logging level for stderr JSON logs (default: POSTLINT_LOG_LEVEL or WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    lint = subparsers.add_parser("lint", help="Lint posts and print a report.")
    lint.add_argument("paths", nargs="*", help="Post files or directories (default: POSTLINT_POSTS_DIR).")
    lint.add_argument("--rules", help="Lint rules YAML file (default: packaged rules).")
    lint.add_argument(
        "--format",
        choices=SUPPORTED_FORMATS,
        default="text",
        help="Report format printed to stdout (default: text).",
    )
    lint.add_argument("--output-dir", help="Also write JSON, Markdown and text reports here.")
    lint.add_argument(
        "--fail-on",
        choices=SEVERITY_CHOICES,
        help="Lowest severity that makes the run fail (default: POSTLINT_FAIL_ON or error).",
    )
    lint.add_argument(
        "--check-links",
        action="store_true",
        help="Enable external link checking (network access).",
    )
    lint.add_argument("--enable", action="append", default=[], metavar="RULE", help="Enable a rule by name.")
    lint.add_argument("--disable", action="append", default=[], metavar="RULE", help="Disable a rule by name.")
    lint.add_argument("--notify-slack", action="store_true", help="Send a summary to the Slack webhook.")
    lint.add_argument("--publish-s3", action="store_true", help="Upload the report to POSTLINT_REPORT_BUCKET.")
    lint.set_defaults(handler=cmd_lint)

    new = subparsers.add_parser("new", help="Scaffold a new article.")
    new.add_argument("--title", required=True, help="Article title; must name the exception.")
    new.add_argument("--service", required=True, help='AWS service name, e.g. "AWS Shield".')
    new.add_argument("--exception", required=True, help="Exception class, e.g. ResourceNotFoundException.")
    new.add_argument(
        "--java-package",
        required=True,
        help="SDK package, e.g. software.amazon.awssdk.services.shield.",
    )
    new.add_argument("--date", help="ISO date/time (default: now in POSTLINT_TIMEZONE).")
    new.add_argument("--posts-dir", help="Destination directory (default: <POSTLINT_POSTS_DIR>/aws).")
    new.add_argument("--slug", help="Filename slug (default: slugified title).")
    new.add_argument("--docs-url", help="Service documentation link for the References section.")
    new.add_argument("--tag", action="append", default=[], help="Extra tag (repeatable).")
    new.add_argument("--no-mermaid", action="store_true", help="Set mermaid: false.")
    new.add_argument("--no-toc", action="store_true", help="Set toc: false.")
    new.add_argument("--force", action="store_true", help="Overwrite an existing post.")
    new.set_defaults(handler=cmd_new)

    rules = subparsers.add_parser("rules", help="Print the configured lint rules.")
    rules.add_argument("--rules", help="Lint rules YAML file (default: packaged rules).")
    rules.set_defaults(handler=cmd_rules)

    return parser


def build_engine(rules_file: Optional[str] = None) -> LintEngine:
    """Load the rules file and register every built-in check."""
    engine = LintEngine(rules_file)
    register_checks(engine)
    return engine


def run_lint(
    paths: Sequence[str],
    engine: LintEngine,
    settings: Optional[Settings] = None,
    check_links: bool = False,
    link_checker: Optional[LinkChecker] = None,
    root: Optional[Path] = None,
) -> LintReport:
    """
    Load the corpus under ``paths`` and lint it.

    Args:
        paths: Post files or directories
        engine: Engine with checks registered
        settings: Settings (link checker timeouts, timezone)
        check_links: Build a LinkChecker for the enabled external_links_resolve rules
        link_checker: Checker to use instead of building one
        root: Directory findings are reported relative to (default: cwd)
    """
    start_time = time.time()
    corpus = Corpus.load(paths, root=root)

    if check_links and link_checker is None:
        link_checker = LinkChecker(
            timeout=settings.link_timeout if settings else 10,
            max_retries=settings.link_max_retries if settings else 3,
        )

    context = build_context(settings, link_checker if check_links else None, root=corpus.root)
    report = engine.lint(corpus, context)

    logger.info(
        "Lint run finished",
        operation="run_lint",
        context={"articles": len(corpus), "findings": len(report.findings)},
        duration_ms=(time.time() - start_time) * 1000,
    )
    return report


def render_report(report: LintReport, fmt: str, loader: TemplateLoader) -> str:
    if fmt == "json":
        return report.to_json()
    if fmt == "markdown":
        return report.to_markdown(loader)
    return report.to_text()


def print_rules_summary(engine: LintEngine) -> None:
    """Print summary of the loaded rules configuration."""
    print("=" * 80)
    print("LINT RULES SUMMARY")
    print("=" * 80)

    total_rules = len(engine.rules)
    enabled_rules = len(engine.enabled_rules())

    print(f"\nRules file: {engine.rules_config_path}")
    print(f"Total Rules: {total_rules}")
    print(f"  - Enabled:  {enabled_rules}")
    print(f"  - Disabled: {total_rules - enabled_rules}")

    print("\n" + "-" * 80)
    print("RULES DETAIL")
    print("-" * 80)

    for idx, rule in enumerate(engine.rules, 1):
        status = "ENABLED" if rule.enabled else "DISABLED"
        registered = engine.checks.get(rule.check)
        scope = registered.scope if registered else "UNREGISTERED"

        print(f"\n[{idx}] {rule.name} [{status}] {rule.severity.value}")
        print(f"    Check: {rule.check} ({scope})")
        if rule.description:
            print(f"    Description: {rule.description}")
        if rule.params:
            params_str = ", ".join(f"{k}={v}" for k, v in rule.params.items())
            print(f"    Params: {params_str}")
        if rule.exclude:
            print(f"    Exclude: {', '.join(rule.exclude)}")

    unused = sorted(set(engine.checks) - {rule.check for rule in engine.rules})
    if unused:
        print("\n" + "-" * 80)
        print(f"Registered checks not used by any rule ({len(unused)}):")
        for name in unused:
            print(f"  - {name}")

    print("\n" + "=" * 80)


def _error(message: str) -> int:
    print(f"postlint: error: {message}", file=sys.stderr)
    return EXIT_USAGE


def cmd_lint(args: argparse.Namespace, settings: Settings) -> int:
    fail_on = Severity.parse(args.fail_on) if args.fail_on else settings.fail_on
    if args.publish_s3 and not settings.is_report_upload_configured():
        raise ConfigurationError("--publish-s3 needs POSTLINT_REPORT_BUCKET")

    loader = TemplateLoader(settings.templates_file)
    engine = build_engine(args.rules or settings.rules_file)
    # --enable/--disable are applied last so they override --check-links
    if args.check_links or settings.check_links:
        for rule in engine.rules:
            if rule.check == LINK_CHECK:
                rule.enabled = True
    for name in args.enable:
        engine.enable_rule(name)
    for name in args.disable:
        engine.disable_rule(name)

    check_links = any(rule.check == LINK_CHECK for rule in engine.enabled_rules())
    report = run_lint(
        args.paths or [settings.posts_dir],
        engine,
        settings=settings,
        check_links=check_links,
    )
    print(render_report(report, args.format, loader))

    output_dir = args.output_dir or settings.report_dir
    if output_dir:
        ReportWriter(output_dir, loader).write(report, SUPPORTED_FORMATS)

    if args.notify_slack or settings.is_slack_enabled():
        SlackWebhookClient(settings.slack_webhook_url).send_lint_summary(report, loader)

    if args.publish_s3:
        publisher = ReportPublisher(
            settings.report_bucket,
            prefix=settings.report_prefix,
            region_name=settings.aws_region,
        )
        try:
            keys = publisher.publish(report, loader)
        except ReportStorageError as e:
            return _error(f"report upload failed: {e}")
        for key in keys:
            print(f"Uploaded s3://{settings.report_bucket}/{key}", file=sys.stderr)

    return report.exit_code(fail_on)


def cmd_new(args: argparse.Namespace, settings: Settings) -> int:
    published: Optional[datetime] = None
    if args.date:
        try:
            published = datetime.fromisoformat(args.date)
        except ValueError:
            return _error(f"invalid --date '{args.date}', expected ISO format")

    spec = ArticleSpec(
        title=args.title,
        service=args.service,
        exception=args.exception,
        java_package=args.java_package,
        date=published,
        mermaid=not args.no_mermaid,
        toc=not args.no_toc,
        extra_tags=list(args.tag),
        docs_url=args.docs_url,
        slug=args.slug,
    )
    loader = TemplateLoader(settings.templates_file)
    posts_dir = args.posts_dir or settings.new_article_dir

    try:
        path = create_article(
            spec, posts_dir, loader, overwrite=args.force, timezone=settings.timezone
        )
    except ArticleExistsError as e:
        print(f"postlint: {e} (use --force to overwrite)", file=sys.stderr)
        return EXIT_FINDINGS

    print(path)
    return EXIT_OK


def cmd_rules(args: argparse.Namespace, settings: Settings) -> int:
    print_rules_summary(build_engine(args.rules or settings.rules_file))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings(config_file=args.config)
        configure_logging(args.log_level or settings.log_level)
        setup_logging_redaction(settings)
        return args.handler(args, settings)
    except ConfigurationError as e:
        logger.error("Configuration error", operation=args.command, error=str(e))
        return _error(str(e))
    except FileNotFoundError as e:
        logger.error("File not found", operation=args.command, error=str(e))
        return _error(str(e))
    except KeyError as e:
        return _error(str(e.args[0]) if e.args else str(e))
    except ValueError as e:
        logger.error("Validation error", operation=args.command, error=str(e))
        return _error(str(e))


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
