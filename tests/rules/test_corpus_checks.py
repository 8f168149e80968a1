"""
Unit Tests for Corpus Checks

Coverage Targets:
- unique_content: byte-identical files
- near_duplicate_content: shingle similarity, thresholds
- duplicate_topic: same (service, exception) pair
- unique_slug: slug reuse across dates
- external_links_resolve: link checker integration
- End-to-end through LintEngine with the packaged rules
"""

from unittest.mock import Mock

import pytest

from postlint.corpus import Corpus
from postlint.links.checker import LinkStatus
from postlint.rules import LintEngine, build_context, register_checks
from postlint.rules.corpus_checks import (
    CORPUS_CHECKS,
    duplicate_topic,
    external_links_resolve,
    jaccard,
    near_duplicate_content,
    register_corpus_checks,
    shingles,
    unique_content,
    unique_slug,
)
from tests.post_factory import article_body, make_post

SNS_BODY = article_body(
    service="Amazon SNS",
    exception="ThrottlingException",
    package="software.amazon.awssdk.services.sns",
)


def _corpus(tmp_path):
    return Corpus.load([tmp_path], root=tmp_path)


def _messages(violations):
    return [v.message for v in violations]


class TestShingles:
    def test_windows(self):
        assert shingles("A b, c!", 2) == frozenset({("a", "b"), ("b", "c")})

    def test_short_text_is_single_shingle(self):
        assert shingles("a b", 5) == frozenset({("a", "b")})

    def test_empty_text(self):
        assert shingles("  --- ", 3) == frozenset()

    def test_jaccard(self):
        a = frozenset({1, 2, 3})
        b = frozenset({2, 3, 4})
        assert jaccard(a, b) == pytest.approx(0.5)
        assert jaccard(frozenset(), frozenset()) == 0.0


class TestUniqueContent:
    def test_identical_files_reported_against_first(self, tmp_path):
        make_post(tmp_path / "a")
        make_post(tmp_path / "b")
        make_post(tmp_path / "c")

        violations = list(unique_content(_corpus(tmp_path), {}))
        first = "a/2023-05-14-shield-resourcenotfoundexception.md"

        assert [v.path for v in violations] == [
            "b/2023-05-14-shield-resourcenotfoundexception.md",
            "c/2023-05-14-shield-resourcenotfoundexception.md",
        ]
        assert all(v.related == [first] for v in violations)
        assert violations[0].message == f"Identical content to {first}"

    def test_distinct_files(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(tmp_path, name="2023-05-15-b.md", date="2023-05-15 10:00:00 -0000")
        assert list(unique_content(_corpus(tmp_path), {})) == []


class TestNearDuplicateContent:
    def test_lightly_edited_copy_flagged(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(
            tmp_path,
            name="2023-05-20-b.md",
            body=article_body(notes="Check the console first."),
        )

        violations = list(near_duplicate_content(_corpus(tmp_path), {}))
        assert len(violations) == 1
        assert violations[0].path == "2023-05-20-b.md"
        assert violations[0].related == ["2023-05-14-a.md"]
        assert "similar to 2023-05-14-a.md" in violations[0].message

    def test_threshold_param(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(tmp_path, name="2023-05-20-b.md", body=article_body(notes="Check the console first."))
        assert list(near_duplicate_content(_corpus(tmp_path), {}, threshold=0.95)) == []

    def test_different_articles_not_flagged(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(tmp_path, name="2023-05-20-b.md", body=SNS_BODY)
        assert list(near_duplicate_content(_corpus(tmp_path), {})) == []

    def test_identical_files_left_to_unique_content(self, tmp_path):
        make_post(tmp_path / "a")
        make_post(tmp_path / "b")
        assert list(near_duplicate_content(_corpus(tmp_path), {})) == []

    def test_empty_bodies_skipped(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md", body="\n")
        make_post(tmp_path, name="2023-05-20-b.md", body="\n\n")
        assert list(near_duplicate_content(_corpus(tmp_path), {})) == []


class TestDuplicateTopic:
    def test_same_service_and_exception(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(
            tmp_path,
            name="2023-06-01-b.md",
            title="Fixing ResourceNotFoundException errors",
            categories=["AWS", "aws shield"],
            body=SNS_BODY,
        )

        violations = list(duplicate_topic(_corpus(tmp_path), {}))
        assert _messages(violations) == [
            "ResourceNotFoundException for aws shield is already covered by 2023-05-14-a.md"
        ]
        assert violations[0].path == "2023-06-01-b.md"

    def test_same_exception_other_service(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md")
        make_post(tmp_path, name="2023-06-01-b.md", categories=["AWS", "Amazon SNS"], body=SNS_BODY)
        assert list(duplicate_topic(_corpus(tmp_path), {})) == []

    def test_articles_without_service_ignored(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-a.md", categories=["AWS"])
        make_post(tmp_path, name="2023-06-01-b.md", categories=["AWS"], body=SNS_BODY)
        assert list(duplicate_topic(_corpus(tmp_path), {})) == []


class TestUniqueSlug:
    def test_slug_reused_across_dates(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-shield-errors.md")
        make_post(tmp_path, name="2024-01-02-Shield-Errors.md", body=SNS_BODY)

        violations = list(unique_slug(_corpus(tmp_path), {}))
        assert _messages(violations) == [
            "Slug 'Shield-Errors' is already used by 2023-05-14-shield-errors.md"
        ]
        assert violations[0].path == "2024-01-02-Shield-Errors.md"

    def test_case_sensitive(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-shield-errors.md")
        make_post(tmp_path, name="2024-01-02-Shield-Errors.md", body=SNS_BODY)
        assert list(unique_slug(_corpus(tmp_path), {}, case_insensitive=False)) == []

    def test_unconventional_names_ignored(self, tmp_path):
        make_post(tmp_path / "a", name="notes.md")
        make_post(tmp_path / "b", name="notes.md", body=SNS_BODY)
        assert list(unique_slug(_corpus(tmp_path), {})) == []


class TestExternalLinksResolve:
    DOCS_URL = "https://docs.aws.amazon.com/waf/latest/developerguide/shield-chapter.html"

    def test_broken_link_reported_per_occurrence(self, tmp_path):
        path = make_post(tmp_path, name="2023-05-14-a.md")
        make_post(tmp_path, name="2023-05-20-b.md", body=article_body(notes="More text here."))
        checker = Mock()
        checker.check.return_value = LinkStatus(self.DOCS_URL, ok=False, status_code=404)

        violations = list(external_links_resolve(_corpus(tmp_path), {"link_checker": checker}))

        checker.check.assert_called_once_with(self.DOCS_URL)
        assert [v.path for v in violations] == ["2023-05-14-a.md", "2023-05-20-b.md"]
        assert violations[0].message == f"Broken link {self.DOCS_URL} (HTTP 404)"
        lines = path.read_text(encoding="utf-8").splitlines()
        assert self.DOCS_URL in lines[violations[0].line - 1]

    def test_working_links_pass(self, tmp_path):
        make_post(tmp_path)
        checker = Mock()
        checker.check.side_effect = lambda url: LinkStatus(url, ok=True, status_code=200)
        assert list(external_links_resolve(_corpus(tmp_path), {"link_checker": checker})) == []

    def test_connection_error_described(self, tmp_path):
        make_post(tmp_path)
        checker = Mock()
        checker.check.return_value = LinkStatus(self.DOCS_URL, ok=False, error="ConnectionError: refused")
        violations = list(external_links_resolve(_corpus(tmp_path), {"link_checker": checker}))
        assert violations[0].message.endswith("(ConnectionError: refused)")

    def test_ignore_patterns(self, tmp_path):
        body = "See [local](http://localhost:4000/x) and [relative](/about/).\n"
        make_post(tmp_path, body=body)
        checker = Mock()
        violations = list(
            external_links_resolve(_corpus(tmp_path), {"link_checker": checker}, ignore=[r"^https?://localhost"])
        )
        assert violations == []
        checker.check.assert_not_called()

    def test_without_checker_skips(self, tmp_path):
        make_post(tmp_path)
        assert list(external_links_resolve(_corpus(tmp_path), {})) == []


class TestRegisterCorpusChecks:
    def test_registers_all_checks(self):
        engine = Mock()
        register_corpus_checks(engine)
        registered = {call.args[0] for call in engine.register_check.call_args_list}
        assert registered == set(CORPUS_CHECKS)
        assert all(call.kwargs["scope"] == "corpus" for call in engine.register_check.call_args_list)


class TestPackagedRules:
    """Full lint runs with the packaged rule set."""

    def _engine(self):
        engine = LintEngine()
        register_checks(engine)
        return engine

    def test_clean_corpus(self, tmp_path):
        make_post(tmp_path, name="2023-05-14-shield-resourcenotfoundexception.md")
        make_post(
            tmp_path,
            name="2023-05-20-sns-throttlingexception.md",
            date="2023-05-20 09:30:00 +0900",
            title="Understanding ThrottlingException in Amazon SNS",
            categories=["AWS", "Amazon SNS"],
            tags=["aws", "amazon-sns", "software.amazon.awssdk.services.sns"],
            body=SNS_BODY,
        )

        report = self._engine().lint(_corpus(tmp_path), build_context())
        assert report.findings == []
        assert report.articles_checked == 2
        assert "external-links-resolve" not in report.rules_run

    def test_duplicate_file_is_error(self, tmp_path):
        make_post(tmp_path / "aws")
        make_post(tmp_path / "old")

        report = self._engine().lint(_corpus(tmp_path), build_context())
        rules = {f.rule for f in report.findings}
        assert "unique-content" in rules
        assert "duplicate-topic" in rules
        assert "unique-slug" in rules
        assert report.exit_code() == 1
