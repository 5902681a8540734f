from decimal import Decimal
from itertools import count
from unittest.mock import MagicMock

import pytest
from sqlmodel import Session, select

from hookreview.core.exceptions import (
    RejectionError,
    TransientTransportError,
    UnsupportedPlatformError,
)
from hookreview.integrations.github.github import GitHub
from hookreview.integrations.registry import AdapterRegistry
from hookreview.models.code_review import (
    AIReviewResult,
    ChangeType,
    ChangedFile,
    ReviewComment,
    Severity,
)
from hookreview.models.hot_keyword import HotKeyword
from hookreview.models.platform import Platform
from hookreview.models.repository import PlatformSettings, Repository
from hookreview.models.review_record import (
    ReviewFileLog,
    ReviewRecord,
    ReviewStatus,
    ReviewUsageLog,
)
from hookreview.models.rule import RepositoryRuleMapping, Rule, RuleStatistics
from hookreview.services.review_orchestrator import (
    NO_ISSUES_SUMMARY,
    REPOSITORY_NOT_CONFIGURED,
    ReviewOrchestrator,
    estimate_cost,
    format_comment,
)
from hookreview.tests.unit.helpers import make_event


def _add(engine, *rows):
    with Session(engine, expire_on_commit=False) as session:
        for row in rows:
            session.add(row)
            session.commit()
            session.refresh(row)
    return rows


def _all(engine, model):
    with Session(engine) as session:
        return session.exec(select(model).order_by(model.id)).all()


@pytest.fixture
def repository(engine):
    repo = Repository(
        platform=Platform.GITHUB,
        platform_repository_id="42",
        name="widgets",
        full_name="octo/widgets",
    )
    _add(engine, repo, PlatformSettings(platform=Platform.GITHUB, access_token="gh-token"))
    return repo


@pytest.fixture
def rule(engine, repository):
    rule = Rule(name="General", review_endpoint="https://dify.test/v1/chat", review_key="k")
    _add(engine, rule)
    _add(engine, RepositoryRuleMapping(repository_id=repository.id, rule_id=rule.id))
    return rule


@pytest.fixture
def adapter():
    adapter = MagicMock(spec=GitHub)
    adapter.platform = Platform.GITHUB
    return adapter


@pytest.fixture
def review_client():
    return MagicMock()


@pytest.fixture
def orchestrator(store, adapter, review_client):
    return ReviewOrchestrator(
        store=store,
        registry=AdapterRegistry([adapter]),
        review_client=review_client,
        cost_per_1000_tokens=Decimal("0.002"),
        require_signature=False,
    )


def _clean(tokens=750):
    return AIReviewResult(success=True, has_issues=False, total_tokens=tokens)


def _issues(*comments, tokens=100):
    return AIReviewResult(
        success=True,
        has_issues=True,
        comments=list(comments),
        total_tokens=tokens,
        request_id="req-1",
    )


def test_format_comment():
    comment = ReviewComment(
        text="Avoid eval",
        severity=Severity.ERROR,
        category="Security",
        source_rule_name="General",
    )

    assert format_comment(comment) == "🔴 [Security] Avoid eval (Rule: General)"
    assert format_comment(ReviewComment(text="Nit")) == "🔵 Nit"


def test_estimate_cost():
    assert estimate_cost(1500, Decimal("0.002")) == Decimal("0.003")
    assert estimate_cost(0, "0.002") == Decimal("0")


def test_clean_review_posts_one_summary(engine, orchestrator, adapter, review_client, rule):
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="src/a.py", patch="+a = 1"),
        ChangedFile(path="src/b.py", patch="+b = 2"),
    ]
    review_client.review.side_effect = [_clean(), _clean()]

    result = orchestrator.process(make_event())

    assert result.success
    assert result.files_processed == 2
    assert result.comments_generated == 0
    assert result.tokens_consumed == 1500
    assert result.estimated_cost == Decimal("0.003")
    adapter.post_inline_comment.assert_not_called()
    adapter.post_summary_comment.assert_called_once()
    assert adapter.post_summary_comment.call_args.args[2] == NO_ISSUES_SUMMARY

    record = orchestrator.get_review_status(result.review_record_id)
    assert record.status == ReviewStatus.COMPLETED
    assert record.started_at is not None
    assert record.completed_at is not None
    assert record.tokens_consumed == 1500
    assert record.estimated_cost == Decimal("0.003")
    assert record.author == "octocat"

    assert len(_all(engine, ReviewFileLog)) == 2
    assert len(_all(engine, ReviewUsageLog)) == 2
    [stats] = _all(engine, RuleStatistics)
    assert stats.trigger_count == 2
    assert stats.passed_count == 2
    assert stats.total_tokens_consumed == 1500


def test_comments_are_published_inline(engine, orchestrator, adapter, review_client, rule):
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="src/a.py", patch="+eval(x)"),
    ]
    review_client.review.return_value = _issues(
        ReviewComment(line_number=3, text="Avoid eval", severity=Severity.ERROR),
        ReviewComment(text="Add a test"),
    )

    result = orchestrator.process(make_event())

    assert result.success
    assert result.comments_generated == 2
    adapter.post_summary_comment.assert_not_called()
    first, second = adapter.post_inline_comment.call_args_list
    assert first.args[:5] == (
        "octo/widgets", 7, "src/a.py", 3, "🔴 Avoid eval (Rule: General)"
    )
    assert first.kwargs["head_sha"] == "abc123"
    assert second.args[3] == 1

    [file_log] = _all(engine, ReviewFileLog)
    assert file_log.has_comments
    assert file_log.comments[0]["source_rule_name"] == "General"
    [stats] = _all(engine, RuleStatistics)
    assert stats.comment_generated_count == 1


def test_keywords_comment_without_rules(engine, orchestrator, adapter, review_client, repository):
    [keyword] = _add(
        engine,
        HotKeyword(keyword="password", category="Security", severity="critical",
                   alert_message="Credential in code"),
    )
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="settings.py", patch="+password = 'x'\n+password = 'y'"),
    ]

    result = orchestrator.process(make_event())

    assert result.success
    assert result.comments_generated == 1
    review_client.review.assert_not_called()
    body = adapter.post_inline_comment.call_args.args[4]
    assert body == "🔴 [Security] ⚠️ **Security Alert**: Credential in code"
    [stored] = _all(engine, HotKeyword)
    assert stored.trigger_count == 1
    [file_log] = _all(engine, ReviewFileLog)
    assert file_log.matched_keywords == ["password"]


def test_deleted_files_are_skipped(orchestrator, adapter, review_client, rule):
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="old.py", change_type=ChangeType.DELETED, patch="-x"),
    ]

    result = orchestrator.process(make_event())

    assert result.success
    assert result.files_processed == 0
    review_client.review.assert_not_called()
    adapter.post_summary_comment.assert_called_once()


def test_transient_failure_fails_record_but_keeps_earlier_comments(
    engine, orchestrator, adapter, review_client, rule
):
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="src/a.py", patch="+eval(x)"),
        ChangedFile(path="src/b.py", patch="+b = 2"),
    ]
    review_client.review.side_effect = [
        _issues(ReviewComment(line_number=1, text="Avoid eval")),
        TransientTransportError("POST https://dify.test returned HTTP 503", status_code=503),
    ]

    result = orchestrator.process(make_event())

    assert not result.success
    assert "503" in result.error_message
    assert adapter.post_inline_comment.call_count == 1
    adapter.post_summary_comment.assert_not_called()

    record = orchestrator.get_review_status(result.review_record_id)
    assert record.status == ReviewStatus.FAILED
    assert "503" in record.error_message
    assert record.completed_at is not None

    assert [log.file_path for log in _all(engine, ReviewFileLog)] == ["src/a.py"]
    usage = _all(engine, ReviewUsageLog)
    assert [u.is_success for u in usage] == [True, False]


def test_missing_credentials_fail_the_record(engine, store, adapter, review_client):
    _add(
        engine,
        Repository(platform=Platform.GITHUB, platform_repository_id="42",
                   name="widgets", full_name="octo/widgets"),
    )
    orchestrator = ReviewOrchestrator(store, AdapterRegistry([adapter]), review_client)

    result = orchestrator.process(make_event())

    assert not result.success
    assert result.error_message == "Platform settings not configured for github"
    record = orchestrator.get_review_status(result.review_record_id)
    assert record.status == ReviewStatus.FAILED
    adapter.get_pull_request_files.assert_not_called()


def test_unknown_repository_is_not_persisted(engine, orchestrator, adapter):
    result = orchestrator.process(make_event(remote_id="999", full_name="someone/else"))

    assert not result.success
    assert result.review_record_id is None
    assert result.error_message == REPOSITORY_NOT_CONFIGURED
    assert _all(engine, ReviewRecord) == []
    adapter.get_pull_request_files.assert_not_called()


def test_repository_found_by_full_name(orchestrator, adapter, review_client, rule):
    adapter.get_pull_request_files.return_value = []

    result = orchestrator.process(make_event(remote_id=""))

    assert result.success


def test_inactive_repository_is_not_reviewed(engine, orchestrator, repository):
    repository.is_active = False
    _add(engine, repository)

    result = orchestrator.process(make_event())

    assert not result.success
    assert result.error_message == REPOSITORY_NOT_CONFIGURED


def test_event_without_pull_request_is_rejected(engine, orchestrator, repository):
    with pytest.raises(RejectionError):
        orchestrator.process(make_event(with_pull_request=False))

    assert _all(engine, ReviewRecord) == []


def test_unsupported_platform_is_rejected(orchestrator, repository):
    with pytest.raises(UnsupportedPlatformError):
        orchestrator.process(make_event(platform=Platform.GITLAB))


def test_deadline_fails_the_record(store, adapter, review_client, rule):
    ticks = count()
    orchestrator = ReviewOrchestrator(
        store,
        AdapterRegistry([adapter]),
        review_client,
        clock=lambda: next(ticks) * 100.0,
    )
    adapter.get_pull_request_files.return_value = [
        ChangedFile(path="src/a.py", patch="+a"),
        ChangedFile(path="src/b.py", patch="+b"),
    ]
    review_client.review.return_value = _clean()

    result = orchestrator.process(make_event(), deadline=50.0)

    assert not result.success
    assert result.files_processed == 1
    assert "time limit" in result.error_message
    record = orchestrator.get_review_status(result.review_record_id)
    assert record.status == ReviewStatus.FAILED


class TestVerifySignature:
    def test_no_secret_accepts(self, orchestrator, adapter, repository):
        assert orchestrator.verify_signature(make_event(), b"{}", None)
        adapter.validate_signature.assert_not_called()

    def test_repository_secret_is_checked(self, engine, orchestrator, adapter, repository):
        repository.webhook_secret = "repo-secret"
        _add(engine, repository)
        adapter.validate_signature.return_value = False

        assert not orchestrator.verify_signature(make_event(), b"{}", "sha256=00")
        adapter.validate_signature.assert_called_once_with(b"{}", "sha256=00", "repo-secret")

    def test_platform_secret_is_the_fallback(self, engine, store, adapter, review_client):
        _add(
            engine,
            PlatformSettings(platform=Platform.GITHUB, access_token="t",
                             webhook_secret="platform-secret"),
        )
        orchestrator = ReviewOrchestrator(store, AdapterRegistry([adapter]), review_client)
        adapter.validate_signature.return_value = True

        assert orchestrator.verify_signature(make_event(), b"{}", "sha256=ab")
        assert adapter.validate_signature.call_args.args[2] == "platform-secret"

    def test_missing_signature_when_required(self, engine, store, adapter, review_client, repository):
        repository.webhook_secret = "repo-secret"
        _add(engine, repository)
        strict = ReviewOrchestrator(
            store, AdapterRegistry([adapter]), review_client, require_signature=True
        )
        lenient = ReviewOrchestrator(
            store, AdapterRegistry([adapter]), review_client, require_signature=False
        )

        assert not strict.verify_signature(make_event(), b"{}", None)
        assert lenient.verify_signature(make_event(), b"{}", None)
