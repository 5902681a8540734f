import time
from decimal import Decimal
from functools import lru_cache
from typing import Callable, List, Optional, Sequence, Union

from hookreview.config import settings
from hookreview.core.exceptions import (
    ConfigurationError,
    RejectionError,
    ReviewTimeoutError,
    TransportError,
)
from hookreview.integrations.registry import AdapterRegistry, default_registry
from hookreview.llms.llm_factory import review_client
from hookreview.llms.review_client import ReviewClient
from hookreview.models.base_model import utcnow
from hookreview.models.code_review import (
    AIReviewRequest,
    AIReviewResult,
    ChangeType,
    ChangedFile,
    FileReviewOutcome,
    ReviewComment,
    ReviewResult,
    Severity,
)
from hookreview.models.definitions import KeywordDefinition, RuleBinding
from hookreview.models.platform import PlatformCredentials
from hookreview.models.repository import Repository
from hookreview.models.review_record import ReviewRecord, ReviewUsageLog
from hookreview.models.webhook_event import CanonicalEvent
from hookreview.services.matcher import scan_keywords, select_rules
from hookreview.storage.base import ReviewStore
from hookreview.storage.sql_store import SqlReviewStore
from hookreview.utils.logger import logger

NO_ISSUES_SUMMARY = "✅ Code review completed. No issues found. Great job!"
REPOSITORY_NOT_CONFIGURED = "Repository not configured or inactive"

SEVERITY_MARKERS = {
    Severity.ERROR: "🔴",
    Severity.WARNING: "🟡",
    Severity.INFO: "🔵",
}


def format_comment(comment: ReviewComment) -> str:
    """Render a comment as ``<emoji> [<category>] <text> (Rule: <name>)``."""
    marker = SEVERITY_MARKERS.get(comment.severity, SEVERITY_MARKERS[Severity.INFO])
    category = f"[{comment.category}] " if comment.category else ""
    rule = f"(Rule: {comment.source_rule_name})" if comment.source_rule_name else ""
    return f"{marker} {category}{comment.text} {rule}".strip()


def estimate_cost(tokens: int, cost_per_1000_tokens: Union[Decimal, str]) -> Decimal:
    return Decimal(tokens) * Decimal(cost_per_1000_tokens) / Decimal(1000)


class ReviewOrchestrator:
    """Runs the review pipeline for one canonical event and owns its record.

    A run walks the changed files one at a time: hot keywords first, then one
    AI review per applicable rule, publishing each file's comments before
    moving to the next file.
    """

    def __init__(
        self,
        store: ReviewStore,
        registry: AdapterRegistry,
        review_client: ReviewClient,
        cost_per_1000_tokens: Optional[Decimal] = None,
        require_signature: Optional[bool] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.registry = registry
        self.review_client = review_client
        self.cost_per_1000_tokens = (
            cost_per_1000_tokens
            if cost_per_1000_tokens is not None
            else settings.COST_PER_1000_TOKENS
        )
        self.require_signature = (
            require_signature
            if require_signature is not None
            else settings.REQUIRE_WEBHOOK_SIGNATURE
        )
        self.clock = clock

    def verify_signature(
        self,
        event: CanonicalEvent,
        raw_body: bytes,
        signature: Optional[str],
    ) -> bool:
        """Check a delivery against the repository's (or platform's) webhook secret."""
        adapter = self.registry.resolve(event.platform)
        repository = self._find_repository(event)
        platform_settings = self.store.get_platform_settings(event.platform)

        secret = (repository.webhook_secret if repository else None) or (
            platform_settings.webhook_secret if platform_settings else None
        )
        if not secret:
            return True
        if not signature:
            if self.require_signature:
                logger.warning(
                    f"Unsigned {event.platform.value} delivery for "
                    f"{event.repository.full_name} rejected."
                )
                return False
            return True
        return adapter.validate_signature(raw_body, signature, secret)

    def process(
        self, event: CanonicalEvent, deadline: Optional[float] = None
    ) -> ReviewResult:
        """Review the pull request of ``event``.

        Raises ``RejectionError`` when the event cannot be handled at all.
        Every other failure after the record exists marks it failed and is
        reported in the returned result.
        """
        if event.pull_request is None:
            raise RejectionError("Pull request information is required")
        adapter = self.registry.resolve(event.platform)
        pr = event.pull_request

        logger.info(
            f"Processing PR #{pr.number} for repository {event.repository.full_name}"
        )
        repository = self._find_repository(event)
        if repository is None or not repository.is_active:
            logger.warning(
                f"Repository {event.repository.full_name} not found or inactive"
            )
            return ReviewResult(success=False, error_message=REPOSITORY_NOT_CONFIGURED)

        record = ReviewRecord(
            repository_id=repository.id,
            pr_number=pr.number,
            pr_title=pr.title,
            author=(pr.author.username if pr.author else "") or "unknown",
            head_sha=pr.head_sha,
        )
        record.start()
        record = self.store.create_review_record(record)

        outcomes: List[FileReviewOutcome] = []
        try:
            credentials = self._resolve_credentials(repository)
            bindings = self.store.get_rule_bindings(repository.id)
            if not bindings:
                logger.warning(
                    f"No rules configured for repository {repository.full_name}"
                )
            keywords = self.store.get_active_keywords()

            files = adapter.get_pull_request_files(
                repository.full_name, pr.number, credentials
            )
            for changed_file in files:
                if changed_file.change_type == ChangeType.DELETED:
                    continue
                self._check_deadline(deadline, record)
                outcome = self._review_file(
                    record, changed_file, bindings, keywords
                )
                for comment in outcome.comments:
                    adapter.post_inline_comment(
                        repository.full_name,
                        pr.number,
                        changed_file.path,
                        comment.line_number or 1,
                        format_comment(comment),
                        credentials,
                        head_sha=pr.head_sha,
                    )
                self.store.add_file_log(record.id, outcome)
                outcomes.append(outcome)

            comments_generated = sum(len(o.comments) for o in outcomes)
            if comments_generated == 0:
                adapter.post_summary_comment(
                    repository.full_name, pr.number, NO_ISSUES_SUMMARY, credentials
                )

            tokens = sum(o.tokens_consumed for o in outcomes)
            cost = estimate_cost(tokens, self.cost_per_1000_tokens)
            record.complete(
                files_processed=len(outcomes),
                comments_generated=comments_generated,
                tokens_consumed=tokens,
                estimated_cost=cost,
            )
            self.store.update_review_record(record)
            logger.info(
                f"PR #{pr.number} review completed. Files: {len(outcomes)}, "
                f"Comments: {comments_generated}, Tokens: {tokens}"
            )
            return ReviewResult(
                review_record_id=record.id,
                success=True,
                files_processed=len(outcomes),
                comments_generated=comments_generated,
                tokens_consumed=tokens,
                estimated_cost=cost,
                file_outcomes=outcomes,
            )
        except Exception as e:
            logger.exception(f"Error processing PR #{pr.number}: {e}")
            record.fail(str(e))
            self.store.update_review_record(record)
            return ReviewResult(
                review_record_id=record.id,
                success=False,
                files_processed=len(outcomes),
                comments_generated=sum(len(o.comments) for o in outcomes),
                tokens_consumed=sum(o.tokens_consumed for o in outcomes),
                error_message=str(e),
                file_outcomes=outcomes,
            )

    def get_review_status(self, record_id: int) -> Optional[ReviewRecord]:
        return self.store.get_review_record(record_id)

    def _find_repository(self, event: CanonicalEvent) -> Optional[Repository]:
        repository = self.store.get_repository_by_remote_id(
            event.platform, event.repository.remote_id
        )
        if repository is None:
            repository = self.store.get_repository_by_full_name(
                event.platform, event.repository.full_name
            )
        return repository

    def _resolve_credentials(self, repository: Repository) -> PlatformCredentials:
        platform_settings = self.store.get_platform_settings(repository.platform)
        access_token = repository.access_token or (
            platform_settings.access_token if platform_settings else None
        )
        if not access_token:
            raise ConfigurationError(
                f"Platform settings not configured for {repository.platform.value}"
            )
        return PlatformCredentials(
            access_token=access_token,
            api_base_url=repository.api_base_url
            or (platform_settings.api_base_url if platform_settings else None),
        )

    def _check_deadline(self, deadline: Optional[float], record: ReviewRecord) -> None:
        if deadline is not None and self.clock() > deadline:
            raise ReviewTimeoutError(
                f"Review {record.id} exceeded its time limit of {settings.JOB_TIMEOUT}s"
            )

    def _review_file(
        self,
        record: ReviewRecord,
        changed_file: ChangedFile,
        bindings: Sequence[RuleBinding],
        keywords: Sequence[KeywordDefinition],
    ) -> FileReviewOutcome:
        outcome = FileReviewOutcome(
            path=changed_file.path,
            change_type=changed_file.change_type,
            lines_added=changed_file.additions,
            lines_deleted=changed_file.deletions,
        )

        for hit in scan_keywords(changed_file, keywords):
            outcome.matched_keywords.append(hit.keyword.pattern)
            outcome.comments.append(hit.comment)
            self.store.increment_keyword_trigger(hit.keyword.id)

        for binding in select_rules(changed_file.path, bindings):
            rule = binding.rule
            result = self._request_review(record, changed_file, binding)
            outcome.tokens_consumed += result.total_tokens
            if result.success and result.has_issues:
                outcome.comments.extend(
                    comment.model_copy(update={"source_rule_name": rule.name})
                    for comment in result.comments
                )
        return outcome

    def _request_review(
        self,
        record: ReviewRecord,
        changed_file: ChangedFile,
        binding: RuleBinding,
    ) -> AIReviewResult:
        rule_id = binding.rule.id
        request = AIReviewRequest(
            endpoint=binding.rule.review_endpoint,
            key=binding.rule.review_key,
            file_name=changed_file.path,
            file_diff=changed_file.patch or "",
        )
        try:
            result = self.review_client.review(request)
        except TransportError as e:
            self.store.add_usage_log(
                ReviewUsageLog(
                    review_record_id=record.id,
                    rule_id=rule_id,
                    is_success=False,
                    error_message=str(e),
                )
            )
            raise

        self.store.add_usage_log(
            ReviewUsageLog(
                review_record_id=record.id,
                rule_id=rule_id,
                request_id=result.request_id,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                total_tokens=result.total_tokens,
                estimated_cost=estimate_cost(
                    result.total_tokens, self.cost_per_1000_tokens
                ),
                model_name=result.model_name,
                duration_ms=result.duration_ms,
                is_success=result.success,
                error_message=result.error,
            )
        )
        self.store.increment_rule_statistics(
            rule_id,
            utcnow().date(),
            result.total_tokens,
            comment_generated=result.has_issues,
        )
        return result


@lru_cache(maxsize=None)
def default_orchestrator() -> ReviewOrchestrator:
    """Process-wide orchestrator over the SQL store and the configured backend."""
    return ReviewOrchestrator(
        store=SqlReviewStore(),
        registry=default_registry(),
        review_client=review_client(),
    )
