from datetime import date
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from hookreview.config.db import get_engine
from hookreview.models.code_review import FileReviewOutcome
from hookreview.models.definitions import (
    KeywordDefinition,
    RuleBinding,
    RuleDefinition,
)
from hookreview.models.hot_keyword import HotKeyword
from hookreview.models.platform import Platform
from hookreview.models.repository import PlatformSettings, Repository
from hookreview.models.review_record import (
    ReviewFileLog,
    ReviewRecord,
    ReviewUsageLog,
)
from hookreview.models.rule import RepositoryRuleMapping, Rule, RuleStatistics
from hookreview.storage.base import ReviewStore
from hookreview.utils.logger import logger


class SqlReviewStore(ReviewStore):
    """ReviewStore backed by SQLModel. Every call runs in its own session."""

    def __init__(self, engine=None):
        self.engine = engine or get_engine()

    def _session(self) -> Session:
        # Returned rows stay readable after the session closes.
        return Session(self.engine, expire_on_commit=False)

    def get_repository_by_remote_id(
        self, platform: Platform, remote_id: str
    ) -> Optional[Repository]:
        if not remote_id:
            return None
        with self._session() as session:
            return session.exec(
                select(Repository).where(
                    Repository.platform == platform,
                    Repository.platform_repository_id == remote_id,
                )
            ).first()

    def get_repository_by_full_name(
        self, platform: Platform, full_name: str
    ) -> Optional[Repository]:
        with self._session() as session:
            return session.exec(
                select(Repository).where(
                    Repository.platform == platform,
                    Repository.full_name == full_name,
                )
            ).first()

    def get_platform_settings(self, platform: Platform) -> Optional[PlatformSettings]:
        with self._session() as session:
            return session.exec(
                select(PlatformSettings).where(PlatformSettings.platform == platform)
            ).first()

    def get_rule_bindings(self, repository_id: int) -> List[RuleBinding]:
        with self._session() as session:
            rows = session.exec(
                select(RepositoryRuleMapping, Rule)
                .join(Rule, Rule.id == RepositoryRuleMapping.rule_id)
                .where(
                    RepositoryRuleMapping.repository_id == repository_id,
                    RepositoryRuleMapping.is_active == True,  # noqa: E712
                )
                .order_by(Rule.created_at, Rule.id)
            ).all()

        return [
            RuleBinding(
                rule=RuleDefinition(
                    id=rule.id,
                    name=rule.name,
                    file_patterns=rule.file_patterns,
                    priority=rule.priority,
                    review_endpoint=rule.review_endpoint,
                    review_key=rule.review_key,
                    active=rule.is_active,
                    created_at=rule.created_at,
                ),
                priority_override=mapping.priority_override,
                file_patterns_override=mapping.file_patterns_override,
            )
            for mapping, rule in rows
        ]

    def get_active_keywords(self) -> List[KeywordDefinition]:
        with self._session() as session:
            keywords = session.exec(
                select(HotKeyword)
                .where(HotKeyword.is_active == True)  # noqa: E712
                .order_by(HotKeyword.id)
            ).all()

        return [
            KeywordDefinition(
                id=keyword.id,
                pattern=keyword.keyword,
                is_regex=keyword.is_regex,
                file_patterns=keyword.file_patterns,
                severity=keyword.severity,
                category=keyword.category,
                alert_message=keyword.alert_message,
                active=keyword.is_active,
                trigger_count=keyword.trigger_count,
            )
            for keyword in keywords
        ]

    def create_review_record(self, record: ReviewRecord) -> ReviewRecord:
        with self._session() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
        logger.info(
            f"Created review record {record.id} for PR #{record.pr_number} "
            f"(repository {record.repository_id})"
        )
        return record

    def update_review_record(self, record: ReviewRecord) -> ReviewRecord:
        with self._session() as session:
            session.add(record)
            session.commit()
            session.refresh(record)
        return record

    def get_review_record(self, record_id: int) -> Optional[ReviewRecord]:
        with self._session() as session:
            return session.get(ReviewRecord, record_id)

    def add_file_log(self, review_record_id: int, outcome: FileReviewOutcome) -> None:
        file_log = ReviewFileLog(
            review_record_id=review_record_id,
            file_path=outcome.path,
            change_type=outcome.change_type,
            lines_added=outcome.lines_added,
            lines_deleted=outcome.lines_deleted,
            has_comments=outcome.has_comments,
            comments=[comment.model_dump(mode="json") for comment in outcome.comments],
            matched_keywords=list(outcome.matched_keywords),
            tokens_consumed=outcome.tokens_consumed,
        )
        with self._session() as session:
            session.add(file_log)
            session.commit()

    def add_usage_log(self, usage: ReviewUsageLog) -> None:
        with self._session() as session:
            session.add(usage)
            session.commit()

    def increment_keyword_trigger(self, keyword_id: int) -> None:
        with self._session() as session:
            session.exec(
                update(HotKeyword)
                .where(HotKeyword.id == keyword_id)
                .values(trigger_count=HotKeyword.trigger_count + 1)
            )
            session.commit()

    def increment_rule_statistics(
        self,
        rule_id: int,
        stat_date: date,
        tokens: int,
        comment_generated: bool,
    ) -> None:
        if self._bump_rule_statistics(rule_id, stat_date, tokens, comment_generated):
            return

        with self._session() as session:
            session.add(
                RuleStatistics(
                    rule_id=rule_id,
                    stat_date=stat_date,
                    trigger_count=1,
                    comment_generated_count=1 if comment_generated else 0,
                    passed_count=0 if comment_generated else 1,
                    total_tokens_consumed=tokens,
                )
            )
            try:
                session.commit()
                return
            except IntegrityError:
                # Another worker created the day's row first.
                session.rollback()

        self._bump_rule_statistics(rule_id, stat_date, tokens, comment_generated)

    def _bump_rule_statistics(
        self, rule_id: int, stat_date: date, tokens: int, comment_generated: bool
    ) -> bool:
        values = {
            "trigger_count": RuleStatistics.trigger_count + 1,
            "total_tokens_consumed": RuleStatistics.total_tokens_consumed + tokens,
        }
        if comment_generated:
            values["comment_generated_count"] = (
                RuleStatistics.comment_generated_count + 1
            )
        else:
            values["passed_count"] = RuleStatistics.passed_count + 1

        with self._session() as session:
            result = session.exec(
                update(RuleStatistics)
                .where(
                    RuleStatistics.rule_id == rule_id,
                    RuleStatistics.stat_date == stat_date,
                )
                .values(**values)
            )
            session.commit()
            return result.rowcount > 0
