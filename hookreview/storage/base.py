"""Data-access contract consumed by the review pipeline."""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from hookreview.models.code_review import FileReviewOutcome
from hookreview.models.definitions import KeywordDefinition, RuleBinding
from hookreview.models.platform import Platform
from hookreview.models.repository import PlatformSettings, Repository
from hookreview.models.review_record import ReviewRecord, ReviewUsageLog


class ReviewStore(ABC):
    @abstractmethod
    def get_repository_by_remote_id(
        self, platform: Platform, remote_id: str
    ) -> Optional[Repository]:
        pass

    @abstractmethod
    def get_repository_by_full_name(
        self, platform: Platform, full_name: str
    ) -> Optional[Repository]:
        pass

    @abstractmethod
    def get_platform_settings(self, platform: Platform) -> Optional[PlatformSettings]:
        pass

    @abstractmethod
    def get_rule_bindings(self, repository_id: int) -> List[RuleBinding]:
        """Active repository-rule links, in rule creation order."""
        pass

    @abstractmethod
    def get_active_keywords(self) -> List[KeywordDefinition]:
        pass

    @abstractmethod
    def create_review_record(self, record: ReviewRecord) -> ReviewRecord:
        pass

    @abstractmethod
    def update_review_record(self, record: ReviewRecord) -> ReviewRecord:
        pass

    @abstractmethod
    def get_review_record(self, record_id: int) -> Optional[ReviewRecord]:
        pass

    @abstractmethod
    def add_file_log(self, review_record_id: int, outcome: FileReviewOutcome) -> None:
        pass

    @abstractmethod
    def add_usage_log(self, usage: ReviewUsageLog) -> None:
        pass

    @abstractmethod
    def increment_keyword_trigger(self, keyword_id: int) -> None:
        """Atomically bump the keyword's trigger counter by one."""
        pass

    @abstractmethod
    def increment_rule_statistics(
        self,
        rule_id: int,
        stat_date: date,
        tokens: int,
        comment_generated: bool,
    ) -> None:
        """Atomically record one trigger of the rule on the given UTC day."""
        pass
