from datetime import date
from typing import Optional

from sqlmodel import Field, UniqueConstraint

from hookreview.models.base_model import BaseModel


class Rule(BaseModel, table=True):
    __tablename__ = "rules"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    name: str
    description: str = ""
    review_endpoint: Optional[str] = None
    review_key: str = ""
    priority: int = 100
    file_patterns: Optional[str] = None
    is_active: bool = True


class RepositoryRuleMapping(BaseModel, table=True):
    __tablename__ = "repository_rule_mappings"
    __table_args__ = (
        UniqueConstraint("repository_id", "rule_id", name="uq_repository_rule"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    repository_id: int = Field(foreign_key="repositories.id", index=True)
    rule_id: int = Field(foreign_key="rules.id", index=True)
    priority_override: Optional[int] = None
    file_patterns_override: Optional[str] = None
    is_active: bool = True


class RuleStatistics(BaseModel, table=True):
    __tablename__ = "rule_statistics"
    __table_args__ = (
        UniqueConstraint("rule_id", "stat_date", name="uq_rule_statistics_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    rule_id: int = Field(foreign_key="rules.id", index=True)
    stat_date: date = Field(index=True)
    trigger_count: int = 0
    comment_generated_count: int = 0
    passed_count: int = 0
    total_tokens_consumed: int = 0

    @property
    def average_tokens_per_trigger(self) -> float:
        if not self.trigger_count:
            return 0.0
        return self.total_tokens_consumed / self.trigger_count
