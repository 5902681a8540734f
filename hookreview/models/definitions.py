"""Read-only rule and keyword snapshots handed to a review run."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RuleDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    file_patterns: Optional[str] = None
    priority: int = 100
    review_endpoint: Optional[str] = None
    review_key: str = ""
    active: bool = True
    created_at: Optional[datetime] = None


class RuleBinding(BaseModel):
    """A rule as linked to one repository, with the link's overrides."""

    model_config = ConfigDict(frozen=True)

    rule: RuleDefinition
    priority_override: Optional[int] = None
    file_patterns_override: Optional[str] = None

    @property
    def effective_priority(self) -> int:
        if self.priority_override is not None:
            return self.priority_override
        return self.rule.priority

    @property
    def effective_file_patterns(self) -> Optional[str]:
        # A blank override means "no override", not "match everything".
        if self.file_patterns_override and self.file_patterns_override.strip():
            return self.file_patterns_override
        return self.rule.file_patterns


class KeywordDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    pattern: str
    is_regex: bool = False
    file_patterns: Optional[str] = None
    severity: str = "warning"
    category: str = "Custom"
    alert_message: str = ""
    active: bool = True
    trigger_count: int = 0
