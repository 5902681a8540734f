from decimal import Decimal
from typing import List, Optional
import enum

from pydantic import BaseModel, Field


class ChangeType(str, enum.Enum):
    """How a file changed in the pull request."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class Severity(str, enum.Enum):
    """Severity of a published review comment."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def coerce(cls, value: Optional[str]) -> "Severity":
        """Map free-form severities onto the three published levels."""
        normalized = (value or "").strip().lower()
        if normalized in ("error", "critical", "high", "blocker"):
            return cls.ERROR
        if normalized in ("warning", "warn", "medium"):
            return cls.WARNING
        return cls.INFO


class ChangedFile(BaseModel):
    """A single file of a pull request, with its diff when available."""

    path: str
    change_type: ChangeType = ChangeType.MODIFIED
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None


class ReviewComment(BaseModel):
    line_number: Optional[int] = None
    text: str
    severity: Severity = Severity.INFO
    category: Optional[str] = None
    source_rule_name: Optional[str] = None
    suggestion: Optional[str] = None


class AIReviewRequest(BaseModel):
    """What the external review backend receives for one (file, rule) pair."""

    endpoint: Optional[str] = None
    key: str = ""
    file_name: str
    file_diff: str = ""
    file_content: Optional[str] = None
    additional_context: Optional[str] = None


class AIReviewResult(BaseModel):
    success: bool = False
    has_issues: bool = False
    comments: List[ReviewComment] = Field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    model_name: Optional[str] = None
    duration_ms: int = 0
    request_id: Optional[str] = None
    error: Optional[str] = None


class FileReviewOutcome(BaseModel):
    path: str
    change_type: ChangeType = ChangeType.MODIFIED
    lines_added: int = 0
    lines_deleted: int = 0
    matched_keywords: List[str] = Field(default_factory=list)
    comments: List[ReviewComment] = Field(default_factory=list)
    tokens_consumed: int = 0

    @property
    def has_comments(self) -> bool:
        return bool(self.comments)


class ReviewResult(BaseModel):
    """Outcome of one orchestrator run, as seen by its caller."""

    review_record_id: Optional[int] = None
    success: bool = False
    files_processed: int = 0
    comments_generated: int = 0
    tokens_consumed: int = 0
    estimated_cost: Decimal = Decimal("0")
    error_message: Optional[str] = None
    file_outcomes: List[FileReviewOutcome] = Field(default_factory=list)
