import enum
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from hookreview.core.exceptions import InvalidTransitionError
from hookreview.models.base_model import BaseModel, utcnow
from hookreview.models.code_review import ChangeType


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.IN_PROGRESS},
    ReviewStatus.IN_PROGRESS: {ReviewStatus.COMPLETED, ReviewStatus.FAILED},
    ReviewStatus.COMPLETED: set(),
    ReviewStatus.FAILED: set(),
}


class ReviewRecord(BaseModel, table=True):
    """Lifecycle and aggregate metrics of one review run."""

    __tablename__ = "review_records"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    repository_id: int = Field(foreign_key="repositories.id", index=True)
    pr_number: int = Field(index=True)
    pr_title: str = ""
    author: str = "unknown"
    head_sha: Optional[str] = None
    status: ReviewStatus = Field(default=ReviewStatus.PENDING)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    files_processed: int = 0
    comments_generated: int = 0
    tokens_consumed: int = 0
    estimated_cost: Decimal = Field(
        default=Decimal("0"), max_digits=18, decimal_places=6
    )
    error_message: Optional[str] = None

    def transition(self, target: ReviewStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Review record cannot move from {self.status.value} to {target.value}"
            )
        self.status = target

    def start(self, at: Optional[datetime] = None) -> None:
        self.transition(ReviewStatus.IN_PROGRESS)
        self.started_at = at or utcnow()

    def complete(
        self,
        files_processed: int,
        comments_generated: int,
        tokens_consumed: int,
        estimated_cost: Decimal,
        at: Optional[datetime] = None,
    ) -> None:
        self.transition(ReviewStatus.COMPLETED)
        self.completed_at = at or utcnow()
        self.files_processed = files_processed
        self.comments_generated = comments_generated
        self.tokens_consumed = tokens_consumed
        self.estimated_cost = estimated_cost

    def fail(self, error_message: str, at: Optional[datetime] = None) -> None:
        self.transition(ReviewStatus.FAILED)
        self.completed_at = at or utcnow()
        self.error_message = error_message


class ReviewFileLog(BaseModel, table=True):
    __tablename__ = "review_file_logs"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    review_record_id: int = Field(foreign_key="review_records.id", index=True)
    file_path: str
    change_type: ChangeType = ChangeType.MODIFIED
    lines_added: int = 0
    lines_deleted: int = 0
    has_comments: bool = False
    comments: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    matched_keywords: Optional[List[str]] = Field(
        default=None, sa_column=Column(JSON)
    )
    tokens_consumed: int = 0


class ReviewUsageLog(BaseModel, table=True):
    """One AI review call, successful or not."""

    __tablename__ = "review_usage_logs"

    id: Optional[int] = Field(default=None, primary_key=True, index=True)
    review_record_id: Optional[int] = Field(
        default=None, foreign_key="review_records.id", index=True
    )
    rule_id: int = Field(foreign_key="rules.id", index=True)
    request_id: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: Decimal = Field(
        default=Decimal("0"), max_digits=18, decimal_places=6
    )
    model_name: Optional[str] = None
    duration_ms: int = 0
    is_success: bool = False
    error_message: Optional[str] = None
