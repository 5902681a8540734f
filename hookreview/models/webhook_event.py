from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from hookreview.models.platform import Platform


class WebhookUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    username: str = ""


class WebhookRepository(BaseModel):
    model_config = ConfigDict(frozen=True)

    remote_id: str
    name: str
    full_name: str
    clone_url: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def full_name_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("repository full name must not be empty")
        return value


class WebhookPullRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    title: str = ""
    body: Optional[str] = None
    state: str = ""
    source_branch: str = ""
    target_branch: str = ""
    head_sha: Optional[str] = None
    author: Optional[WebhookUser] = None


class CanonicalEvent(BaseModel):
    """Platform-agnostic form of a pull/merge-request webhook."""

    model_config = ConfigDict(frozen=True)

    platform: Platform
    event_type: str
    action: str = ""
    repository: WebhookRepository
    pull_request: Optional[WebhookPullRequest] = None
    sender: Optional[WebhookUser] = None
    raw_payload: str = ""

    def __str__(self):
        number = self.pull_request.number if self.pull_request else None
        return (
            f"CanonicalEvent: {self.platform.value} {self.event_type}/{self.action} "
            f"on {self.repository.full_name} #{number}"
        )
