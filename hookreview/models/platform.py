import enum
from typing import Optional

from pydantic import BaseModel, Field


class Platform(str, enum.Enum):
    """Source-control platforms a webhook can come from."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


class PlatformCredentials(BaseModel):
    """Token and optional API base URL used for outbound platform calls."""

    access_token: str
    api_base_url: Optional[str] = None


class RepositoryInfo(BaseModel):
    id: str
    name: str
    full_name: str
    description: Optional[str] = None
    default_branch: Optional[str] = None
    private: bool = False


class PullRequestInfo(BaseModel):
    number: int
    title: str = ""
    description: str = ""
    author: str = ""
    source_branch: str = ""
    target_branch: str = ""
    state: str = ""
    head_sha: str = ""
    base_sha: Optional[str] = Field(
        None, description="Merge base, when the platform reports it."
    )
    start_sha: Optional[str] = Field(
        None, description="Target branch head the diff was computed from."
    )
