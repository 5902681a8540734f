from abc import ABC, abstractmethod
from typing import List, Optional

from hookreview.core.exceptions import TransportError
from hookreview.models.code_review import ChangedFile
from hookreview.models.platform import (
    Platform,
    PlatformCredentials,
    PullRequestInfo,
    RepositoryInfo,
)
from hookreview.utils.logger import logger


class ProviderAdapter(ABC):
    """Capability contract every source-control platform implements.

    Repositories are addressed by their full name (``owner/repo`` or the
    GitLab namespace path) and pull requests by their platform number.
    """

    platform: Platform
    default_api_base_url: str

    def api_base_url(self, credentials: PlatformCredentials) -> str:
        return (credentials.api_base_url or self.default_api_base_url).rstrip("/")

    @abstractmethod
    def get_repository_info(
        self, full_name: str, credentials: PlatformCredentials
    ) -> RepositoryInfo:
        pass

    @abstractmethod
    def get_pull_request(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> PullRequestInfo:
        pass

    @abstractmethod
    def get_pull_request_files(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> List[ChangedFile]:
        """Every changed file of the pull request, all pages concatenated."""
        pass

    @abstractmethod
    def post_summary_comment(
        self, full_name: str, number: int, body: str, credentials: PlatformCredentials
    ) -> None:
        pass

    @abstractmethod
    def create_inline_comment(
        self,
        full_name: str,
        number: int,
        path: str,
        line: int,
        body: str,
        credentials: PlatformCredentials,
        head_sha: Optional[str] = None,
    ) -> None:
        """Platform call for a comment anchored on a line of the new file."""
        pass

    @abstractmethod
    def validate_signature(
        self, raw_body: bytes, signature: str, secret: str
    ) -> bool:
        pass

    def post_inline_comment(
        self,
        full_name: str,
        number: int,
        path: str,
        line: int,
        body: str,
        credentials: PlatformCredentials,
        head_sha: Optional[str] = None,
    ) -> None:
        """Post a line comment, or a summary comment naming the line if that fails."""
        try:
            self.create_inline_comment(
                full_name, number, path, line, body, credentials, head_sha=head_sha
            )
        except TransportError as e:
            logger.warning(
                f"Inline comment on {full_name}#{number} {path}:{line} failed ({e}). "
                "Posting it as a summary comment instead."
            )
            self.post_summary_comment(
                full_name,
                number,
                f"**{path}** (line {line}):\n\n{body}",
                credentials,
            )
