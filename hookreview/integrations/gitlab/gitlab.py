import hmac
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from hookreview.integrations.provider_adapter import ProviderAdapter
from hookreview.models.code_review import ChangeType, ChangedFile
from hookreview.models.platform import (
    Platform,
    PlatformCredentials,
    PullRequestInfo,
    RepositoryInfo,
)
from hookreview.utils.http import send_with_retry
from hookreview.utils.logger import logger

PER_PAGE = 100


def count_diff_lines(diff: Optional[str]) -> Tuple[int, int]:
    """Count added and removed lines of a unified diff body."""
    additions = deletions = 0
    for line in (diff or "").splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            deletions += 1
    return additions, deletions


def _change_type(diff: Dict[str, Any]) -> ChangeType:
    if diff.get("new_file"):
        return ChangeType.ADDED
    if diff.get("deleted_file"):
        return ChangeType.DELETED
    if diff.get("renamed_file"):
        return ChangeType.RENAMED
    return ChangeType.MODIFIED


class GitLab(ProviderAdapter):
    """GitLab REST v4 adapter. Projects are addressed by their encoded path."""

    platform = Platform.GITLAB
    default_api_base_url = "https://gitlab.com/api/v4"

    def _headers(self, credentials: PlatformCredentials) -> Dict[str, str]:
        return {
            "PRIVATE-TOKEN": credentials.access_token,
            "Accept": "application/json",
        }

    def _project_url(self, full_name: str, credentials: PlatformCredentials) -> str:
        return f"{self.api_base_url(credentials)}/projects/{quote(full_name, safe='')}"

    def get_repository_info(
        self, full_name: str, credentials: PlatformCredentials
    ) -> RepositoryInfo:
        response = send_with_retry(
            "GET",
            self._project_url(full_name, credentials),
            headers=self._headers(credentials),
        )
        project = response.json()
        return RepositoryInfo(
            id=str(project.get("id", "")),
            name=project.get("name") or "",
            full_name=project.get("path_with_namespace") or full_name,
            description=project.get("description"),
            default_branch=project.get("default_branch"),
            private=project.get("visibility", "private") != "public",
        )

    def get_pull_request(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> PullRequestInfo:
        response = send_with_retry(
            "GET",
            f"{self._project_url(full_name, credentials)}/merge_requests/{number}",
            headers=self._headers(credentials),
        )
        mr = response.json()
        diff_refs = mr.get("diff_refs") or {}
        return PullRequestInfo(
            number=mr.get("iid", number),
            title=mr.get("title") or "",
            description=mr.get("description") or "",
            author=(mr.get("author") or {}).get("username") or "",
            source_branch=mr.get("source_branch") or "",
            target_branch=mr.get("target_branch") or "",
            state=mr.get("state") or "",
            head_sha=diff_refs.get("head_sha") or mr.get("sha") or "",
            base_sha=diff_refs.get("base_sha"),
            start_sha=diff_refs.get("start_sha"),
        )

    def get_pull_request_files(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> List[ChangedFile]:
        url = f"{self._project_url(full_name, credentials)}/merge_requests/{number}/diffs"
        diffs: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = send_with_retry(
                "GET",
                url,
                headers=self._headers(credentials),
                params={"page": page, "per_page": PER_PAGE},
            )
            batch = response.json() or []
            diffs.extend(batch)
            next_page = response.headers.get("X-Next-Page")
            if len(batch) < PER_PAGE or (next_page is not None and not next_page.strip()):
                break
            page += 1

        logger.info(f"Fetched {len(diffs)} changed files for {full_name}!{number}")
        files = []
        for diff in diffs:
            additions, deletions = count_diff_lines(diff.get("diff"))
            files.append(
                ChangedFile(
                    path=diff.get("new_path") or diff.get("old_path") or "",
                    change_type=_change_type(diff),
                    additions=additions,
                    deletions=deletions,
                    patch=diff.get("diff"),
                )
            )
        return files

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
        # Discussions must be anchored on the MR's current diff refs.
        mr = self.get_pull_request(full_name, number, credentials)
        head = mr.head_sha or head_sha or ""
        send_with_retry(
            "POST",
            f"{self._project_url(full_name, credentials)}/merge_requests/{number}/discussions",
            headers=self._headers(credentials),
            json={
                "body": body,
                "position": {
                    "position_type": "text",
                    "base_sha": mr.base_sha or head,
                    "start_sha": mr.start_sha or head,
                    "head_sha": head,
                    "new_path": path,
                    "new_line": line,
                },
            },
        )

    def post_summary_comment(
        self, full_name: str, number: int, body: str, credentials: PlatformCredentials
    ) -> None:
        send_with_retry(
            "POST",
            f"{self._project_url(full_name, credentials)}/merge_requests/{number}/notes",
            headers=self._headers(credentials),
            json={"body": body},
        )

    def validate_signature(
        self, raw_body: bytes, signature: str, secret: str
    ) -> bool:
        """GitLab sends the shared secret verbatim in ``X-Gitlab-Token``."""
        if signature is None or secret is None:
            return False
        return hmac.compare_digest(signature.encode(), secret.encode())
