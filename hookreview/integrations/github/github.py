import hashlib
import hmac
from typing import Any, Dict, List, Optional

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

CHANGE_TYPES = {
    "added": ChangeType.ADDED,
    "modified": ChangeType.MODIFIED,
    "removed": ChangeType.DELETED,
    "renamed": ChangeType.RENAMED,
}


class GitHub(ProviderAdapter):
    """GitHub REST v3 adapter authenticated with a personal or app token."""

    platform = Platform.GITHUB
    default_api_base_url = "https://api.github.com"

    def _headers(self, credentials: PlatformCredentials) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "hookreview",
        }

    def _repo_url(self, full_name: str, credentials: PlatformCredentials) -> str:
        return f"{self.api_base_url(credentials)}/repos/{full_name}"

    def get_repository_info(
        self, full_name: str, credentials: PlatformCredentials
    ) -> RepositoryInfo:
        response = send_with_retry(
            "GET",
            self._repo_url(full_name, credentials),
            headers=self._headers(credentials),
        )
        repo = response.json()
        return RepositoryInfo(
            id=str(repo.get("id", "")),
            name=repo.get("name") or "",
            full_name=repo.get("full_name") or full_name,
            description=repo.get("description"),
            default_branch=repo.get("default_branch"),
            private=bool(repo.get("private", False)),
        )

    def get_pull_request(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> PullRequestInfo:
        response = send_with_retry(
            "GET",
            f"{self._repo_url(full_name, credentials)}/pulls/{number}",
            headers=self._headers(credentials),
        )
        pr = response.json()
        head = pr.get("head") or {}
        base = pr.get("base") or {}
        return PullRequestInfo(
            number=pr.get("number", number),
            title=pr.get("title") or "",
            description=pr.get("body") or "",
            author=(pr.get("user") or {}).get("login") or "",
            source_branch=head.get("ref") or "",
            target_branch=base.get("ref") or "",
            state=pr.get("state") or "",
            head_sha=head.get("sha") or "",
            base_sha=base.get("sha"),
        )

    def get_pull_request_files(
        self, full_name: str, number: int, credentials: PlatformCredentials
    ) -> List[ChangedFile]:
        url = f"{self._repo_url(full_name, credentials)}/pulls/{number}/files"
        files: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = send_with_retry(
                "GET",
                url,
                headers=self._headers(credentials),
                params={"page": page, "per_page": PER_PAGE},
            )
            batch = response.json() or []
            files.extend(batch)
            if len(batch) < PER_PAGE:
                break
            page += 1

        logger.info(f"Fetched {len(files)} changed files for {full_name}#{number}")
        return [
            ChangedFile(
                path=f.get("filename") or "",
                change_type=CHANGE_TYPES.get(
                    (f.get("status") or "").lower(), ChangeType.MODIFIED
                ),
                additions=f.get("additions", 0),
                deletions=f.get("deletions", 0),
                patch=f.get("patch"),
            )
            for f in files
        ]

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
        commit_id = head_sha or self.get_pull_request(
            full_name, number, credentials
        ).head_sha
        send_with_retry(
            "POST",
            f"{self._repo_url(full_name, credentials)}/pulls/{number}/comments",
            headers=self._headers(credentials),
            json={
                "body": body,
                "commit_id": commit_id,
                "path": path,
                "line": line,
                "side": "RIGHT",
            },
        )

    def post_summary_comment(
        self, full_name: str, number: int, body: str, credentials: PlatformCredentials
    ) -> None:
        send_with_retry(
            "POST",
            f"{self._repo_url(full_name, credentials)}/issues/{number}/comments",
            headers=self._headers(credentials),
            json={"body": body},
        )

    def validate_signature(
        self, raw_body: bytes, signature: str, secret: str
    ) -> bool:
        """Check an ``X-Hub-Signature-256`` header (``sha256=<hex>``)."""
        if not signature or not signature.startswith("sha256="):
            return False
        if isinstance(raw_body, str):
            raw_body = raw_body.encode()
        expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature[len("sha256="):].lower())
