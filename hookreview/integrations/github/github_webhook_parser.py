"""
GitHub webhook payload parser.

Turns ``pull_request`` deliveries into canonical events.
"""

from typing import Any, Dict, Mapping, Optional

from hookreview.integrations.webhook_parser import (
    WebhookParser,
    as_id,
    header_value,
    optional_object,
    require,
    require_object,
)
from hookreview.models.platform import Platform
from hookreview.models.webhook_event import (
    CanonicalEvent,
    WebhookPullRequest,
    WebhookRepository,
    WebhookUser,
)

PROCESSABLE_ACTIONS = {"opened", "synchronize", "reopened"}


def _user(data: Optional[Dict[str, Any]]) -> Optional[WebhookUser]:
    if not data:
        return None
    return WebhookUser(id=as_id(data.get("id")), username=data.get("login") or "")


class GitHubWebhookParser(WebhookParser):
    platform = Platform.GITHUB
    event_header = "X-GitHub-Event"
    signature_header = "X-Hub-Signature-256"
    delivery_header = "X-GitHub-Delivery"

    def build_event(
        self, payload: Dict[str, Any], raw_payload: str, headers: Mapping[str, str]
    ) -> CanonicalEvent:
        repo = require_object(payload, "repository", "payload")
        repository = WebhookRepository(
            remote_id=as_id(require(repo, "id", "repository")),
            name=require(repo, "name", "repository"),
            full_name=require(repo, "full_name", "repository"),
            clone_url=repo.get("clone_url"),
        )

        pull_request = None
        pr = optional_object(payload, "pull_request", "payload")
        if pr is not None:
            head = require_object(pr, "head", "pull_request")
            base = require_object(pr, "base", "pull_request")
            pull_request = WebhookPullRequest(
                number=int(require(pr, "number", "pull_request")),
                title=pr.get("title") or "",
                body=pr.get("body"),
                state=pr.get("state") or "",
                source_branch=head.get("ref") or "",
                target_branch=base.get("ref") or "",
                head_sha=head.get("sha"),
                author=_user(optional_object(pr, "user", "pull_request")),
            )

        return CanonicalEvent(
            platform=self.platform,
            event_type=header_value(headers, self.event_header) or "unknown",
            action=payload.get("action") or "",
            repository=repository,
            pull_request=pull_request,
            sender=_user(optional_object(payload, "sender", "payload")),
            raw_payload=raw_payload,
        )

    def should_process(self, event: CanonicalEvent) -> bool:
        return (
            event.event_type == "pull_request"
            and event.action.lower() in PROCESSABLE_ACTIONS
            and event.pull_request is not None
        )
