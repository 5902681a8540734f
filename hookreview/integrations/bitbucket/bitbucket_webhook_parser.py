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

PROCESSABLE_ACTIONS = {"created", "updated"}


def _user(data: Optional[Dict[str, Any]]) -> Optional[WebhookUser]:
    if not data:
        return None
    return WebhookUser(
        id=as_id(data.get("uuid")),
        username=data.get("nickname") or data.get("display_name") or "",
    )


class BitbucketWebhookParser(WebhookParser):
    """Bitbucket Cloud pull request hooks. The event key only lives in the header."""

    platform = Platform.BITBUCKET
    event_header = "X-Event-Key"
    signature_header = "X-Hub-Signature"
    delivery_header = "X-Request-UUID"

    def build_event(
        self, payload: Dict[str, Any], raw_payload: str, headers: Mapping[str, str]
    ) -> CanonicalEvent:
        event_type = header_value(headers, self.event_header) or "unknown"
        action = event_type.rsplit(":", 1)[-1] if ":" in event_type else ""

        repo = require_object(payload, "repository", "payload")
        links = optional_object(repo, "links", "repository") or {}
        html = optional_object(links, "html", "repository.links") or {}
        repository = WebhookRepository(
            remote_id=as_id(require(repo, "uuid", "repository")),
            name=require(repo, "name", "repository"),
            full_name=require(repo, "full_name", "repository"),
            clone_url=html.get("href"),
        )

        pull_request = None
        pr = optional_object(payload, "pullrequest", "payload")
        if pr is not None:
            source = require_object(pr, "source", "pullrequest")
            destination = require_object(pr, "destination", "pullrequest")
            pull_request = WebhookPullRequest(
                number=int(require(pr, "id", "pullrequest")),
                title=pr.get("title") or "",
                body=pr.get("description"),
                state=pr.get("state") or "",
                source_branch=require(
                    require_object(source, "branch", "pullrequest.source"),
                    "name",
                    "pullrequest.source.branch",
                ),
                target_branch=require(
                    require_object(destination, "branch", "pullrequest.destination"),
                    "name",
                    "pullrequest.destination.branch",
                ),
                head_sha=(
                    optional_object(source, "commit", "pullrequest.source") or {}
                ).get("hash"),
                author=_user(optional_object(pr, "author", "pullrequest")),
            )

        return CanonicalEvent(
            platform=self.platform,
            event_type=event_type,
            action=action,
            repository=repository,
            pull_request=pull_request,
            sender=_user(optional_object(payload, "actor", "payload")),
            raw_payload=raw_payload,
        )

    def should_process(self, event: CanonicalEvent) -> bool:
        return (
            event.event_type.startswith("pullrequest:")
            and event.action.lower() in PROCESSABLE_ACTIONS
            and event.pull_request is not None
        )
