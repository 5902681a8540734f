from typing import Any, Dict, Mapping

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

PROCESSABLE_ACTIONS = {"open", "reopen", "update"}


class GitLabWebhookParser(WebhookParser):
    """Merge request hooks. GitLab calls repositories "projects"."""

    platform = Platform.GITLAB
    event_header = "X-Gitlab-Event"
    signature_header = "X-Gitlab-Token"
    delivery_header = "X-Gitlab-Event-UUID"

    def build_event(
        self, payload: Dict[str, Any], raw_payload: str, headers: Mapping[str, str]
    ) -> CanonicalEvent:
        object_kind = payload.get("object_kind")
        attributes = optional_object(payload, "object_attributes", "payload") or {}

        project = require_object(payload, "project", "payload")
        repository = WebhookRepository(
            remote_id=as_id(require(project, "id", "project")),
            name=require(project, "name", "project"),
            full_name=require(project, "path_with_namespace", "project"),
            clone_url=project.get("git_http_url"),
        )

        sender = None
        user = optional_object(payload, "user", "payload")
        if user:
            sender = WebhookUser(
                id=as_id(user.get("id")), username=user.get("username") or ""
            )

        pull_request = None
        if object_kind == "merge_request" and attributes:
            author = None
            if attributes.get("author_id") is not None:
                # Hooks only carry the author id; the triggering user lends the name.
                author = WebhookUser(
                    id=as_id(attributes["author_id"]),
                    username=sender.username if sender else "",
                )
            pull_request = WebhookPullRequest(
                number=int(require(attributes, "iid", "object_attributes")),
                title=attributes.get("title") or "",
                body=attributes.get("description"),
                state=attributes.get("state") or "",
                source_branch=attributes.get("source_branch") or "",
                target_branch=attributes.get("target_branch") or "",
                head_sha=(
                    optional_object(attributes, "last_commit", "object_attributes")
                    or {}
                ).get("id"),
                author=author,
            )

        return CanonicalEvent(
            platform=self.platform,
            event_type=object_kind
            or header_value(headers, self.event_header)
            or "unknown",
            action=attributes.get("action") or "",
            repository=repository,
            pull_request=pull_request,
            sender=sender,
            raw_payload=raw_payload,
        )

    def should_process(self, event: CanonicalEvent) -> bool:
        return (
            event.event_type == "merge_request"
            and event.action.lower() in PROCESSABLE_ACTIONS
            and event.pull_request is not None
        )
