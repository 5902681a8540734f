import json
from typing import Any, Optional
from unittest.mock import MagicMock

from hookreview.models.platform import Platform
from hookreview.models.webhook_event import (
    CanonicalEvent,
    WebhookPullRequest,
    WebhookRepository,
    WebhookUser,
)


def mock_response(
    status_code: int = 200,
    json_data: Any = None,
    text: Optional[str] = None,
    headers: Optional[dict] = None,
) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data
    response.text = text if text is not None else json.dumps(json_data)
    response.headers = headers or {}
    return response


def make_event(
    platform: Platform = Platform.GITHUB,
    full_name: str = "octo/widgets",
    remote_id: str = "42",
    number: int = 7,
    action: str = "opened",
    event_type: str = "pull_request",
    with_pull_request: bool = True,
) -> CanonicalEvent:
    pull_request = None
    if with_pull_request:
        pull_request = WebhookPullRequest(
            number=number,
            title="Add widgets",
            state="open",
            source_branch="feature/widgets",
            target_branch="main",
            head_sha="abc123",
            author=WebhookUser(id="1", username="octocat"),
        )
    return CanonicalEvent(
        platform=platform,
        event_type=event_type,
        action=action,
        repository=WebhookRepository(
            remote_id=remote_id, name=full_name.split("/")[-1], full_name=full_name
        ),
        pull_request=pull_request,
        sender=WebhookUser(id="1", username="octocat"),
        raw_payload="{}",
    )


GITHUB_PR_PAYLOAD = {
    "action": "opened",
    "number": 7,
    "pull_request": {
        "number": 7,
        "title": "Add widgets",
        "body": "Adds the widget module.",
        "state": "open",
        "head": {"ref": "feature/widgets", "sha": "abc123"},
        "base": {"ref": "main", "sha": "def456"},
        "user": {"id": 1, "login": "octocat"},
    },
    "repository": {
        "id": 42,
        "name": "widgets",
        "full_name": "octo/widgets",
        "clone_url": "https://github.com/octo/widgets.git",
    },
    "sender": {"id": 1, "login": "octocat"},
}

GITLAB_MR_PAYLOAD = {
    "object_kind": "merge_request",
    "user": {"id": 5, "username": "gitlab-dev"},
    "project": {
        "id": 99,
        "name": "widgets",
        "path_with_namespace": "group/widgets",
        "git_http_url": "https://gitlab.com/group/widgets.git",
    },
    "object_attributes": {
        "iid": 3,
        "title": "Add widgets",
        "description": "Adds the widget module.",
        "state": "opened",
        "action": "open",
        "source_branch": "feature/widgets",
        "target_branch": "main",
        "last_commit": {"id": "cafe01"},
        "author_id": 5,
    },
}

BITBUCKET_PR_PAYLOAD = {
    "actor": {"uuid": "{u-1}", "nickname": "bb-dev", "display_name": "BB Dev"},
    "repository": {
        "uuid": "{repo-uuid}",
        "name": "widgets",
        "full_name": "team/widgets",
    },
    "pullrequest": {
        "id": 11,
        "title": "Add widgets",
        "description": "Adds the widget module.",
        "state": "OPEN",
        "source": {"branch": {"name": "feature/widgets"}, "commit": {"hash": "beef02"}},
        "destination": {"branch": {"name": "main"}},
        "author": {"uuid": "{u-1}", "display_name": "BB Dev"},
    },
}
