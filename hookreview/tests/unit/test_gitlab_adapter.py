from unittest.mock import patch

from hookreview.integrations.gitlab.gitlab import GitLab, count_diff_lines
from hookreview.models.code_review import ChangeType
from hookreview.models.platform import PlatformCredentials
from hookreview.tests.unit.helpers import mock_response

CREDENTIALS = PlatformCredentials(access_token="gl-token")

MR = {
    "iid": 3,
    "title": "Add widgets",
    "source_branch": "feature/widgets",
    "target_branch": "main",
    "state": "opened",
    "author": {"username": "gitlab-dev"},
    "diff_refs": {"base_sha": "base0", "start_sha": "start0", "head_sha": "head0"},
}


def _diff(index, **flags):
    diff = {"new_path": f"lib/file_{index}.rb", "old_path": f"lib/file_{index}.rb",
            "diff": "@@ -1 +1 @@\n-a\n+b\n+c\n"}
    diff.update(flags)
    return diff


def test_count_diff_lines_ignores_file_headers():
    diff = "--- a/x\n+++ b/x\n@@ -1,2 +1,2 @@\n-old\n+new\n+added\n context"

    assert count_diff_lines(diff) == (2, 1)
    assert count_diff_lines(None) == (0, 0)


@patch("hookreview.utils.http.requests.request")
def test_get_pull_request_files_follows_next_page_header(mock_request):
    mock_request.side_effect = [
        mock_response(200, [_diff(i) for i in range(100)], headers={"X-Next-Page": "2"}),
        mock_response(200, [_diff(100, new_file=True)], headers={"X-Next-Page": ""}),
    ]

    files = GitLab().get_pull_request_files("group/widgets", 3, CREDENTIALS)

    assert len(files) == 101
    assert files[0].additions == 2 and files[0].deletions == 1
    assert files[-1].change_type == ChangeType.ADDED
    first_call = mock_request.call_args_list[0]
    assert first_call.args[1] == (
        "https://gitlab.com/api/v4/projects/group%2Fwidgets/merge_requests/3/diffs"
    )
    assert first_call.kwargs["headers"]["PRIVATE-TOKEN"] == "gl-token"


@patch("hookreview.utils.http.requests.request")
def test_get_pull_request_files_stops_on_empty_next_page(mock_request):
    mock_request.return_value = mock_response(
        200, [_diff(i) for i in range(100)], headers={"X-Next-Page": ""}
    )

    files = GitLab().get_pull_request_files("group/widgets", 3, CREDENTIALS)

    assert len(files) == 100
    assert mock_request.call_count == 1


@patch("hookreview.utils.http.requests.request")
def test_get_pull_request_reads_diff_refs(mock_request):
    mock_request.return_value = mock_response(200, MR)

    pr = GitLab().get_pull_request("group/widgets", 3, CREDENTIALS)

    assert pr.head_sha == "head0"
    assert pr.base_sha == "base0"
    assert pr.start_sha == "start0"
    assert pr.author == "gitlab-dev"


@patch("hookreview.utils.http.requests.request")
def test_inline_comment_posts_positioned_discussion(mock_request):
    mock_request.side_effect = [mock_response(200, MR), mock_response(201, {"id": "d"})]

    GitLab().post_inline_comment(
        "group/widgets", 3, "lib/file_1.rb", 4, "Check this", CREDENTIALS
    )

    post = mock_request.call_args
    assert post.args[0] == "POST"
    assert post.args[1].endswith("/merge_requests/3/discussions")
    assert post.kwargs["json"]["position"] == {
        "position_type": "text",
        "base_sha": "base0",
        "start_sha": "start0",
        "head_sha": "head0",
        "new_path": "lib/file_1.rb",
        "new_line": 4,
    }


@patch("hookreview.utils.http.requests.request")
def test_summary_comment_posts_note(mock_request):
    mock_request.return_value = mock_response(201, {"id": 1})

    GitLab().post_summary_comment("group/widgets", 3, "All good", CREDENTIALS)

    assert mock_request.call_args.args[1].endswith("/merge_requests/3/notes")
    assert mock_request.call_args.kwargs["json"] == {"body": "All good"}


def test_validate_signature_compares_token():
    gitlab = GitLab()

    assert gitlab.validate_signature(b"{}", "token-1", "token-1")
    assert not gitlab.validate_signature(b"{}", "token-2", "token-1")
    assert not gitlab.validate_signature(b"{}", None, "token-1")


@patch("hookreview.utils.http.requests.request")
def test_get_repository_info_maps_visibility(mock_request):
    mock_request.side_effect = [
        mock_response(
            200,
            {
                "id": 99,
                "name": "widgets",
                "path_with_namespace": "group/widgets",
                "default_branch": "main",
                "visibility": "public",
            },
        ),
        mock_response(200, {"id": 100, "name": "secret", "visibility": "internal"}),
    ]

    public = GitLab().get_repository_info("group/widgets", CREDENTIALS)
    internal = GitLab().get_repository_info("group/secret", CREDENTIALS)

    assert public.id == "99"
    assert public.full_name == "group/widgets"
    assert public.default_branch == "main"
    assert public.private is False
    assert internal.private is True
    assert internal.full_name == "group/secret"
    assert mock_request.call_args_list[0].args[1] == (
        "https://gitlab.com/api/v4/projects/group%2Fwidgets"
    )
