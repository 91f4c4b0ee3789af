"""Tests for mcp/tools/errors.py -- error response builders.

Covers:
- build_error_response() structure and format
- translate_github_error() status code mapping
"""

import mcp.types as types
import pytest

from gitpush.core.client import GitHubAPIError
from gitpush.mcp.tools.errors import build_error_response, translate_github_error


def _get_error_text(result: types.CallToolResult) -> str:
    """Extract text from first content item with type narrowing for Pyright."""
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


class TestBuildErrorResponse:
    def test_structure(self):
        result = build_error_response("sync_blocked", "Nothing to push", "Refresh.")
        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert len(result.content) == 1
        assert _get_error_text(result) == (
            "Error (sync_blocked): Nothing to push\n\nAction: Refresh."
        )


class TestTranslateGitHubError:
    @pytest.mark.parametrize(
        "status, error_type",
        [
            (404, "not_found"),
            (401, "permission_denied"),
            (403, "permission_denied"),
            (409, "version_conflict"),
            (422, "validation_error"),
            (500, "server_error"),
            (502, "server_error"),
        ],
    )
    def test_mapping(self, status, error_type):
        result = translate_github_error(GitHubAPIError(status, "msg"))
        text = _get_error_text(result)
        assert result.isError is True
        assert text.startswith(f"Error ({error_type}): GitHub API error {status}: msg")

    def test_unprocessable_without_sha_is_validation(self):
        error = GitHubAPIError(422, "Invalid request: path is not valid")
        assert not error.is_precondition_failure
        text = _get_error_text(translate_github_error(error))
        assert text.startswith("Error (validation_error)")

    def test_stale_sha_is_version_conflict(self):
        error = GitHubAPIError(422, "sha wasn't supplied")
        assert error.is_precondition_failure
        text = _get_error_text(translate_github_error(error))
        assert text.startswith("Error (version_conflict)")

    def test_conflict_suggests_refresh(self):
        text = _get_error_text(translate_github_error(GitHubAPIError(409, "sha")))
        assert "gitpush_refresh" in text
