"""Error response builders for MCP tool handlers.

This module provides structured error responses with corrective actions
to help AI agents recover from errors without human intervention.
"""

import mcp.types as types

from ...core.client import GitHubAPIError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, permission_denied,
            version_conflict, sync_blocked, validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("sync_blocked", "Nothing to push", "Call gitpush_status.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


_GITHUB_ACTIONS: dict[str, str] = {
    "not_found": "Check the repo and branch in .gitpush.json, then call gitpush_refresh.",
    "permission": "Check that the GitHub token is set and has contents write access.",
    "version": "The remote changed meanwhile. Call gitpush_refresh and review the changes before retrying.",
    "invalid": "Check the path and branch, then call gitpush_refresh before retrying.",
    "server": "Retry later or check https://www.githubstatus.com.",
}


def translate_github_error(error: GitHubAPIError) -> types.CallToolResult:
    """Translate a GitHub REST error to a structured error response."""
    match error.status_code:
        case 404:
            return build_error_response(
                "not_found", str(error), _GITHUB_ACTIONS["not_found"]
            )
        case 401 | 403:
            return build_error_response(
                "permission_denied", str(error), _GITHUB_ACTIONS["permission"]
            )
        case 409 | 422 if error.is_precondition_failure:
            return build_error_response(
                "version_conflict", str(error), _GITHUB_ACTIONS["version"]
            )
        case 422:
            return build_error_response(
                "validation_error", str(error), _GITHUB_ACTIONS["invalid"]
            )
        case _:
            return build_error_response(
                "server_error", str(error), _GITHUB_ACTIONS["server"]
            )
