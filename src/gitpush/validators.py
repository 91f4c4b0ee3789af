"""
Input validation for paths and identifiers sent to GitHub.

Validation runs before any write so a malformed path never reaches the
contents API.
"""


def format_validation_error(field_name: str, reason: str) -> str:
    """Generate a consistent error message, e.g. ``"Repo path cannot be empty"``."""
    return f"{field_name} {reason}"


def validate_repo_path(repo_path: str) -> tuple[bool, str]:
    """
    Validate a path inside the repository.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot start or end with '/'
        - Cannot contain '.' or '..' segments (path traversal protection)
        - Cannot have empty path segments (e.g., 'docs//a.md')
    """
    if not repo_path or not repo_path.strip():
        return (
            False,
            format_validation_error("Repo path", "cannot be empty"),
        )

    if repo_path.startswith("/") or repo_path.endswith("/"):
        return (
            False,
            format_validation_error(
                "Repo path", "cannot start or end with '/'"
            ),
        )

    segments = repo_path.split("/")
    if any(s in (".", "..") for s in segments):
        return (
            False,
            format_validation_error(
                "Repo path", "cannot contain '.' or '..' segments"
            ),
        )

    if any(s == "" for s in segments):
        return (
            False,
            format_validation_error(
                "Repo path", "cannot have empty path segments"
            ),
        )

    return (True, "")


def validate_branch_name(branch: str) -> tuple[bool, str]:
    """
    Validate a branch name (a subset of ``git check-ref-format`` rules).

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not branch or not branch.strip():
        return (
            False,
            format_validation_error("Branch", "cannot be empty"),
        )

    if branch != branch.strip() or " " in branch:
        return (
            False,
            format_validation_error("Branch", "cannot contain spaces"),
        )

    if ".." in branch or branch.startswith("/") or branch.endswith("/"):
        return (
            False,
            format_validation_error(
                "Branch", "cannot contain '..' or start/end with '/'"
            ),
        )

    return (True, "")
