"""Session and report formatting functions.

Provides presentation-free and human-readable output:

- ``render_panel`` -- plain-dict description of the sync panel.
- ``format_status`` -- text summary of a session view.
- ``format_sync_report`` -- post-push/pull summary.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SessionView, SyncReport

NO_CONFIG_MESSAGE = (
    "No repository configuration found. Please create a '.gitpush.json' "
    "file in your project folder."
)
NO_CHANGES_MESSAGE = "No changes detected."

PUSH_PULL_WARNING = (
    "Warning: You have remote changes. Please Pull before Pushing to avoid "
    "conflicts."
)


def _relative(view: SessionView, local_path: str | None, repo_path: str) -> str:
    """Path shown to the user: relative to the sync root."""
    if local_path is None:
        return repo_path
    root = (view.root_path or "").strip("/")
    if root and local_path.startswith(root + "/"):
        return local_path[len(root) + 1 :]
    return local_path


# ------------------------------------------------------------------
# Status line
# ------------------------------------------------------------------


def status_line(view: SessionView) -> tuple[str, str]:
    """Return ``(text, tone)`` for the connection status.

    Tones: ``checking``, ``error``, ``synced``, ``offline``.
    """
    if view.is_refreshing:
        return "Checking for changes...", "checking"
    if view.remote_error:
        return f"Error: {view.remote_error}", "error"
    if view.has_snapshot:
        return "Synced with GitHub", "synced"
    return "Not synced (Offline?)", "offline"


# ------------------------------------------------------------------
# Panel description
# ------------------------------------------------------------------


def _push_button(view: SessionView) -> dict:
    count = len(view.push)
    tooltip = None
    warning = False
    enabled = count > 0
    if count and view.pull:
        tooltip = PUSH_PULL_WARNING
        warning = True
    if view.conflicts:
        enabled = False
        tooltip = "Please resolve conflicts before pushing."
    if view.remote_error:
        enabled = False
    return {
        "label": f"Push ({count})" if count else "Push",
        "enabled": enabled and view.has_snapshot,
        "tooltip": tooltip,
        "warning": warning,
        "action": "push",
    }


def _pull_button(view: SessionView) -> dict:
    count = len(view.pull)
    tooltip = None
    enabled = count > 0
    if view.conflicts:
        enabled = False
        tooltip = "Please resolve conflicts before pulling."
    if view.remote_error:
        enabled = False
    return {
        "label": f"Pull ({count})" if count else "Pull",
        "enabled": enabled and view.has_snapshot,
        "tooltip": tooltip,
        "warning": False,
        "action": "pull",
    }


def render_panel(view: SessionView) -> dict:
    """Describe the sync panel for *view* as plain data.

    The result contains no markup; any front end can draw it.

    Returns:
        ``{"configured": False, "message": ...}`` without a repo config,
        otherwise a dict with ``repo``, ``status``, ``conflicts``,
        ``buttons``, ``push_changes``, ``pull_changes`` and ``empty``.
    """
    if view.repo_config is None:
        return {"configured": False, "message": NO_CONFIG_MESSAGE}

    text, tone = status_line(view)
    empty = not (view.push or view.pull or view.conflicts)

    return {
        "configured": True,
        "repo": {
            "name": view.repo_config.repo,
            "source": view.root_path or "/",
            "target": view.repo_config.path or "/",
            "branch": view.branch,
            "refresh_action": "refresh",
        },
        "status": {"text": text, "tone": tone},
        "conflicts": [
            {
                "path": _relative(view, c.local_path, c.repo_path),
                "repo_path": c.repo_path,
                "actions": [
                    {"label": "Keep Local", "action": "keep-local"},
                    {"label": "Keep Remote", "action": "keep-remote"},
                ],
            }
            for c in view.conflicts
        ],
        "buttons": [_push_button(view), _pull_button(view)],
        "push_changes": [
            {
                "path": _relative(view, i.local_path, i.repo_path),
                "status": i.status.value,
            }
            for i in view.push
        ],
        "pull_changes": [
            {
                "path": _relative(view, i.local_path, i.repo_path),
                "status": i.status.value,
            }
            for i in view.pull
        ],
        "empty": NO_CHANGES_MESSAGE if empty else None,
    }


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_status(view: SessionView) -> str:
    """Format a session view as human-readable text."""
    if view.repo_config is None:
        return NO_CONFIG_MESSAGE

    text, _ = status_line(view)
    lines = [
        f"Repository: {view.repo_config.repo} ({view.branch})",
        f"Source: {view.root_path or '/'}",
        f"Target: {view.repo_config.path or '/'}",
        f"Status: {text}",
        "",
    ]

    if view.conflicts:
        lines.append(f"Conflicts ({len(view.conflicts)}):")
        for c in view.conflicts:
            lines.append(f"  {c.repo_path}")
        lines.append("")

    if view.push:
        lines.append(f"Local changes (push {len(view.push)}):")
        for i in view.push:
            lines.append(f"  {i.repo_path}  [{i.status.value}]")
        lines.append("")

    if view.pull:
        lines.append(f"Remote changes (pull {len(view.pull)}):")
        for i in view.pull:
            lines.append(f"  {i.repo_path}  [{i.status.value}]")
        lines.append("")

    if not (view.push or view.pull or view.conflicts):
        lines.append(NO_CHANGES_MESSAGE)

    return "\n".join(lines).rstrip()


def format_sync_report(report: SyncReport) -> str:
    """Format a push or pull report as human-readable text.

    Args:
        report: The completed report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    if report.operation == "push":
        verb = "Push"
        lines.append(f"Push to '{report.branch}'")
    else:
        verb = "Pull"
        lines.append(f"Pull from '{report.branch}'")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    applied = report.applied
    skipped = [r for r in report.skipped if r.repo_path != report.failed_path]

    if report.success:
        lines.append(f"{verb} successful: {len(applied)} applied")
    else:
        lines.append(
            f"{verb} failed at {report.failed_path}: {report.error}"
        )
        lines.append(f"Applied before failure: {len(applied)}")
    lines.append("")

    if applied:
        lines.append("Applied:")
        for r in applied:
            lines.append(f"  {r.repo_path}  [{r.action}]")
        lines.append("")

    if skipped:
        lines.append("Skipped:")
        for r in skipped:
            lines.append(f"  {r.repo_path}: {r.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Structured output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "repo_path": r.repo_path,
            "action": r.action,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        results_list.append(entry)

    return {
        "operation": report.operation,
        "branch": report.branch,
        "success": report.success,
        "error": report.error,
        "failed_path": report.failed_path,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "applied": len(report.applied),
            "skipped": len(report.skipped),
        },
        "results": results_list,
    }


def view_to_json(view: SessionView) -> dict:
    """Convert a session view to a structured dict."""
    text, tone = status_line(view)
    return {
        "configured": view.repo_config is not None,
        "repo": view.repo_config.repo if view.repo_config else None,
        "root": view.root_path,
        "branch": view.branch,
        "status": {"text": text, "tone": tone},
        "can_push": view.can_push,
        "can_pull": view.can_pull,
        "push": [
            {"repo_path": i.repo_path, "status": i.status.value}
            for i in view.push
        ],
        "pull": [
            {"repo_path": i.repo_path, "status": i.status.value}
            for i in view.pull
        ],
        "conflicts": [
            {
                "repo_path": c.repo_path,
                "local_hash": c.local_hash,
                "remote_hash": c.remote_hash,
            }
            for c in view.conflicts
        ],
    }
