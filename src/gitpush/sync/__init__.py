"""Hash-based sync between a local vault folder and a GitHub repository.

Architecture
------------
Every path is classified from three git blob hashes: the local file,
the remote blob at the branch tip, and the hash recorded at the last
successful sync. Whichever side still matches the recorded hash is the
unchanged side; the other side's change is propagated. When both sides
moved, the path is a conflict that the user resolves by keeping one side.

Modules:

- ``hashing``     -- git blob SHA-1 of raw bytes.
- ``scanner``     -- ``LocalScanner`` and ``.gitignore`` matching.
- ``remote``      -- ``fetch_remote_snapshot``: branch tip tree listing.
- ``state``       -- ``SyncStateStore``: the persisted settings blob.
- ``reconciler``  -- ``classify_path`` / ``classify``: three-way table.
- ``resolver``    -- forced push/pull items from conflict decisions.
- ``attachments`` -- image references embedded in Markdown.
- ``executor``    -- ``PushExecutor`` / ``PullExecutor``: fail-fast batches.
- ``coordinator`` -- ``RefreshCoordinator``: one pass at a time.
- ``engine``      -- ``SyncSession``: per-root state and user actions.
- ``watcher``     -- ``ChangeWatcher``: debounced refresh on file changes.
- ``reporter``    -- panel description, text and JSON formatting.

Usage example
-------------
::

    session = SyncSession(config, client, storage, state_store,
                          active_path="notes/todo.md")
    await session.refresh(fetch_remote=True)
    print(format_status(session.view()))
    report = await session.push("Update notes")
    print(format_sync_report(report))
"""

from .engine import SyncBlockedError, SyncSession
from .models import (
    Classification,
    ConflictItem,
    PullItem,
    PushItem,
    RemoteSnapshot,
    RemoteUnreachable,
    ResolutionSide,
    SessionView,
    SyncReport,
    SyncResult,
)
from .reconciler import classify, classify_path
from .reporter import (
    format_status,
    format_sync_report,
    render_panel,
    report_to_json,
)
from .state import SyncStateStore

__all__ = [
    "Classification",
    "ConflictItem",
    "PullItem",
    "PushItem",
    "RemoteSnapshot",
    "RemoteUnreachable",
    "ResolutionSide",
    "SessionView",
    "SyncBlockedError",
    "SyncReport",
    "SyncResult",
    "SyncSession",
    "SyncStateStore",
    "classify",
    "classify_path",
    "format_status",
    "format_sync_report",
    "render_panel",
    "report_to_json",
]
