"""File-system change watcher feeding debounced refresh requests.

A watchdog ``Observer`` watches the vault recursively. Relevant events
are marshalled onto the asyncio loop, where a ``Debouncer`` restarts a
short timer on every event; when the timer expires a local-only refresh
(``fetch_remote=False``) is requested. Bursts of saves therefore cost a
single reconciliation pass, and the coordinator coalesces any overlap.

Ignored: directory modification events, anything inside the state
directory, and anything inside a ``.git`` folder.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

SUBSCRIBED_EVENTS = (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
)

DEFAULT_DELAY = 1.0


class Debouncer:
    """Run *callback* once, *delay* seconds after the last ``trigger()``.

    Must be used from the thread running *loop*.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        delay: float = DEFAULT_DELAY,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.callback = callback
        self.delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        """Restart the timer."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        task = self.loop.create_task(self.callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class VaultEventHandler(FileSystemEventHandler):
    """Forward relevant watchdog events to *notify* (called on the
    observer thread)."""

    def __init__(
        self,
        vault_root: Path,
        notify: Callable[[], None],
        excluded: tuple[str, ...] = (),
    ) -> None:
        self.vault_root = Path(vault_root).resolve()
        self.notify = notify
        self.excluded = excluded

    def is_excluded(self, path: str | bytes) -> bool:
        if isinstance(path, bytes):
            path = path.decode(errors="replace")
        try:
            rel = Path(path).resolve().relative_to(self.vault_root)
        except ValueError:
            return True
        parts = rel.parts
        if ".git" in parts:
            return True
        return any(
            parts[: len(Path(ex).parts)] == Path(ex).parts for ex in self.excluded
        )

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in SUBSCRIBED_EVENTS:
            return
        if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
            return
        paths = [event.src_path]
        if event.event_type == EVENT_TYPE_MOVED:
            paths.append(event.dest_path)
        if all(self.is_excluded(p) for p in paths):
            return
        logger.debug("Change detected: %s %s", event.event_type, event.src_path)
        self.notify()


class ChangeWatcher:
    """Watch the vault and request local refreshes on change.

    Args:
        vault_root: Directory to watch.
        session: Object with an async ``refresh(fetch_remote=...)``.
        loop: Event loop the session runs on.
        delay: Debounce delay in seconds.
        state_dir: Vault-relative state directory to ignore.
    """

    def __init__(
        self,
        vault_root: Path,
        session,
        loop: asyncio.AbstractEventLoop,
        delay: float = DEFAULT_DELAY,
        state_dir: str = ".gitpush",
    ) -> None:
        self.vault_root = Path(vault_root)
        self.session = session
        self.loop = loop
        self.debouncer = Debouncer(self._refresh, delay, loop)
        self.handler = VaultEventHandler(
            self.vault_root, self._notify, excluded=(state_dir,)
        )
        self._observer: Observer | None = None

    async def _refresh(self) -> None:
        await self.session.refresh(fetch_remote=False)

    def _notify(self) -> None:
        self.loop.call_soon_threadsafe(self.debouncer.trigger)

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self.handler, str(self.vault_root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes", self.vault_root)

    def stop(self) -> None:
        self.debouncer.cancel()
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=10)
        self._observer = None
        logger.info("Stopped watching %s", self.vault_root)
