"""Refresh coordination: at most one reconciliation pass at a time.

The coordinator has two states, idle and running. A request made while
idle runs immediately. A request made while running overwrites the single
pending slot and returns at once; when the in-flight pass finishes, the
pending request (the latest one) runs exactly once before the coordinator
goes idle again.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class RefreshCoordinator:
    """Serialize refresh passes with last-request-wins coalescing.

    Args:
        run_pass: Coroutine function executing one pass for a request.
        on_change: Optional callback invoked with ``True`` when the
            coordinator starts running and ``False`` when it goes idle.
    """

    def __init__(
        self,
        run_pass: Callable[[Any], Awaitable[None]],
        on_change: Callable[[bool], None] | None = None,
    ) -> None:
        self._run_pass = run_pass
        self._on_change = on_change
        self._running = False
        self._pending: Any = None
        self._has_pending = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    async def request(self, req: Any) -> bool:
        """Run *req*, or queue it if a pass is already running.

        Returns:
            ``True`` when this call ran the pass (and any request queued
            meanwhile), ``False`` when the request was queued.
        """
        if self._running:
            self._pending = req
            self._has_pending = True
            logger.debug("Refresh in progress; request queued")
            return False

        self._set_running(True)
        try:
            current: Any = req
            while True:
                try:
                    await self._run_pass(current)
                except Exception:
                    logger.exception("Refresh pass failed")
                if not self._has_pending:
                    break
                current = self._pending
                self._pending = None
                self._has_pending = False
        finally:
            self._set_running(False)
        return True

    def _set_running(self, running: bool) -> None:
        self._running = running
        if self._on_change is not None:
            self._on_change(running)
