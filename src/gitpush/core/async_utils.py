"""Async helpers for calling blocking I/O from the sync session."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread without blocking the loop.

    Used for every GitHub request and every local file read or write so
    the event loop stays free for new refresh requests and MCP traffic.

    Example:
        tip = await run_sync(client.get_branch_tip, owner, repo, "main")
    """
    return await asyncio.to_thread(func, *args, **kwargs)
