"""
Fire-and-forget dispatch for side effects that must not affect a response.

Work is scheduled as an asyncio task. Exceptions are logged and dropped.
Task references are kept until completion so they are not garbage
collected mid-flight, and drain() lets shutdown wait for them.
"""

import asyncio
import logging
from typing import Awaitable, Optional, Set

logger = logging.getLogger(__name__)

_pending: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.warning(f"Background task {task.get_name()} was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc!r}")


def fire_and_forget(coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
    """Schedule a coroutine without awaiting its result."""
    task = asyncio.ensure_future(coro)
    if name:
        task.set_name(name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


def pending_count() -> int:
    return len(_pending)


async def drain(timeout: float = 10.0) -> None:
    """Wait for scheduled tasks, cancelling any still running after timeout."""
    if not _pending:
        return
    tasks = list(_pending)
    logger.info(f"Waiting for {len(tasks)} background tasks")
    _, still_running = await asyncio.wait(tasks, timeout=timeout)
    for task in still_running:
        task.cancel()
