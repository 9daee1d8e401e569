"""Background task tracking and hook invocation helpers.

Readers and writers start their producer and sink hooks as soon as they are
constructed, and `pipe_through` pumps data without a caller awaiting it. These
tasks outlive the call that created them, so they are scheduled on the running
event loop and referenced here until they finish.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from klaw_streams._logging import get_logger

__all__ = ['call_hook', 'hook_of', 'noop', 'pending_tasks', 'spawn']

logger = get_logger(__name__)

_tasks: set[asyncio.Task[Any]] = set()


def spawn(fn: Callable[..., Awaitable[Any]], *args: Any, name: str | None = None) -> asyncio.Task[Any]:
    """Schedule `fn(*args)` as a background task on the running event loop.

    The task is kept alive until it completes. Failures that escape `fn`
    are logged; stream code is expected to route its own errors into the
    owning reader or writer before that happens.

    Args:
        fn: Async callable to run.
        *args: Positional arguments for fn.
        name: Task name, used in log events.

    Returns:
        The scheduled asyncio.Task.

    Raises:
        RuntimeError: If there is no running event loop.
    """
    task = asyncio.get_running_loop().create_task(fn(*args), name=name)
    _tasks.add(task)
    task.add_done_callback(_task_done)
    return task


def _task_done(task: asyncio.Task[Any]) -> None:
    _tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error('task.failed', task=task.get_name(), exc_info=exc)


def pending_tasks() -> int:
    """Number of background tasks that have not finished yet."""
    return len(_tasks)


async def noop(*_args: Any) -> None:
    """Default for hooks a source or sink does not define."""


def hook_of(obj: Any, name: str) -> Callable[..., Any] | None:
    """Return the named hook of a source or sink, or None if it has none."""
    if obj is None:
        return None
    hook = getattr(obj, name, None)
    return hook if callable(hook) else None


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call a plain or async hook and return its (awaited) result."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
