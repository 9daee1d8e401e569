"""Writer: push-based sink with serialized writes, and its WriterController.

Every call into the sink goes through a single write slot: one `write` (or
the final `close`) is in flight at a time, and callers queue for the slot in
call order. A failed write raises to its own caller only; the next queued
write still runs.

A writer ends either closed (`close()`) or aborted (`abort(reason)`, or the
sink calling `controller.error(reason)`). Whichever happens first is final.
"""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import anyio

from klaw_streams._logging import get_logger
from klaw_streams._tasks import call_hook, hook_of, noop, spawn
from klaw_streams.errors import WriterAbortedError, WriterClosedError, raisable
from klaw_streams.types import WriterState

__all__ = ['Writer', 'WriterController']

logger = get_logger(__name__)


class WriterController[T]:
    """Capability object handed to a sink's `start`, `write` and `close` hooks."""

    __slots__ = ('_writer',)

    def __init__(self, writer: Writer[T]) -> None:
        self._writer = writer

    def error(self, reason: Any = None) -> None:
        """Put the writer in the aborted state without calling the sink's `abort` hook.

        Later `write()` calls raise `reason` (as-is for exceptions, inside a
        StreamError otherwise, WriterAbortedError for None). No-op once the
        writer is closed or aborted.

        Args:
            reason: The error to raise to later writers.
        """
        if self._writer._fail(reason):
            logger.debug('writer.errored', writer=self._writer._name, reason=repr(reason))


class Writer[T]:
    """Push-based sink that serializes concurrent writes.

    Must be created inside a running event loop: the sink's `start` hook runs
    as a background task, and writes wait for it to finish.

    Type Parameters:
        T: Type of the chunks written.

    Example:
        ```python
        class Collect(WriterSink):
            def __init__(self):
                self.items = []

            async def write(self, chunk, controller):
                self.items.append(chunk)

        sink = Collect()
        writer = Writer(sink)
        await writer.write(1)
        await writer.close()
        ```
    """

    __slots__ = (
        '_abort',
        '_close',
        '_controller',
        '_error',
        '_exception',
        '_in_flight',
        '_name',
        '_started',
        '_state',
        '_task',
        '_waiting',
        '_write',
    )

    def __init__(self, sink: Any = None) -> None:
        """Create a writer and start its sink.

        Args:
            sink: Object with optional `start(controller)`,
                `write(chunk, controller)`, `close(controller)` and
                `abort(reason)` hooks, plain or async. None for a writer
                that discards everything.

        Raises:
            RuntimeError: If there is no running event loop.
        """
        self._write = hook_of(sink, 'write') or noop
        self._close = hook_of(sink, 'close') or noop
        self._abort = hook_of(sink, 'abort') or noop
        self._state = WriterState.OPEN
        self._error: Any = None
        self._exception: BaseException | None = None
        self._waiting: deque[anyio.Event] = deque()
        self._in_flight = False
        self._started = anyio.Event()
        self._controller: WriterController[T] = WriterController(self)
        self._name = f'writer-{id(self):x}'
        self._task = spawn(self._start, hook_of(sink, 'start') or noop, name=self._name)

    @property
    def state(self) -> WriterState:
        """Current lifecycle state."""
        return self._state

    @property
    def pending_writes(self) -> int:
        """Calls holding or queued for the write slot."""
        return len(self._waiting) + (1 if self._in_flight else 0)

    async def _start(self, start: Callable[..., Any]) -> None:
        try:
            await call_hook(start, self._controller)
        except Exception as exc:
            logger.debug('writer.start_failed', writer=self._name, error=repr(exc))
            self._fail(exc)
        finally:
            self._started.set()

    def _fail(self, reason: Any) -> bool:
        if self._state is not WriterState.OPEN:
            return False
        self._state = WriterState.ABORTED
        self._error = reason
        self._exception = raisable(reason, WriterAbortedError())
        return True

    def _check_writable(self) -> None:
        if self._state is WriterState.CLOSED:
            raise WriterClosedError()
        if self._exception is not None:
            raise self._exception

    @asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        """Hold the write slot, queueing behind earlier callers."""
        if self._in_flight:
            event = anyio.Event()
            self._waiting.append(event)
            try:
                await event.wait()
            except BaseException:
                if event.is_set():
                    self._release()
                else:
                    self._waiting.remove(event)
                raise
        else:
            self._in_flight = True

        try:
            yield
        finally:
            self._release()

    def _release(self) -> None:
        # Hand the slot straight to the next caller; in-flight stays set.
        if self._waiting:
            self._waiting.popleft().set()
        else:
            self._in_flight = False

    async def _wait_started(self) -> None:
        if not self._started.is_set():
            await self._started.wait()

    async def write(self, chunk: T) -> None:
        """Write a chunk once the sink has started and earlier writes have settled.

        Args:
            chunk: Passed to the sink's `write` hook.

        Raises:
            WriterClosedError: If the writer is closed.
            BaseException: The abort reason if the writer is aborted, or
                whatever the sink's `write` hook raised for this chunk.
        """
        self._check_writable()
        async with self._slot():
            await self._wait_started()
            self._check_writable()
            await call_hook(self._write, chunk, self._controller)

    async def close(self) -> None:
        """Close the writer after the writes already issued, calling the sink's `close` hook once.

        Idempotent.

        Raises:
            BaseException: The abort reason if the writer was aborted, or
                whatever the sink's `close` hook raised.
        """
        if self._exception is not None:
            raise self._exception
        async with self._slot():
            await self._wait_started()
            if self._state is WriterState.CLOSED:
                return
            if self._exception is not None:
                raise self._exception
            self._state = WriterState.CLOSED
            logger.debug('writer.closed', writer=self._name)
            await call_hook(self._close, self._controller)

    async def abort(self, reason: Any = None) -> Any:
        """Abort the writer and call the sink's `abort` hook.

        Later writes raise `reason`. A write already in flight is not
        interrupted. No-op if the writer is already closed or aborted.

        Args:
            reason: Why the writer is aborted.

        Returns:
            `reason`.
        """
        if not self._fail(reason):
            return reason

        logger.debug('writer.aborted', writer=self._name, reason=repr(reason))
        try:
            await call_hook(self._abort, reason)
        except Exception as exc:
            logger.warning('writer.abort_failed', writer=self._name, exc_info=exc)
        return reason

    async def __aenter__(self) -> Writer[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close on a clean exit, abort with the exception otherwise."""
        if exc_val is None:
            await self.close()
        else:
            await self.abort(exc_val)
