"""Reader: pull-based source over a bounded channel, and its ReaderController.

A Reader runs its source's `start` hook once, then calls `pull` in a loop
for as long as the reader is open. Producer code pushes items through the
ReaderController; `enqueue` suspends while the channel is full, which is
what stalls the pull loop under backpressure. Consumers call `read()`,
iterate with `async for`, or pipe the reader into a Writer or Transformer.

Completion and failure are sticky and mutually exclusive:
- `controller.close()` pushes an end-of-stream marker behind the buffered
  items, so everything enqueued before it is still delivered.
- `controller.error(reason)` discards whatever is still buffered; every
  pending and future `read()` raises `reason`.
- `reader.close()` is consumer-side cancellation: buffered items are dropped,
  reads finish, pending enqueues fail and the source's `cancel` hook runs.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable, Iterable
from types import TracebackType
from typing import TYPE_CHECKING, Any, Final

from anyio.lowlevel import checkpoint

from klaw_streams._config import current_config
from klaw_streams._logging import get_logger
from klaw_streams._tasks import call_hook, hook_of, noop, spawn
from klaw_streams.channel import BoundedChannel
from klaw_streams.errors import ChannelClosedError, ReaderClosedError, raisable
from klaw_streams.pipe import pipe_through, pipe_to
from klaw_streams.types import FINISHED, ReaderState, ReadResult

if TYPE_CHECKING:
    from klaw_streams.protocols import ReadableWritablePair
    from klaw_streams.stats import ChannelStats
    from klaw_streams.writer import Writer

__all__ = ['Reader', 'ReaderController']

logger = get_logger(__name__)

_EOF: Final = object()


class ReaderController[T]:
    """Capability object through which a source feeds its Reader.

    Created together with its Reader and only forwards calls to it.
    """

    __slots__ = ('_reader',)

    def __init__(self, reader: Reader[T]) -> None:
        self._reader = reader

    @property
    def desired_size(self) -> int:
        """Free buffer slots before `enqueue` starts to suspend."""
        stats = self._reader._channel.statistics()
        return max(0, stats.capacity - stats.queue_size)

    async def enqueue(self, item: T) -> None:
        """Push an item to the reader, suspending while its buffer is full.

        Args:
            item: The item to deliver to `read()`.

        Raises:
            ReaderClosedError: If the reader is closed, closing or errored, or
                becomes so while this call is suspended.

        Example:
            ```python
            class Numbers(ReaderSource):
                async def start(self, controller):
                    for i in range(3):
                        await controller.enqueue(i)
                    await controller.close()
            ```
        """
        reader = self._reader
        if reader._state is not ReaderState.OPEN or reader._closing:
            raise ReaderClosedError()
        try:
            await reader._channel.push(item)
        except ChannelClosedError:
            raise ReaderClosedError() from None

    async def close(self) -> None:
        """Finish the stream after everything already enqueued.

        Stops the pull loop and pushes the end-of-stream marker, suspending
        while the buffer is full. No-op if the reader is already closed,
        closing or errored; returns quietly if `error()` or `reader.close()`
        wins while the marker is still pending.
        """
        reader = self._reader
        if reader._state is not ReaderState.OPEN or reader._closing:
            return

        reader._closing = True
        reader._pull = None
        try:
            await reader._channel.push(_EOF)
        except ChannelClosedError:
            return

        if reader._state is ReaderState.OPEN:
            reader._state = ReaderState.CLOSED
            reader._channel.close(flush=True)
            logger.debug('reader.closed', reader=reader._name, by='source')

    def error(self, reason: Any = None) -> None:
        """Fail the reader with `reason`.

        Anything enqueued but not yet read is discarded. Pending and future
        `read()` calls raise `reason` itself when it is an exception, or a
        StreamError carrying it otherwise. No-op once the reader is closed
        or errored.

        Args:
            reason: The error to surface to consumers.
        """
        self._reader._fail(reason)


class Reader[T]:
    """Pull-based stream over a bounded channel.

    Must be created inside a running event loop: the source's `start` hook,
    and after it the `pull` loop, run as a background task.

    That task is held by the module's task registry until it finishes, so a
    reader dropped while its source is suspended in `enqueue` or `pull` is
    never garbage collected. Close readers you stop consuming, or use
    `async with reader:`.

    Type Parameters:
        T: Type of the items produced.

    Example:
        ```python
        class Letters(ReaderSource):
            async def start(self, controller):
                await controller.enqueue('a')
                await controller.enqueue('b')
                await controller.close()

        reader = Reader(Letters())
        assert [x async for x in reader] == ['a', 'b']
        ```
    """

    __slots__ = (
        '_cancel',
        '_channel',
        '_closing',
        '_controller',
        '_error',
        '_exception',
        '_finished',
        '_name',
        '_pull',
        '_state',
        '_task',
    )

    def __init__(self, source: Any = None, *, capacity: int | None = None) -> None:
        """Create a reader and start its source.

        Args:
            source: Object with optional `start(controller)`, `pull(controller)`
                and `cancel()` hooks, plain or async. None for a reader fed
                only through its controller.
            capacity: Items buffered before `enqueue` suspends. Defaults to the
                configured default capacity (100).

        Raises:
            RuntimeError: If there is no running event loop.
        """
        if capacity is None:
            capacity = current_config().default_capacity

        self._channel: BoundedChannel[Any] = BoundedChannel(capacity)
        self._state = ReaderState.OPEN
        self._closing = False
        self._finished = False
        self._error: Any = None
        self._exception: BaseException | None = None
        self._pull = hook_of(source, 'pull')
        self._cancel = hook_of(source, 'cancel') or noop
        self._controller: ReaderController[T] = ReaderController(self)
        self._name = f'reader-{id(self):x}'
        self._task = spawn(self._run, hook_of(source, 'start') or noop, name=self._name)

    @classmethod
    def from_iterable(cls, items: Iterable[T] | AsyncIterable[T], *, capacity: int | None = None) -> Reader[T]:
        """Create a reader producing the items of a sync or async iterable, then closing.

        Args:
            items: Iterable to drain lazily, one item per pull.
            capacity: Channel capacity, as for the constructor.

        Returns:
            A new Reader.
        """
        return cls(_IterableSource(items), capacity=capacity)

    @property
    def state(self) -> ReaderState:
        """Current lifecycle state."""
        return self._state

    @property
    def controller(self) -> ReaderController[T]:
        """The controller paired with this reader."""
        return self._controller

    def statistics(self) -> ChannelStats:
        """Statistics of the underlying channel."""
        return self._channel.statistics()

    async def _run(self, start: Callable[..., Any]) -> None:
        """Run `start` once, then re-arm `pull` until the pull hook is cleared."""
        try:
            await call_hook(start, self._controller)
            while self._pull is not None:
                await call_hook(self._pull, self._controller)
                await checkpoint()
        except Exception as exc:
            if self._state is ReaderState.OPEN and not self._closing:
                logger.debug('reader.source_failed', reader=self._name, exc_info=exc)
                self._fail(exc)
            elif not isinstance(exc, ReaderClosedError):
                logger.warning('reader.source_failed_after_close', reader=self._name, exc_info=exc)

    def _fail(self, reason: Any) -> None:
        if self._state is not ReaderState.OPEN:
            return
        self._state = ReaderState.ERRORED
        self._error = reason
        self._exception = raisable(reason)
        self._pull = None
        self._channel.close(reason)
        logger.debug('reader.errored', reader=self._name, reason=repr(reason))

    async def read(self) -> ReadResult:
        """Read the next item.

        Concurrent calls are served in call order.

        Returns:
            `ReadResult(done=False, value=item)` for an item, or
            `ReadResult(done=True)` once the stream is finished (and for
            every call after that).

        Raises:
            BaseException: The reason given to `controller.error()`, as-is when
                it is an exception, otherwise wrapped in a StreamError.
        """
        if self._exception is not None:
            raise self._exception
        if self._finished:
            return FINISHED

        try:
            item = await self._channel.pull()
        except ChannelClosedError:
            item = _EOF

        if item is _EOF:
            if self._exception is not None:
                raise self._exception
            self._finished = True
            self._channel.close()
            return FINISHED
        return ReadResult(done=False, value=item)

    async def close(self) -> None:
        """Cancel the stream from the consumer side.

        Drops buffered items, finishes pending and future reads, fails pending
        enqueues and calls the source's `cancel` hook once. Idempotent. An
        errored reader stays errored.
        """
        was_open = self._state is ReaderState.OPEN
        self._finished = True
        if was_open:
            self._state = ReaderState.CLOSED
            self._pull = None
        self._channel.close()
        if not was_open:
            return

        logger.debug('reader.closed', reader=self._name, by='consumer')
        try:
            await call_hook(self._cancel)
        except Exception as exc:
            logger.warning('reader.cancel_failed', reader=self._name, exc_info=exc)

    async def pipe_to(self, writer: Writer[T]) -> None:
        """Write every item into `writer`, then close it. See `klaw_streams.pipe.pipe_to`."""
        await pipe_to(self, writer)

    def pipe_through[U](self, pair: ReadableWritablePair[T, U]) -> Reader[U]:
        """Feed this reader into `pair.writer` and return `pair.reader`.

        See `klaw_streams.pipe.pipe_through`.
        """
        return pipe_through(self, pair)

    def __aiter__(self) -> _ReaderIterator[T]:
        """Iterate over the remaining items.

        Leaving the loop early does not close the reader.
        """
        return _ReaderIterator(self)

    async def __aenter__(self) -> Reader[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the reader on leaving the context."""
        await self.close()


class _ReaderIterator[T]:
    __slots__ = ('_reader',)

    def __init__(self, reader: Reader[T]) -> None:
        self._reader = reader

    def __aiter__(self) -> _ReaderIterator[T]:
        return self

    async def __anext__(self) -> T:
        result = await self._reader.read()
        if result.done:
            raise StopAsyncIteration
        return result.value


_DONE: Final = object()


class _IterableSource[T]:
    """Source pulling one item at a time from a sync or async iterable."""

    def __init__(self, items: Iterable[T] | AsyncIterable[T]) -> None:
        self._async = isinstance(items, AsyncIterable)
        self._iterator: Any = aiter(items) if self._async else iter(items)  # type: ignore[arg-type]

    async def pull(self, controller: ReaderController[T]) -> None:
        if self._async:
            item = await anext(self._iterator, _DONE)
        else:
            item = next(self._iterator, _DONE)
        if item is _DONE:
            await controller.close()
        else:
            await controller.enqueue(item)

    async def cancel(self) -> None:
        aclose = getattr(self._iterator, 'aclose', None)
        if aclose is not None:
            await aclose()
