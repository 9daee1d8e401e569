"""Transformer: a Writer whose chunks are re-emitted, transformed, through a paired Reader."""

from __future__ import annotations

from typing import Any

from klaw_streams._tasks import call_hook, hook_of, noop
from klaw_streams.reader import Reader, ReaderController
from klaw_streams.writer import Writer, WriterController

__all__ = ['Transformer']


class Transformer[T, U]:
    """Writer/Reader pair joined by user `transform` and `flush` hooks.

    Chunks written to `writer` are passed to `transform(chunk, controller)`,
    where `controller` is the controller of `reader`; the hook enqueues zero
    or more output items. Closing `writer` runs `flush(controller)` and then
    closes `reader`; aborting `writer` errors `reader` with the same reason.

    The reader's bounded channel is the only buffer of the stage: when its
    consumer falls behind, `enqueue` suspends inside `transform`, which holds
    up `writer.write`, which holds up whatever feeds the transformer.

    Hooks come from `source`, or, when it is omitted, from the transformer's
    own `transform`/`flush` methods so that subclasses can define them.
    Missing hooks are no-ops (a transformer without `transform` drops
    everything).

    Type Parameters:
        T: Type of chunks written in.
        U: Type of items read out.

    Example:
        ```python
        class Parenthesize(Transformer[str, str]):
            async def transform(self, chunk, controller):
                await controller.enqueue(f'({chunk})')

        out = Reader.from_iterable(['a', 'b']).pipe_through(Parenthesize())
        assert [x async for x in out] == ['(a)', '(b)']
        ```
    """

    def __init__(self, source: Any = None, *, capacity: int | None = None) -> None:
        """Create the reader/writer pair.

        Args:
            source: Object with optional `transform(chunk, controller)` and
                `flush(controller)` hooks, plain or async. Defaults to self.
            capacity: Capacity of the output reader's channel.

        Raises:
            RuntimeError: If there is no running event loop.
        """
        if source is None:
            source = self
        self._transform = hook_of(source, 'transform') or noop
        self._flush = hook_of(source, 'flush') or noop
        self._reader: Reader[U] = Reader(capacity=capacity)
        self._writer: Writer[T] = Writer(_TransformSink(self))

    @property
    def reader(self) -> Reader[U]:
        """Readable side, carrying transformed items."""
        return self._reader

    @property
    def writer(self) -> Writer[T]:
        """Writable side, accepting input chunks."""
        return self._writer

    @property
    def controller(self) -> ReaderController[U]:
        """Controller of the readable side, passed to the hooks."""
        return self._reader.controller


class _TransformSink[T]:
    """Sink routing the writer's calls into the transformer's hooks."""

    __slots__ = ('_transformer',)

    def __init__(self, transformer: Transformer[T, Any]) -> None:
        self._transformer = transformer

    async def write(self, chunk: T, _controller: WriterController[T]) -> None:
        transformer = self._transformer
        await call_hook(transformer._transform, chunk, transformer.controller)

    async def close(self, _controller: WriterController[T]) -> None:
        transformer = self._transformer
        try:
            await call_hook(transformer._flush, transformer.controller)
        except Exception as exc:
            # The writer is already closed, so abort() can no longer reach the reader.
            transformer.controller.error(exc)
            raise
        await transformer.controller.close()

    async def abort(self, reason: Any) -> None:
        self._transformer.controller.error(reason)
