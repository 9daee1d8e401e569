"""Hook sets for sources, sinks and transforms, and the reader/writer pair protocol.

Sources, sinks and transforms are duck-typed: any object works, and every
hook is optional. The base classes below only name the hooks and their
signatures; a hook left as None is replaced by a no-op when the Reader,
Writer or Transformer is constructed (a missing `pull` means the reader has
no pull loop at all). Hooks may be plain functions or coroutines.

Example:
    ```python
    class Counter(ReaderSource):
        def __init__(self, limit: int) -> None:
            self.n = 0
            self.limit = limit

        async def pull(self, controller: ReaderController) -> None:
            if self.n == self.limit:
                await controller.close()
            else:
                await controller.enqueue(self.n)
                self.n += 1
    ```
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from klaw_streams.reader import Reader, ReaderController
    from klaw_streams.writer import Writer, WriterController

__all__ = ['ReadableWritablePair', 'ReaderSource', 'TransformerSource', 'WriterSink']


class ReaderSource:
    """Producer hooks driving a Reader.

    Attributes:
        start: Called once at construction; may enqueue items or close.
        pull: Called repeatedly after `start` finishes, for as long as the
            reader is open. Backpressure comes from `enqueue` suspending.
        cancel: Called once when the consumer closes the reader.
    """

    start: Callable[[ReaderController], Any] | None = None
    pull: Callable[[ReaderController], Any] | None = None
    cancel: Callable[[], Any] | None = None


class WriterSink:
    """Consumer hooks driving a Writer.

    Attributes:
        start: Called once at construction; writes wait for it.
        write: Called once per chunk, never concurrently with itself.
        close: Called once when the writer is closed.
        abort: Called once when the writer is aborted, with the reason.
    """

    start: Callable[[WriterController], Any] | None = None
    write: Callable[[Any, WriterController], Any] | None = None
    close: Callable[[WriterController], Any] | None = None
    abort: Callable[[Any], Any] | None = None


class TransformerSource:
    """Transform hooks driving a Transformer.

    Attributes:
        transform: Called per chunk with the output reader's controller;
            enqueues zero or more output items.
        flush: Called once before the output reader is closed.
    """

    transform: Callable[[Any, ReaderController], Any] | None = None
    flush: Callable[[ReaderController], Any] | None = None


@runtime_checkable
class ReadableWritablePair[T, U](Protocol):
    """A writable side feeding a readable side, as accepted by `pipe_through`.

    Type Parameters:
        T: Type of chunks written into the pair.
        U: Type of items read out of the pair.
    """

    @property
    def reader(self) -> Reader[U]: ...

    @property
    def writer(self) -> Writer[T]: ...
