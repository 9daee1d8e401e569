"""Pipe orchestration: `pipe_to` (Reader into Writer) and `pipe_through` (Reader into Transformer).

Both drive the same sequential loop: read one item, write it, wait for the
write to settle, read the next. Items therefore reach the sink in the order
they were produced, and a slow sink stalls the source through the reader's
bounded channel.

Failure handling:
- A failed `read()` aborts the writer with that error and re-raises it.
- A failed `write()` or `close()` aborts the writer, closes the source reader
  and re-raises.

Chains compose because `pipe_through` returns the transformer's reader
straight away:

    ```python
    await reader.pipe_through(t1).pipe_through(t2).pipe_to(writer)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from klaw_streams._logging import get_logger
from klaw_streams._tasks import spawn
from klaw_streams.errors import StreamError

if TYPE_CHECKING:
    from klaw_streams.protocols import ReadableWritablePair
    from klaw_streams.reader import Reader
    from klaw_streams.writer import Writer

__all__ = ['pipe_through', 'pipe_to']

logger = get_logger(__name__)


def _reason_of(exc: BaseException) -> Any:
    """Recover the application reason carried by a raised error."""
    if type(exc) is StreamError:
        return exc.reason
    return exc


async def pipe_to[T](reader: Reader[T], writer: Writer[T]) -> None:
    """Write every item of `reader` into `writer`, then close `writer`.

    Each write is awaited before the next item is read.

    Args:
        reader: Source of items.
        writer: Destination; closed when the reader finishes.

    Raises:
        BaseException: Whatever `reader.read()`, `writer.write()` or
            `writer.close()` raised, after the writer has been aborted with it.
    """
    while True:
        try:
            result = await reader.read()
        except Exception as exc:
            logger.debug('pipe.failed', stage='read', error=repr(exc))
            await writer.abort(_reason_of(exc))
            raise

        try:
            if result.done:
                await writer.close()
                return
            await writer.write(result.value)
        except Exception as exc:
            logger.debug('pipe.failed', stage='write', error=repr(exc))
            await writer.abort(_reason_of(exc))
            await reader.close()
            raise


def pipe_through[T, U](reader: Reader[T], pair: ReadableWritablePair[T, U]) -> Reader[U]:
    """Pump `reader` into `pair.writer` in the background and return `pair.reader`.

    Uses the same ordering and error rules as `pipe_to`. A source error
    aborts `pair.writer`; for a Transformer that errors its reader with the
    same reason, so it surfaces to whoever consumes the returned reader.

    Args:
        reader: Source of items.
        pair: Object exposing `writer` and `reader`, typically a Transformer.

    Returns:
        `pair.reader`, for chaining.
    """
    spawn(_pump, reader, pair.writer, name=f'pipe-{id(pair):x}')
    return pair.reader


async def _pump[T](reader: Reader[T], writer: Writer[T]) -> None:
    try:
        await pipe_to(reader, writer)
    except Exception as exc:
        # Already delivered downstream through the aborted writer.
        logger.debug('pipe.pump_stopped', error=repr(exc))
