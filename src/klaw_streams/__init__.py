"""klaw-streams: backpressured, composable streams for the Klaw ecosystem.

A Reader (pull source), a Writer (push sink) and a Transformer (Writer feeding
a Reader) connected through bounded channels, with `pipe_to`/`pipe_through`
chaining, cooperative cancellation and sticky error propagation.

Flat imports (preferred):
    from klaw_streams import Reader, Writer, Transformer
    from klaw_streams import ReaderSource, WriterSink, TransformerSource

Example:
    ```python
    class Upper(Transformer[str, str]):
        async def transform(self, chunk, controller):
            await controller.enqueue(chunk.upper())

    await Reader.from_iterable(['a', 'b']).pipe_through(Upper()).pipe_to(writer)
    ```
"""

from klaw_streams._config import StreamsConfig, get_config, init
from klaw_streams._logging import add_log_hook, clear_log_hooks, configure_logging, get_logger, remove_log_hook
from klaw_streams.channel import BoundedChannel
from klaw_streams.errors import (
    ChannelClosedError,
    ClosedError,
    ReaderClosedError,
    StreamError,
    WriterAbortedError,
    WriterClosedError,
)
from klaw_streams.pipe import pipe_through, pipe_to
from klaw_streams.protocols import ReadableWritablePair, ReaderSource, TransformerSource, WriterSink
from klaw_streams.reader import Reader, ReaderController
from klaw_streams.stats import ChannelStats
from klaw_streams.transformer import Transformer
from klaw_streams.types import ReaderState, ReadResult, WriterState
from klaw_streams.writer import Writer, WriterController

__all__ = [
    'BoundedChannel',
    'ChannelClosedError',
    'ChannelStats',
    'ClosedError',
    'ReadResult',
    'ReadableWritablePair',
    'Reader',
    'ReaderClosedError',
    'ReaderController',
    'ReaderSource',
    'ReaderState',
    'StreamError',
    'StreamsConfig',
    'Transformer',
    'TransformerSource',
    'Writer',
    'WriterAbortedError',
    'WriterClosedError',
    'WriterController',
    'WriterSink',
    'WriterState',
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_config',
    'get_logger',
    'init',
    'pipe_through',
    'pipe_to',
    'remove_log_hook',
]
