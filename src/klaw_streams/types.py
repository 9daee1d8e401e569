"""Stream state enums, read results and constrained type aliases.

`ChannelCapacity` is validated by msgspec wherever capacities come from
configuration (`init()` or the `KLAW_STREAMS_CAPACITY` environment variable):

    >>> import msgspec
    >>> from klaw_streams.types import ChannelCapacity
    >>> msgspec.json.decode(b'64', type=ChannelCapacity)
    64
    >>> msgspec.json.decode(b'0', type=ChannelCapacity)
    # ValidationError: Expected `int` >= 1
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

import msgspec

__all__ = [
    'DEFAULT_CAPACITY',
    'ChannelCapacity',
    'ReadResult',
    'ReaderState',
    'WriterState',
]

DEFAULT_CAPACITY = 100

ChannelCapacity = Annotated[int, msgspec.Meta(ge=1, le=1_000_000)]
"""Channel buffer capacity constraint.

Valid range: 1 to 1,000,000 (inclusive)
"""


class ReaderState(Enum):
    """Lifecycle state of a Reader."""

    OPEN = 'open'
    CLOSED = 'closed'
    ERRORED = 'errored'


class WriterState(Enum):
    """Lifecycle state of a Writer."""

    OPEN = 'open'
    CLOSED = 'closed'
    ABORTED = 'aborted'


class ReadResult(msgspec.Struct, frozen=True):
    """Outcome of a single `Reader.read()` call.

    Attributes:
        done: True once the stream is finished; `value` is then None.
        value: The item read, when `done` is False.
    """

    done: bool
    value: Any = None


FINISHED = ReadResult(done=True)
