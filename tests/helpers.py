"""Shared sources, sinks and transformers for stream tests."""

from __future__ import annotations

from typing import Any

from klaw_streams import Reader, ReaderController, ReaderSource, Transformer, WriterController, WriterSink

_UNSET = object()


class CollectingSink(WriterSink):
    """Sink recording every chunk, `.` on close and the abort reason."""

    def __init__(self) -> None:
        self.items: list[Any] = []
        self.result = ''
        self.close_calls = 0
        self.abort_reason: Any = _UNSET

    @property
    def aborted(self) -> bool:
        return self.abort_reason is not _UNSET

    async def write(self, chunk: Any, controller: WriterController[Any]) -> None:
        self.items.append(chunk)
        self.result += str(chunk)

    async def close(self, controller: WriterController[Any]) -> None:
        self.close_calls += 1
        self.result += '.'

    async def abort(self, reason: Any) -> None:
        self.abort_reason = reason


class FixedSource(ReaderSource):
    """Source enqueueing a fixed list, one item per pull, then closing."""

    def __init__(self, data: list[Any]) -> None:
        self.index = 0
        self.data = data

    async def pull(self, controller: ReaderController[Any]) -> None:
        if self.index >= len(self.data):
            await controller.close()
            return
        item = self.data[self.index]
        self.index += 1
        await controller.enqueue(item)


class FixedReader(Reader[Any]):
    def __init__(self, data: list[Any], **kwargs: Any) -> None:
        super().__init__(FixedSource(data), **kwargs)


class Parenthesize(Transformer[Any, str]):
    async def transform(self, chunk: Any, controller: ReaderController[str]) -> None:
        await controller.enqueue(f'({chunk})')


async def read_all_to_string(reader: Reader[Any]) -> str:
    result = ''
    chunk = await reader.read()
    while not chunk.done:
        result += str(chunk.value)
        chunk = await reader.read()
    return result
