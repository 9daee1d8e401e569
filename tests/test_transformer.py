"""Tests for Transformer."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from klaw_streams import (
    ReadableWritablePair,
    Reader,
    ReaderState,
    ReadResult,
    StreamError,
    Transformer,
    TransformerSource,
)

from tests.helpers import FixedReader, Parenthesize, read_all_to_string


class TestTransform:
    """Tests for transform and flush hooks."""

    async def test_subclass_hooks(self) -> None:
        reader = FixedReader([1, 2, 3]).pipe_through(Parenthesize())

        assert await read_all_to_string(reader) == '(1)(2)(3)'

    async def test_source_object_hooks(self) -> None:
        async def transform(chunk, controller):
            await controller.enqueue(chunk * 2)

        async def flush(controller):
            await controller.enqueue('end')

        transformer: Transformer[int, object] = Transformer(SimpleNamespace(transform=transform, flush=flush))

        reader = FixedReader([1, 2]).pipe_through(transformer)

        assert [item async for item in reader] == [2, 4, 'end']

    async def test_transformer_source_subclass(self) -> None:
        """A TransformerSource that only defines `transform` gets a no-op flush."""

        class Upper(TransformerSource):
            async def transform(self, chunk, controller):
                await controller.enqueue(chunk.upper())

        reader = Reader.from_iterable(['a', 'b']).pipe_through(Transformer(Upper()))

        assert [item async for item in reader] == ['A', 'B']

    async def test_one_to_many(self) -> None:
        async def transform(chunk, controller):
            for char in chunk:
                await controller.enqueue(char)

        reader = FixedReader(['ab', 'cd']).pipe_through(Transformer(SimpleNamespace(transform=transform)))

        assert await read_all_to_string(reader) == 'abcd'

    async def test_missing_transform_drops_chunks(self) -> None:
        transformer: Transformer[int, int] = Transformer(SimpleNamespace())

        await transformer.writer.write(1)
        await transformer.writer.close()

        assert (await transformer.reader.read()).done

    async def test_is_readable_writable_pair(self) -> None:
        assert isinstance(Parenthesize(), ReadableWritablePair)

    async def test_controller_is_reader_controller(self) -> None:
        transformer = Parenthesize()

        assert transformer.controller is transformer.reader.controller


class TestBackpressure:
    """Tests for stalling writes on a full output buffer."""

    async def test_write_suspends_until_output_is_read(self) -> None:
        transformer = Parenthesize(capacity=1)

        await transformer.writer.write('a')
        pending = asyncio.create_task(transformer.writer.write('b'))
        await asyncio.sleep(0.01)
        assert not pending.done()

        assert await transformer.reader.read() == ReadResult(done=False, value='(a)')
        await asyncio.wait_for(pending, timeout=1)
        assert await transformer.reader.read() == ReadResult(done=False, value='(b)')


class TestErrors:
    """Tests for abort and hook failures."""

    async def test_abort_errors_reader(self) -> None:
        err = ValueError('upstream failed')
        transformer = Parenthesize()

        await transformer.writer.abort(err)

        with pytest.raises(ValueError) as exc_info:
            await transformer.reader.read()
        assert exc_info.value is err
        assert transformer.reader.state is ReaderState.ERRORED

    async def test_abort_with_plain_reason(self) -> None:
        transformer = Parenthesize()

        await transformer.writer.abort('stopped')

        with pytest.raises(StreamError) as exc_info:
            await transformer.reader.read()
        assert exc_info.value.reason == 'stopped'

    async def test_transform_failure_raises_to_writer(self) -> None:
        async def transform(chunk, controller):
            raise ValueError(f'cannot transform {chunk}')

        transformer: Transformer[int, int] = Transformer(SimpleNamespace(transform=transform))

        with pytest.raises(ValueError, match='cannot transform 1'):
            await transformer.writer.write(1)
        assert transformer.reader.state is ReaderState.OPEN

    async def test_flush_failure_errors_reader(self) -> None:
        err = RuntimeError('flush failed')

        async def flush(controller):
            raise err

        transformer: Transformer[int, int] = Transformer(SimpleNamespace(flush=flush))

        with pytest.raises(RuntimeError):
            await transformer.writer.close()
        with pytest.raises(RuntimeError) as exc_info:
            await transformer.reader.read()
        assert exc_info.value is err

