"""Bounded channel: fixed-capacity FIFO with suspending push and pull.

Gives the streaming core the one channel contract it needs: blocking
`push`/`pull` and a `close` that either flushes or discards what is still
buffered.

Waiting callers are parked in FIFO queues of waiters, each carrying an
anyio.Event:
- A pull that finds nothing to take joins the getter queue before it
  suspends, so a later push hands its item straight to the oldest getter.
- A push that finds the buffer full joins the putter queue; each pull that
  frees a slot admits the oldest putter.
- An item handed to a waiter belongs to it, even if the channel is closed
  before the waiter resumes.
"""

from __future__ import annotations

from collections import deque
from datetime import UTC, datetime
from typing import Any

import anyio
from anyio.lowlevel import cancel_shielded_checkpoint, checkpoint

from klaw_streams.errors import ChannelClosedError
from klaw_streams.stats import ChannelStats
from klaw_streams.types import DEFAULT_CAPACITY

__all__ = ['BoundedChannel']


class _Waiter[T]:
    """Parked push or pull, and the item moving through it."""

    __slots__ = ('done', 'event', 'item')

    def __init__(self, item: Any = None) -> None:
        self.event = anyio.Event()
        self.item: Any = item
        self.done = False

    def finish(self, item: Any = None) -> None:
        self.item = item
        self.done = True
        self.event.set()


class BoundedChannel[T]:
    """Fixed-capacity FIFO with suspending push/pull and a closable state.

    A flushing close only stops new pushes; a discarding close also drops
    the buffer and fails pending pushes.
    """

    __slots__ = (
        '_buffer',
        '_capacity',
        '_closed',
        '_created_at',
        '_discarded',
        '_getters',
        '_high_watermark',
        '_putters',
        '_reason',
        '_total_pulled',
        '_total_pushed',
    )

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create a channel.

        Args:
            capacity: Max items buffered before `push` suspends.

        Raises:
            ValueError: If capacity is negative.
        """
        if capacity < 0:
            raise ValueError('Channel capacity must not be negative')

        self._capacity = capacity
        self._buffer: deque[T] = deque()
        self._getters: deque[_Waiter[T]] = deque()
        self._putters: deque[_Waiter[T]] = deque()
        self._closed = False
        self._discarded = False
        self._reason: Any = None
        self._created_at = datetime.now(UTC)
        self._high_watermark = 0
        self._total_pushed = 0
        self._total_pulled = 0

    @property
    def capacity(self) -> int:
        """Max number of buffered items."""
        return self._capacity

    @property
    def closed(self) -> bool:
        """True once `close()` has been called in either mode."""
        return self._closed

    def _buffer_item(self, item: T) -> None:
        self._buffer.append(item)
        if len(self._buffer) > self._high_watermark:
            self._high_watermark = len(self._buffer)

    async def push(self, item: T) -> None:
        """Push an item, suspending while the channel is at capacity.

        If a `pull()` is already waiting, the item is handed to the oldest
        waiter directly.

        Args:
            item: The item to push.

        Raises:
            ChannelClosedError: If the channel is closed, or gets closed in
                discard mode while this push is pending.
        """
        if self._closed:
            raise ChannelClosedError(self._reason)
        await checkpoint()
        if self._closed:
            raise ChannelClosedError(self._reason)

        if self._getters:
            self._getters.popleft().finish(item)
        elif len(self._buffer) < self._capacity:
            self._buffer_item(item)
        else:
            putter: _Waiter[T] = _Waiter(item)
            self._putters.append(putter)
            try:
                await putter.event.wait()
            except BaseException:
                if not putter.event.is_set():
                    self._putters.remove(putter)
                raise
            if not putter.done:
                raise ChannelClosedError(self._reason)

        self._total_pushed += 1

    async def pull(self) -> T:
        """Pull the next item, suspending while the channel is empty and open.

        Concurrent callers are served in call order.

        Returns:
            The oldest buffered item.

        Raises:
            ChannelClosedError: If the channel is closed and drained, or was
                closed in discard mode.
        """
        if self._discarded:
            raise ChannelClosedError(self._reason)

        if self._buffer:
            item = self._buffer.popleft()
            if self._putters:
                putter = self._putters.popleft()
                self._buffer_item(putter.item)
                putter.finish(putter.item)
            self._total_pulled += 1
            await cancel_shielded_checkpoint()
            return item

        if self._putters:
            putter = self._putters.popleft()
            putter.finish(putter.item)
            self._total_pulled += 1
            await cancel_shielded_checkpoint()
            return putter.item

        if self._closed:
            raise ChannelClosedError(self._reason)

        getter: _Waiter[T] = _Waiter()
        self._getters.append(getter)
        try:
            await getter.event.wait()
        except BaseException:
            if getter.done:
                self._restore(getter.item)
            elif not getter.event.is_set():
                self._getters.remove(getter)
            raise

        if not getter.done:
            raise ChannelClosedError(self._reason)
        self._total_pulled += 1
        return getter.item

    def _restore(self, item: T) -> None:
        """Put back an item whose receiver was cancelled before resuming."""
        if self._discarded:
            return
        if self._getters:
            self._getters.popleft().finish(item)
        else:
            self._buffer.appendleft(item)

    def close(self, reason: Any = None, *, flush: bool = False) -> None:
        """Close the channel.

        Safe to call repeatedly; a flushing close can later be escalated to a
        discarding one, never the other way round.

        Args:
            reason: Carried by the ChannelClosedError raised to later callers.
            flush: If True, buffered items and pushes already pending are still
                delivered before pulls see the closed signal. If False, they
                are dropped: pending pushes fail and every pull raises at once.
        """
        if not self._closed:
            self._closed = True
            self._reason = reason

        if not flush and not self._discarded:
            self._discarded = True
            self._buffer.clear()
            # Pending pushes fail before waiting pulls wake.
            while self._putters:
                self._putters.popleft().event.set()

        while self._getters:
            self._getters.popleft().event.set()

    def statistics(self) -> ChannelStats:
        """Return a statistics snapshot."""
        return ChannelStats(
            queue_size=len(self._buffer),
            capacity=self._capacity,
            waiting_push=len(self._putters),
            waiting_pull=len(self._getters),
            closed=self._closed,
            created_at=self._created_at,
            high_watermark=self._high_watermark,
            total_pushed=self._total_pushed,
            total_pulled=self._total_pulled,
        )
