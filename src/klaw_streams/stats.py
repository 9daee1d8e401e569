"""Channel statistics record."""

from __future__ import annotations

from datetime import datetime

import msgspec

__all__ = ['ChannelStats']


class ChannelStats(msgspec.Struct, frozen=True, gc=False):
    """Statistics snapshot for a bounded channel."""

    queue_size: int
    capacity: int
    waiting_push: int
    waiting_pull: int
    closed: bool
    created_at: datetime
    high_watermark: int
    total_pushed: int
    total_pulled: int
