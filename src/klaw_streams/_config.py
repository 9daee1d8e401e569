"""Streams configuration: StreamsConfig and initialization."""

from __future__ import annotations

import os
from dataclasses import dataclass

import msgspec

from klaw_streams._logging import configure_logging, get_logger
from klaw_streams.types import DEFAULT_CAPACITY, ChannelCapacity

__all__ = [
    'StreamsConfig',
    'current_config',
    'get_config',
    'init',
]

logger = get_logger(__name__)

CAPACITY_ENV_VAR = 'KLAW_STREAMS_CAPACITY'


@dataclass(frozen=True)
class StreamsConfig:
    """Configuration for klaw-streams.

    Attributes:
        default_capacity: Channel capacity used by readers and transformers
            created without an explicit `capacity`.
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = silent.
    """

    default_capacity: int = DEFAULT_CAPACITY
    log_level: str | None = None


# Global configuration (set by init())
_config: StreamsConfig | None = None
_fallback: StreamsConfig | None = None


def _validate_capacity(capacity: int) -> int:
    """Validate a capacity against the ChannelCapacity constraint.

    Raises:
        msgspec.ValidationError: If capacity is out of range.
    """
    return msgspec.convert(capacity, ChannelCapacity)


def _detect_capacity() -> int:
    """Detect the default capacity from the environment.

    Priority:
    1. KLAW_STREAMS_CAPACITY environment variable (integer 1-1,000,000)
    2. DEFAULT_CAPACITY (100)
    """
    raw = os.environ.get(CAPACITY_ENV_VAR, '').strip()
    if not raw:
        return DEFAULT_CAPACITY
    try:
        return msgspec.json.decode(raw.encode(), type=ChannelCapacity)
    except (msgspec.DecodeError, msgspec.ValidationError):
        logger.warning('config.invalid_capacity', variable=CAPACITY_ENV_VAR, value=raw, default=DEFAULT_CAPACITY)
        return DEFAULT_CAPACITY


def init(
    default_capacity: int | None = None,
    log_level: str | None = None,
) -> StreamsConfig:
    """Initialize klaw-streams with the given configuration.

    Args:
        default_capacity: Default channel capacity. Read from
            KLAW_STREAMS_CAPACITY, or 100, if None.
        log_level: Logging level ("DEBUG", "INFO", etc.). None = silent.

    Returns:
        The StreamsConfig that was set.

    Raises:
        msgspec.ValidationError: If default_capacity is outside 1-1,000,000.

    Example:
        ```python
        from klaw_streams import init

        init(default_capacity=16, log_level="DEBUG")
        ```
    """
    global _config  # noqa: PLW0603

    if default_capacity is None:
        resolved_capacity = _detect_capacity()
    else:
        resolved_capacity = _validate_capacity(default_capacity)

    _config = StreamsConfig(default_capacity=resolved_capacity, log_level=log_level)

    if log_level is not None:
        configure_logging(log_level)

    return _config


def get_config() -> StreamsConfig:
    """Get the current configuration.

    Returns:
        The current StreamsConfig.

    Raises:
        RuntimeError: If init() has not been called.
    """
    if _config is None:
        msg = 'klaw-streams not initialized. Call klaw_streams.init() first.'
        raise RuntimeError(msg)
    return _config


def current_config() -> StreamsConfig:
    """Get the current configuration, or the defaults if init() was never called.

    The defaults read the environment once and are kept until reset_config().
    """
    global _fallback  # noqa: PLW0603
    if _config is not None:
        return _config
    if _fallback is None:
        _fallback = StreamsConfig(default_capacity=_detect_capacity())
    return _fallback


def reset_config() -> None:
    """Forget the configuration set by init() and the cached defaults."""
    global _config, _fallback  # noqa: PLW0603
    _config = None
    _fallback = None
