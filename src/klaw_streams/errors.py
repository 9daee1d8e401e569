"""Stream error types: closed-resource errors and the application error carrier."""

from __future__ import annotations

from typing import Any

__all__ = [
    'ChannelClosedError',
    'ClosedError',
    'ReaderClosedError',
    'StreamError',
    'WriterAbortedError',
    'WriterClosedError',
    'raisable',
]


# --- Closed Errors ---


class ClosedError(Exception):
    """Operation attempted on a resource that is already closed or aborted."""

    def __init__(self, message: str = 'Resource is closed') -> None:
        super().__init__(message)


class ReaderClosedError(ClosedError):
    """Enqueue attempted on a reader that is closed, closing or errored."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or 'Reader is closed')


class WriterClosedError(ClosedError):
    """Write attempted on a writer that has been closed."""

    def __init__(self) -> None:
        super().__init__('Writer is closed')


class WriterAbortedError(ClosedError):
    """Write attempted on a writer that was aborted without a reason."""

    def __init__(self) -> None:
        super().__init__('Writer is aborted')


# --- Channel Signal ---


class ChannelClosedError(Exception):
    """Bounded channel has been closed.

    Internal signal: readers translate it into end-of-sequence and
    controllers into `ReaderClosedError`.
    """

    def __init__(self, reason: Any = None) -> None:
        self.reason = reason
        super().__init__('Channel closed' if reason is None else str(reason))


# --- Application Errors ---


class StreamError(Exception):
    """Carrier for an application-supplied error reason that is not an exception.

    Reasons that already are exceptions are raised as-is; only plain values
    (strings, codes, None) travel inside a StreamError.

    Attributes:
        reason: The original value given to `controller.error()` or `writer.abort()`.
    """

    def __init__(self, reason: Any = None) -> None:
        self.reason = reason
        super().__init__('Stream errored' if reason is None else reason)


def raisable(reason: Any, default: BaseException | None = None) -> BaseException:
    """Return the object to raise for a stored error reason.

    Args:
        reason: Stored reason, as passed by the application.
        default: Raised instead of a bare StreamError when reason is None.

    Returns:
        `reason` itself when it is an exception, otherwise a StreamError
        wrapping it (or `default` for a missing reason).
    """
    if isinstance(reason, BaseException):
        return reason
    if reason is None and default is not None:
        return default
    return StreamError(reason)
