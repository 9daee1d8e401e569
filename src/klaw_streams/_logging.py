"""Structured logging for klaw-streams.

Stream modules log through structlog loggers wrapped around the stdlib logger
of the same name (`klaw_streams.reader`, `klaw_streams.writer`, ...). Events
below the stdlib level are dropped before any processor runs, so the library
is silent until `configure_logging()` or the application's own logging setup
enables the `klaw_streams` logger.

Events emitted:
- debug: `reader.closed`, `reader.errored`, `reader.source_failed`,
  `writer.closed`, `writer.aborted`, `writer.errored`, `pipe.failed`,
  `pipe.pump_stopped`
- warning: `reader.cancel_failed`, `writer.abort_failed`,
  `reader.source_failed_after_close`, `config.invalid_capacity`
- error: `task.failed` (a background task escaped its own error handling)
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    'LOGGER_NAME',
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_logger',
    'remove_log_hook',
]

LOGGER_NAME = 'klaw_streams'


def _get_shared_processors() -> list[Any]:
    """Processors run for stream events and for foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.stdlib.ExtraAdder(),
        _run_log_hooks,
    ]


def _get_stream_processors() -> list[Any]:
    return [
        structlog.stdlib.filter_by_level,
        *_get_shared_processors(),
        structlog.processors.StackInfoRenderer(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _get_renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = 'INFO',
    *,
    json_output: bool = True,
    logger_name: str | None = LOGGER_NAME,
) -> logging.Handler:
    """Route stream events to stderr through a structlog ProcessorFormatter.

    Installs one handler on the `klaw_streams` logger and stops propagation,
    so the host application's root logging is left alone. Calling it again
    replaces the handler installed by the previous call.

    Args:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL").
        json_output: If True, emit JSON lines. If False, use console output.
        logger_name: Logger to configure. None configures the root logger,
            giving stdlib records from other libraries the same rendering.

    Returns:
        The installed handler.

    Example:
        ```python
        configure_logging('DEBUG', json_output=False)
        ```
    """
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_get_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _get_renderer(json_output),
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    target = logging.getLogger(logger_name)
    for old in [h for h in target.handlers if getattr(h, '_klaw_streams', False)]:
        target.removeHandler(old)
    handler._klaw_streams = True  # type: ignore[attr-defined]
    target.addHandler(handler)
    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger_name is not None:
        target.propagate = False
    return handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for a stream module.

    Args:
        name: Stdlib logger name, usually the calling module's `__name__`.

    Returns:
        A structlog BoundLogger that drops events below the stdlib level.
    """
    return structlog.wrap_logger(
        logging.getLogger(name or LOGGER_NAME),
        processors=_get_stream_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


# --- Logging Hooks ---

_log_hooks: list[Callable[[dict[str, Any]], None]] = []


def add_log_hook(hook: Callable[[dict[str, Any]], None]) -> None:
    """Register a hook called with a copy of every emitted event dict.

    Useful for counting stream failures or forwarding them to alerting.
    Only events that pass the level filter reach hooks.

    Args:
        hook: Callable that receives the event dict.
    """
    _log_hooks.append(hook)


def remove_log_hook(hook: Callable[[dict[str, Any]], None]) -> None:
    """Remove a previously registered log hook; unknown hooks are ignored."""
    if hook in _log_hooks:
        _log_hooks.remove(hook)


def clear_log_hooks() -> None:
    """Remove all registered log hooks."""
    _log_hooks.clear()


def _run_log_hooks(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for hook in _log_hooks:
        try:
            hook(event_dict.copy())
        except Exception:  # noqa: BLE001, S112
            continue  # a broken hook must not break logging
    return event_dict
