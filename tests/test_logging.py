"""Tests for logging configuration, hooks and stream lifecycle events."""

from __future__ import annotations

import logging
import os
from types import SimpleNamespace
from typing import Any
from unittest.mock import patch

from klaw_streams import Reader, Writer
from klaw_streams._config import CAPACITY_ENV_VAR, _detect_capacity
from klaw_streams._logging import (
    LOGGER_NAME,
    add_log_hook,
    configure_logging,
    get_logger,
    remove_log_hook,
)


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_configures_package_logger_only(self) -> None:
        root_handlers = list(logging.getLogger().handlers)

        handler = configure_logging('DEBUG')

        package_logger = logging.getLogger(LOGGER_NAME)
        assert handler in package_logger.handlers
        assert package_logger.level == logging.DEBUG
        assert package_logger.propagate is False
        assert logging.getLogger().handlers == root_handlers

    def test_reconfigure_replaces_handler(self) -> None:
        first = configure_logging('DEBUG')
        second = configure_logging('INFO', json_output=False)

        handlers = logging.getLogger(LOGGER_NAME).handlers
        assert first not in handlers
        assert second in handlers

    def test_root_logger(self) -> None:
        handler = configure_logging('WARNING', logger_name=None)

        assert handler in logging.getLogger().handlers

    def test_unknown_level_defaults_to_info(self) -> None:
        configure_logging('LOUD')

        assert logging.getLogger(LOGGER_NAME).level == logging.INFO


class TestLogHooks:
    """Tests for logging hooks functionality."""

    def test_hook_receives_log_events(self) -> None:
        """Registered hooks receive log entry dicts."""
        received: list[dict[str, Any]] = []

        configure_logging(level='DEBUG', json_output=True)
        add_log_hook(received.append)

        logger = get_logger(f'{LOGGER_NAME}.test')
        logger.info('Test message', extra_field='extra_value')

        test_entries = [e for e in received if e.get('event') == 'Test message']
        assert len(test_entries) == 1
        assert test_entries[0]['extra_field'] == 'extra_value'
        assert test_entries[0]['level'] == 'info'

    def test_remove_hook(self) -> None:
        """remove_log_hook() stops hook from being called."""
        calls: list[str] = []

        def hook(event_dict: dict[str, Any]) -> None:
            calls.append('called')

        configure_logging(level='DEBUG', json_output=True)
        add_log_hook(hook)

        logger = get_logger(f'{LOGGER_NAME}.test')
        logger.info('First')
        assert len(calls) == 1

        remove_log_hook(hook)
        logger.info('Second')
        assert len(calls) == 1

    def test_remove_unknown_hook_is_noop(self) -> None:
        remove_log_hook(lambda event_dict: None)

    def test_hook_exception_does_not_break_logging(self) -> None:
        """A failing hook does not stop later hooks or the log call."""
        calls: list[str] = []

        def bad_hook(event_dict: dict[str, Any]) -> None:
            raise RuntimeError('Hook error')

        configure_logging(level='DEBUG', json_output=True)
        add_log_hook(bad_hook)
        add_log_hook(lambda event_dict: calls.append('good'))

        get_logger(f'{LOGGER_NAME}.test').info('Test')

        assert calls == ['good']

    def test_level_filters_before_hooks(self) -> None:
        """Events below the configured level never reach hooks."""
        received: list[dict[str, Any]] = []

        configure_logging(level='WARNING', json_output=False)
        add_log_hook(received.append)

        get_logger(f'{LOGGER_NAME}.test').debug('hidden')

        assert received == []


class TestStreamEvents:
    """Tests for events emitted by stream modules."""

    async def test_reader_error_logged(self) -> None:
        received: list[dict[str, Any]] = []
        configure_logging(level='DEBUG')
        add_log_hook(received.append)

        reader: Reader[int] = Reader()
        reader.controller.error('boom')

        events = [e for e in received if e.get('event') == 'reader.errored']
        assert len(events) == 1
        assert events[0]['reason'] == "'boom'"
        assert events[0]['logger'] == 'klaw_streams.reader'

    async def test_cancel_failure_logged_as_warning(self) -> None:
        received: list[dict[str, Any]] = []
        configure_logging(level='WARNING')
        add_log_hook(received.append)

        def cancel() -> None:
            raise RuntimeError('cancel failed')

        reader: Reader[int] = Reader(SimpleNamespace(cancel=cancel))
        await reader.close()

        events = [e for e in received if e.get('event') == 'reader.cancel_failed']
        assert len(events) == 1
        assert events[0]['level'] == 'warning'

    async def test_writer_abort_logged(self) -> None:
        received: list[dict[str, Any]] = []
        configure_logging(level='DEBUG')
        add_log_hook(received.append)

        writer: Writer[int] = Writer()
        await writer.abort('stop')

        assert any(e.get('event') == 'writer.aborted' for e in received)

    def test_invalid_capacity_logged(self) -> None:
        received: list[dict[str, Any]] = []
        configure_logging(level='WARNING')
        add_log_hook(received.append)

        with patch.dict(os.environ, {CAPACITY_ENV_VAR: 'lots'}):
            _detect_capacity()

        events = [e for e in received if e.get('event') == 'config.invalid_capacity']
        assert len(events) == 1
        assert events[0]['value'] == 'lots'

    async def test_invalid_capacity_logged_once_for_many_readers(self) -> None:
        received: list[dict[str, Any]] = []
        configure_logging(level='WARNING')
        add_log_hook(received.append)

        with patch.dict(os.environ, {CAPACITY_ENV_VAR: 'lots'}):
            readers: list[Reader[int]] = [Reader(), Reader()]

        events = [e for e in received if e.get('event') == 'config.invalid_capacity']
        assert len(events) == 1
        assert all(reader.statistics().capacity == 100 for reader in readers)

    async def test_silent_without_configuration(self) -> None:
        received: list[dict[str, Any]] = []
        add_log_hook(received.append)

        reader: Reader[int] = Reader()
        reader.controller.error('boom')

        assert received == []
