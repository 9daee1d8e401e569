"""Pytest configuration and shared fixtures for klaw-streams tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest
from klaw_streams._config import reset_config
from klaw_streams._logging import LOGGER_NAME, clear_log_hooks

from tests.helpers import CollectingSink


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None]:
    """Reset global configuration and log hooks around each test."""
    reset_config()
    clear_log_hooks()
    yield
    reset_config()
    clear_log_hooks()


@pytest.fixture(autouse=True)
def restore_loggers() -> Generator[None]:
    """Undo configure_logging() changes to the package and root loggers."""
    saved = [
        (logger, list(logger.handlers), logger.level, logger.propagate)
        for logger in (logging.getLogger(LOGGER_NAME), logging.getLogger())
    ]
    yield
    for logger, handlers, level, propagate in saved:
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.fixture
def sink() -> CollectingSink:
    """Fresh collecting sink."""
    return CollectingSink()
