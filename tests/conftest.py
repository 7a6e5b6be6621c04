"""Shared fixtures for structgcp tests."""

from __future__ import annotations

import logging
import sys

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_logging() -> None:  # type: ignore[misc]
    """Reset root logger handlers, level and excepthook after each test."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    original_excepthook = sys.excepthook

    yield  # type: ignore[misc]

    root.handlers[:] = original_handlers
    root.setLevel(original_level)
    sys.excepthook = original_excepthook


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:  # type: ignore[misc]
    """Reset structlog configuration after each test."""
    yield  # type: ignore[misc]
    structlog.reset_defaults()
