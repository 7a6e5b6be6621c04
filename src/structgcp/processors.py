"""Structlog processors and level mapping for Cloud Logging.

- ``severity``: structlog level names mapped to Cloud Logging
  ``LogSeverity`` names (``DEBUG`` ... ``CRITICAL``).
- ``capture_context``: snapshots the ambient :mod:`contextvars` context in
  the emitting thread so rendering can happen elsewhere.
"""

from __future__ import annotations

import contextvars
from types import MappingProxyType
from typing import Any

CONTEXT_KEY = "_gcp_context"
"""Event-dict key holding the :class:`contextvars.Context` of the emitter."""

# https://cloud.google.com/logging/docs/reference/v2/rest/v2/LogEntry#logseverity
_SEVERITY_MAP: MappingProxyType[str, str] = MappingProxyType(
    {
        "trace": "DEBUG",
        "debug": "DEBUG",
        "info": "INFO",
        "success": "INFO",
        "notice": "NOTICE",
        "warning": "WARNING",
        "warn": "WARNING",
        "error": "ERROR",
        "exception": "ERROR",
        "critical": "CRITICAL",
        "fatal": "CRITICAL",
        "panic": "CRITICAL",
    }
)

_ERROR_SEVERITIES: frozenset[str] = frozenset({"ERROR", "CRITICAL", "ALERT", "EMERGENCY"})

DEFAULT_SEVERITY = "INFO"


def gcp_severity(level: Any) -> str:
    """Map a level name to its Cloud Logging severity.

    Defaults to ``INFO`` for unknown levels.
    """
    return _SEVERITY_MAP.get(str(level).lower(), DEFAULT_SEVERITY)


def is_error_severity(severity: str) -> bool:
    """Return ``True`` for ``ERROR`` and anything more severe."""
    return severity in _ERROR_SEVERITIES


def capture_context(
    _logger: Any,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Attach a copy of the current :mod:`contextvars` context.

    Must run in the structlog chain, i.e. in the thread that emitted the
    event.  An explicitly supplied context is left alone.
    """
    event_dict.setdefault(CONTEXT_KEY, contextvars.copy_context())
    return event_dict
