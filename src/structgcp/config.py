"""Structlog configuration for Google Cloud Logging.

Configures structlog (and the stdlib :mod:`logging` bridge) to write one
Cloud Logging structured-payload JSON object per line:

- ``message``: the log message.
- ``severity``: Cloud Logging ``LogSeverity`` name.
- ``logging.googleapis.com/trace``: the OpenTelemetry trace, when a span
  is active.
- ``logging.googleapis.com/sourceLocation``: the caller, when enabled.
- ``additional_info``: everything else.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from structgcp.console import ConsoleFormatter
from structgcp.core import Formatter
from structgcp.extract import ContextKey
from structgcp.processors import capture_context

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _to_logging_level(level_name: str) -> int:
    """Convert a human-readable level name to its :mod:`logging` constant."""
    upper_level = level_name.upper()
    if upper_level == "WARN":
        return logging.WARNING
    result: int = getattr(logging, upper_level, logging.INFO)
    return result


def _build_shared_processors(
    *,
    report_caller: bool = False,
) -> list[structlog.types.Processor]:
    """Build the shared processor chain used by both structlog and stdlib records."""
    processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        capture_context,  # type: ignore[list-item]
    ]
    if report_caller:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )
    return processors


def configure_structlog(
    *,
    project_id: str = "",
    context_keys: Mapping[str, ContextKey] | None = None,
    level: str = "INFO",
    json_logs: bool = True,
    report_caller: bool = False,
    stream: Any = None,
    clear_handlers: bool = True,
) -> None:
    """Configure structlog with ``ProcessorFormatter`` for stdlib integration.

    Parameters
    ----------
    project_id:
        Google Cloud project ID, used for trace names.
    context_keys:
        Context values to surface in ``additional_info``, see
        :class:`~structgcp.core.Formatter`.
    level:
        Minimum log level (e.g. ``"DEBUG"``, ``"INFO"``).
    json_logs:
        ``True`` for Cloud Logging JSON, ``False`` for plain console lines.
    report_caller:
        Add ``logging.googleapis.com/sourceLocation`` to every entry.
    stream:
        Output stream.  Defaults to ``sys.stdout``.
    clear_handlers:
        If ``True`` (default), remove all existing root logger handlers before
        adding the structlog handler.
    """
    if stream is None:
        stream = sys.stdout

    shared_processors = _build_shared_processors(report_caller=report_caller)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            _to_logging_level(level),
        ),
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        Formatter(project_id=project_id, context_keys=context_keys)  # type: ignore[assignment]
        if json_logs
        else ConsoleFormatter()
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    root = logging.getLogger()
    if clear_handlers:
        root.handlers.clear()
    root.setLevel(_to_logging_level(level))

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def setup_structlog(
    *,
    context_keys: Mapping[str, ContextKey] | None = None,
    suppress_loggers: Sequence[str] = (),
) -> None:
    """Application-level logging setup.

    Reads environment variables:

    - ``GOOGLE_CLOUD_PROJECT`` (project ID for trace names)
    - ``LOG_LEVEL`` (default: ``"INFO"``)
    - ``JSON_LOGS`` (``"0"`` = console, default: ``"1"`` = JSON)
    - ``LOG_REPORT_CALLER`` (``"1"`` to add source locations)

    Parameters
    ----------
    context_keys:
        Context values to surface in ``additional_info``.
    suppress_loggers:
        Logger names to suppress to WARNING level.
    """
    configure_structlog(
        project_id=os.environ.get("GOOGLE_CLOUD_PROJECT", ""),
        context_keys=context_keys,
        level=os.environ.get("LOG_LEVEL", "INFO"),
        json_logs=os.environ.get("JSON_LOGS", "1") != "0",
        report_caller=os.environ.get("LOG_REPORT_CALLER", "0").lower() in _TRUE_VALUES,
    )

    for name in suppress_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    def _log_exception(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: Any,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logging.getLogger().error(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = _log_exception
