"""Google Cloud Logging formatter.

:class:`Formatter` maps a :class:`~structgcp.schema.LogEvent` onto the
Cloud Logging structured payload.  It can be used directly::

    formatter = Formatter(project_id="my-project")
    sys.stdout.buffer.write(formatter.format(event))

or as the final renderer of a structlog processor chain (see
:func:`structgcp.config.configure_structlog`).
"""

from __future__ import annotations

import contextvars
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import orjson

from structgcp.errors import ERROR_REPORT_TYPE, format_exception, stack_trace
from structgcp.extract import ContextKey, extract_http_request, inject_context_values
from structgcp.location import pop_callsite
from structgcp.otel import trace_name
from structgcp.processors import CONTEXT_KEY, gcp_severity, is_error_severity
from structgcp.schema import CallerLocation, GrpcStatus, LogEvent, OutputRecord
from structgcp.status import (
    GRPC_STATUS,
    GRPC_STATUS_BLANK_MESSAGE,
    GRPC_STATUS_CALLED_FROM_CONVENIENCE,
    from_error,
)


def _default(obj: Any) -> Any:
    """Serialize exceptions left in the attributes by their text."""
    if isinstance(obj, BaseException):
        return str(obj)
    msg = f"Type is not JSON serializable: {type(obj).__name__}"
    raise TypeError(msg)


def _dumps(record: OutputRecord, option: int | None = None) -> bytes:
    return orjson.dumps(
        record.to_dict(),
        default=_default,
        option=orjson.OPT_NON_STR_KEYS | (option or 0),
    )


def event_from_dict(method_name: str, event_dict: dict[str, Any]) -> LogEvent:
    """Build a :class:`LogEvent` from a structlog event dict.

    Callsite parameters, the captured context and ``exc_info`` are taken
    out; the remaining keys become the event's attributes.
    """
    attributes = dict(event_dict)
    level = attributes.pop("level", method_name)
    message = attributes.pop("event", None)
    context = attributes.pop(CONTEXT_KEY, None)
    if context is None:
        context = contextvars.copy_context()
    return LogEvent(
        level=str(level),
        message="" if message is None else str(message),
        caller=pop_callsite(attributes),
        context=context,
        exc_info=attributes.pop("exc_info", None),
        attributes=attributes,
    )


class Formatter:
    """Render log events as Cloud Logging structured JSON.

    Parameters
    ----------
    project_id:
        Google Cloud project ID, used to build fully-qualified trace names.
    context_keys:
        Maps an ``additional_info`` label to a context lookup key: a
        :class:`contextvars.ContextVar`, or the name of a value bound with
        :func:`structlog.contextvars.bind_contextvars`.
    """

    def __init__(
        self,
        *,
        project_id: str = "",
        context_keys: Mapping[str, ContextKey] | None = None,
    ) -> None:
        self.project_id = project_id
        self.context_keys: Mapping[str, ContextKey] = MappingProxyType(dict(context_keys or {}))

    def __call__(
        self,
        _logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> str:
        record = self.build(event_from_dict(method_name, event_dict))
        return _dumps(record).decode()

    def format(self, event: LogEvent) -> bytes:
        """Serialize *event* as one JSON line.

        Raises :class:`orjson.JSONEncodeError` if an attribute value cannot
        be serialized.
        """
        return _dumps(self.build(event), option=orjson.OPT_APPEND_NEWLINE)

    def build(self, event: LogEvent) -> OutputRecord:
        """Map *event* onto an :class:`OutputRecord`.

        ``event.attributes`` is copied; claimed keys are removed from the
        copy only.
        """
        attributes = dict(event.attributes)
        record = OutputRecord(message=event.message, severity=gcp_severity(event.level))

        if event.context is not None:
            record.trace = trace_name(self.project_id, event.context)
            inject_context_values(event.context, self.context_keys, attributes)

        record.http_request = extract_http_request(attributes)
        record.source_location = event.caller
        self._add_grpc_status(record, event, attributes)
        self._add_error_report(record, event)

        record.additional_info = attributes
        return record

    def _add_grpc_status(
        self,
        record: OutputRecord,
        event: LogEvent,
        attributes: dict[str, Any],
    ) -> None:
        status = from_error(attributes[GRPC_STATUS]) if GRPC_STATUS in attributes else None
        if status is not None:
            del attributes[GRPC_STATUS]
            record.grpc = GrpcStatus(
                code=status.code,
                message=status.message,
                details=status.render_details() if status.details else "",
            )
            if event.message == GRPC_STATUS_BLANK_MESSAGE:
                record.message = status.message

        # Set only by the convenience reporters, which log on behalf of
        # their caller and capture its location themselves.
        override = attributes.pop(GRPC_STATUS_CALLED_FROM_CONVENIENCE, None)
        if isinstance(override, CallerLocation) and record.source_location is not None:
            record.source_location = override

    def _add_error_report(self, record: OutputRecord, event: LogEvent) -> None:
        if is_error_severity(record.severity):
            record.type = ERROR_REPORT_TYPE
            record.message = f"{record.message}\n{stack_trace(event.exc_info)}"
            return

        exception = format_exception(event.exc_info)
        if exception:
            record.message = f"{record.message}\n{exception}"
