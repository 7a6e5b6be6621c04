"""Data types for the Google Cloud Logging structured payload.

:class:`LogEvent` is the input handed over by the logging pipeline for a
single emission.  :class:`OutputRecord` is the schema-shaped result; its
:meth:`~OutputRecord.to_dict` produces the wire layout with every unset
block omitted.

See https://cloud.google.com/logging/docs/structured-logging for the
special fields recognized by the logging agent.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass, field
from typing import Any

TRACE_KEY = "logging.googleapis.com/trace"
SOURCE_LOCATION_KEY = "logging.googleapis.com/sourceLocation"


@dataclass(frozen=True)
class CallerLocation:
    """Source position reported in ``logging.googleapis.com/sourceLocation``."""

    file: str = ""
    line: int = 0
    function: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"file": self.file, "line": self.line, "function": self.function})


@dataclass
class LogEvent:
    """A single log emission as supplied by the pipeline."""

    level: str
    message: str
    attributes: dict[str, Any] = field(default_factory=dict)
    caller: CallerLocation | None = None
    context: contextvars.Context | None = None
    exc_info: Any = None


@dataclass
class HttpRequest:
    request_method: str = ""
    request_url: str = ""
    latency: str = ""
    status: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "requestMethod": self.request_method,
                "requestUrl": self.request_url,
                "latency": self.latency,
                "status": self.status,
            }
        )


@dataclass
class GrpcStatus:
    code: str = ""
    message: str = ""
    details: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _compact({"code": self.code, "message": self.message, "details": self.details})


@dataclass
class OutputRecord:
    """The structured payload for one log entry."""

    message: str
    severity: str
    additional_info: dict[str, Any] = field(default_factory=dict)
    trace: str | None = None
    type: str | None = None
    source_location: CallerLocation | None = None
    http_request: HttpRequest | None = None
    grpc: GrpcStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the payload in wire order, omitting unset blocks."""
        payload: dict[str, Any] = {"message": self.message, "severity": self.severity}
        if self.additional_info:
            payload["additional_info"] = self.additional_info
        if self.trace:
            payload[TRACE_KEY] = self.trace
        if self.type:
            payload["@type"] = self.type
        if self.source_location is not None:
            payload[SOURCE_LOCATION_KEY] = self.source_location.to_dict()
        if self.http_request is not None:
            payload["httpRequest"] = self.http_request.to_dict()
        if self.grpc is not None:
            payload["grpc"] = self.grpc.to_dict()
        return payload


def _compact(d: dict[str, Any]) -> dict[str, Any]:
    """Drop empty values, mirroring ``omitempty`` on the wire."""
    return {k: v for k, v in d.items() if v}
