"""OpenTelemetry trace correlation.

Resolves the active span of an ambient context into the fully-qualified
trace name Cloud Logging uses to link log entries with Cloud Trace.
"""

from __future__ import annotations

import contextvars

from opentelemetry import trace

from structgcp.extract import run_in_context


def trace_name(project_id: str, context: contextvars.Context) -> str | None:
    """Return ``projects/<project_id>/traces/<trace_id>`` for *context*.

    Returns ``None`` when the context has no valid span.
    """
    span = run_in_context(context, trace.get_current_span)
    ctx = span.get_span_context()
    if not ctx or not ctx.is_valid:
        return None
    return f"projects/{project_id}/traces/{format(ctx.trace_id, '032x')}"
