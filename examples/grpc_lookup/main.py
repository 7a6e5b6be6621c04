"""Cloud Run style service logging with structgcp.

Run with ``GOOGLE_CLOUD_PROJECT=my-project LOG_REPORT_CALLER=1 python main.py``.
"""

from __future__ import annotations

import contextvars
import time
from datetime import timedelta

import grpc
import structlog
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext

from structgcp import grpc_info, setup_structlog, status_error

session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("session_id", default=None)

# 1. Configure logging; surface the session id in additional_info
setup_structlog(context_keys={"session_id": session_id})
log = structlog.get_logger(__name__)

ITEMS = {"1": "walrus"}


def get_item(item_id: str) -> str | None:
    started = time.monotonic()
    value = ITEMS.get(item_id)
    if value is None:
        # 2. Report the status with the caller's location and message
        grpc_info(status_error(grpc.StatusCode.NOT_FOUND, f"item with key '{item_id}' not found"))

    # 3. Reserved keys become the httpRequest block
    log.info(
        "request handled",
        request_method="GET",
        request_url=f"/items/{item_id}",
        latency=timedelta(seconds=time.monotonic() - started),
    )
    return value


if __name__ == "__main__":
    session_id.set("1239828228")
    # 4. Entries logged inside a span carry logging.googleapis.com/trace
    span = NonRecordingSpan(
        SpanContext(trace_id=0x0AF7651916CD43DD8448EB211C80319C, span_id=1, is_remote=True)
    )
    with trace.use_span(span):
        get_item("1")
        get_item("2")

    try:
        int("definitely not an int")
    except ValueError:
        # 5. Errors are tagged for Cloud Error Reporting
        log.exception("could not parse")
