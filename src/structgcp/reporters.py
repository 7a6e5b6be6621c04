"""Convenience functions to log gRPC statuses.

Each function logs *err* under :data:`~structgcp.status.GRPC_STATUS` with
the message taken from the status, and reports the location of its own
caller rather than its own::

    try:
        value = int(raw)
    except ValueError as exc:
        err = status_error(grpc.StatusCode.INVALID_ARGUMENT, f"expected an integer: {exc}")
        grpc_info(err)
"""

from __future__ import annotations

import contextvars
from typing import Any

import structlog

from structgcp.location import caller_location
from structgcp.processors import CONTEXT_KEY
from structgcp.schema import CallerLocation
from structgcp.status import (
    GRPC_STATUS,
    GRPC_STATUS_BLANK_MESSAGE,
    GRPC_STATUS_CALLED_FROM_CONVENIENCE,
)


def _report(
    method: str,
    err: Any,
    location: CallerLocation | None,
    ctx: contextvars.Context | None,
) -> None:
    fields: dict[str, Any] = {
        GRPC_STATUS: err,
        GRPC_STATUS_CALLED_FROM_CONVENIENCE: location,
    }
    if ctx is not None:
        fields[CONTEXT_KEY] = ctx
    log = structlog.get_logger("structgcp")
    getattr(log, method)(GRPC_STATUS_BLANK_MESSAGE, **fields)


def grpc_info(err: Any, ctx: contextvars.Context | None = None) -> None:
    """Log *err* at ``INFO``."""
    _report("info", err, caller_location(), ctx)


def grpc_warn(err: Any, ctx: contextvars.Context | None = None) -> None:
    """Log *err* at ``WARNING``."""
    _report("warning", err, caller_location(), ctx)


def grpc_error(err: Any, ctx: contextvars.Context | None = None) -> None:
    """Log *err* at ``ERROR``."""
    _report("error", err, caller_location(), ctx)
