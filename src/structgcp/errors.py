"""Error Reporting enrichment.

Cloud Error Reporting picks up log entries whose ``@type`` is
:data:`ERROR_REPORT_TYPE` and whose message contains a stack trace.
"""

from __future__ import annotations

import sys
import traceback
from types import TracebackType
from typing import Any, TypeAlias

ERROR_REPORT_TYPE = (
    "type.googleapis.com/google.devtools.clouderrorreporting.v1beta1.ReportedErrorEvent"
)

ExcInfo: TypeAlias = "tuple[type[BaseException], BaseException, TracebackType | None]"


def normalize_exc_info(exc_info: Any) -> ExcInfo | None:
    """Turn the accepted ``exc_info`` forms into an exception triple.

    Accepts ``True`` (the exception being handled), an exception instance,
    or an ``exc_info`` tuple.  Returns ``None`` when there is no exception.
    """
    if not exc_info:
        return None
    if isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)
    elif exc_info is True:
        exc_info = sys.exc_info()

    if not isinstance(exc_info, tuple) or len(exc_info) != 3 or exc_info[0] is None:
        return None
    return exc_info  # type: ignore[return-value]


def format_exception(exc_info: Any) -> str | None:
    """Return the formatted traceback for *exc_info*, or ``None``."""
    normalized = normalize_exc_info(exc_info)
    if normalized is None:
        return None
    return "".join(traceback.format_exception(*normalized))


def stack_snapshot() -> str:
    """Return the current call stack, outermost frame first."""
    frames = traceback.format_stack(sys._getframe(1))
    return "Stack (most recent call last):\n" + "".join(frames)


def stack_trace(exc_info: Any = None) -> str:
    """Return the traceback of *exc_info*, or a snapshot of the current stack."""
    return format_exception(exc_info) or stack_snapshot()
