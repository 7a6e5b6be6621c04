"""Caller location helpers.

The pipeline normally supplies the caller via
:class:`structlog.processors.CallsiteParameterAdder`.  Wrappers that log on
behalf of their caller capture the location themselves with
:func:`caller_location` and pass it down explicitly.
"""

from __future__ import annotations

import os
import sys
from typing import Any

from structgcp.schema import CallerLocation

# Keys written by ``CallsiteParameterAdder`` for FILENAME, LINENO, FUNC_NAME.
CALLSITE_KEYS: tuple[str, ...] = ("filename", "lineno", "func_name")


def caller_location(depth: int = 1) -> CallerLocation | None:
    """Return the location of the frame *depth* levels above the caller.

    ``depth=1`` is the caller of the function calling this one.  Returns
    ``None`` if the stack is not that deep.
    """
    try:
        frame = sys._getframe(depth + 1)
    except ValueError:
        return None
    code = frame.f_code
    return CallerLocation(
        file=os.path.basename(code.co_filename),
        line=frame.f_lineno,
        function=code.co_name,
    )


def pop_callsite(event_dict: dict[str, Any]) -> CallerLocation | None:
    """Remove callsite parameters from *event_dict* as a :class:`CallerLocation`."""
    if "lineno" not in event_dict:
        return None
    filename, lineno, func_name = (event_dict.pop(key, None) for key in CALLSITE_KEYS)
    return CallerLocation(
        file=os.path.basename(filename or ""),
        line=lineno or 0,
        function=func_name or "",
    )
