"""Reserved-key extraction from the generic attribute bag.

Attributes named by :data:`REQUEST_METHOD`, :data:`REQUEST_URL`,
:data:`LATENCY` and :data:`HTTP_STATUS` are claimed by the ``httpRequest``
block.  Context values selected by the formatter's ``context_keys`` are
copied into the bag before any extraction happens.
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any, TypeAlias, TypeVar

from structlog.contextvars import get_contextvars

from structgcp.schema import HttpRequest

REQUEST_METHOD = "request_method"
REQUEST_URL = "request_url"
LATENCY = "latency"
HTTP_STATUS = "http_status"

ContextKey: TypeAlias = "contextvars.ContextVar[Any] | str"

_T = TypeVar("_T")

_CURRENT_MARKER: contextvars.ContextVar[object] = contextvars.ContextVar("_structgcp_current")


def _render_latency(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, timedelta):
        # Cloud Logging expects a protobuf Duration, e.g. "0.25s".
        seconds = f"{value.total_seconds():.6f}".rstrip("0").rstrip(".")
        return f"{seconds}s"
    return str(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def extract_http_request(attributes: dict[str, Any]) -> HttpRequest | None:
    """Pop the HTTP request attributes into an :class:`HttpRequest`.

    Nothing is claimed unless ``request_method`` is present and non-empty.
    """
    if not attributes.get(REQUEST_METHOD):
        return None

    return HttpRequest(
        request_method=_text(attributes.pop(REQUEST_METHOD)),
        request_url=_text(attributes.pop(REQUEST_URL, None)),
        latency=_render_latency(attributes.pop(LATENCY, None)),
        status=_text(attributes.pop(HTTP_STATUS, None)),
    )


def _is_current(context: contextvars.Context) -> bool:
    """Return ``True`` if *context* is the one this thread is running in."""
    marker = object()
    token = _CURRENT_MARKER.set(marker)
    try:
        return context.get(_CURRENT_MARKER) is marker
    finally:
        _CURRENT_MARKER.reset(token)


def run_in_context(context: contextvars.Context, fn: Callable[[], _T]) -> _T:
    """Call *fn* once inside *context*.

    The current context cannot be entered again, so *fn* is called directly
    when *context* is current.  A context entered by another thread raises
    :class:`RuntimeError`.
    """
    if _is_current(context):
        return fn()
    return context.run(fn)


def inject_context_values(
    context: contextvars.Context | None,
    context_keys: Mapping[str, ContextKey],
    attributes: dict[str, Any],
) -> None:
    """Copy selected context values into *attributes*.

    *context_keys* maps an attribute label to either a
    :class:`contextvars.ContextVar` or the name of a value bound with
    :func:`structlog.contextvars.bind_contextvars`.  Values that are
    ``None`` or missing are skipped; present values overwrite attributes
    of the same name.
    """
    if context is None or not context_keys:
        return

    bound: dict[str, Any] | None = None
    for label, key in context_keys.items():
        if isinstance(key, contextvars.ContextVar):
            value = context.get(key)
        else:
            if bound is None:
                bound = run_in_context(context, get_contextvars)
            value = bound.get(key)
        if value is not None:
            attributes[label] = value
