"""gRPC status decoding.

Log an error that carries a gRPC status under :data:`GRPC_STATUS` and the
formatter renders it as the ``grpc`` block of the log entry::

    log.info("lookup failed", grpc_status=err)

Logging :data:`GRPC_STATUS_BLANK_MESSAGE` as the message takes the message
from the status instead.  :mod:`structgcp.reporters` wraps both steps.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import grpc
from google.protobuf import any_pb2, text_format
from google.protobuf.message import DecodeError, Message
from google.rpc import status_pb2
from grpc import aio
from grpc_status import rpc_status

GRPC_STATUS = "grpc_status"
GRPC_STATUS_BLANK_MESSAGE = "!"
GRPC_STATUS_CALLED_FROM_CONVENIENCE = "_grpc_status_called_from_convenience"

# Canonical code names as used by the Go and C++ runtimes and by the
# Cloud Logging UI.
_CODE_NAMES: dict[int, str] = {
    0: "OK",
    1: "Canceled",
    2: "Unknown",
    3: "InvalidArgument",
    4: "DeadlineExceeded",
    5: "NotFound",
    6: "AlreadyExists",
    7: "PermissionDenied",
    8: "ResourceExhausted",
    9: "FailedPrecondition",
    10: "Aborted",
    11: "OutOfRange",
    12: "Unimplemented",
    13: "Internal",
    14: "Unavailable",
    15: "DataLoss",
    16: "Unauthenticated",
}


def code_name(code: int | grpc.StatusCode) -> str:
    """Return the canonical name of a numeric or enum status code."""
    if isinstance(code, grpc.StatusCode):
        code = code.value[0]
    return _CODE_NAMES.get(code, f"Code({code})")


@dataclass(frozen=True)
class Status:
    """A decoded code/message/details triple."""

    code: str
    message: str
    details: tuple[Any, ...] = ()

    def render_details(self) -> str:
        """Render the detail collection as a single line of text."""
        return "[" + ", ".join(_render_detail(d) for d in self.details) + "]"


def _render_detail(detail: Any) -> str:
    if isinstance(detail, Message):
        return text_format.MessageToString(detail, as_one_line=True)
    return str(detail)


def _rich_details(call: Any) -> tuple[Any, ...]:
    """Read the ``grpc-status-details-bin`` trailer of *call*, if any."""
    try:
        rich = rpc_status.from_call(call)
    except (AttributeError, TypeError, ValueError, DecodeError):
        return ()
    if rich is None:
        return ()
    return tuple(rich.details)


def from_error(value: Any) -> Status | None:
    """Decode *value* as a gRPC status.

    Accepts a ``google.rpc.Status`` message or a :class:`grpc.RpcError`
    that is also a call (``code()`` / ``details()``), as raised by both the
    sync and asyncio stacks.  Returns ``None`` for anything else.
    """
    if isinstance(value, status_pb2.Status):
        return Status(
            code=code_name(value.code),
            message=value.message,
            details=tuple(value.details),
        )

    if not isinstance(value, grpc.RpcError):
        return None
    code_fn = getattr(value, "code", None)
    details_fn = getattr(value, "details", None)
    if not (callable(code_fn) and callable(details_fn)):
        return None

    code = code_fn()
    if not isinstance(code, grpc.StatusCode):
        return None
    return Status(
        code=code_name(code),
        message=details_fn() or "",
        details=_rich_details(value),
    )


def status_error(
    code: grpc.StatusCode,
    message: str,
    details: Iterable[Message] = (),
) -> aio.AioRpcError:
    """Build an error value carrying a gRPC status.

    *details* are packed into ``google.protobuf.Any`` (unless already
    packed) and attached as the rich-status trailer, the same way a server
    reports them with ``context.abort_with_status``.
    """
    packed: list[any_pb2.Any] = []
    for detail in details:
        if isinstance(detail, any_pb2.Any):
            packed.append(detail)
            continue
        any_detail = any_pb2.Any()
        any_detail.Pack(detail)
        packed.append(any_detail)

    proto = status_pb2.Status(code=code.value[0], message=message, details=packed)
    trailing = aio.Metadata(*rpc_status.to_status(proto).trailing_metadata)
    return aio.AioRpcError(code, aio.Metadata(), trailing, details=message)
