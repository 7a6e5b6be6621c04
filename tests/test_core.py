"""Tests for structgcp.core."""

from __future__ import annotations

import contextvars
from datetime import timedelta

import grpc
import orjson
import pytest
from google.rpc import error_details_pb2
from opentelemetry import trace
from opentelemetry.trace import NonRecordingSpan, SpanContext

from structgcp.core import Formatter, event_from_dict
from structgcp.errors import ERROR_REPORT_TYPE
from structgcp.processors import CONTEXT_KEY
from structgcp.schema import CallerLocation, LogEvent
from structgcp.status import (
    GRPC_STATUS,
    GRPC_STATUS_BLANK_MESSAGE,
    GRPC_STATUS_CALLED_FROM_CONVENIENCE,
    status_error,
)

TRACE_ID = int.from_bytes(b"123456789abcdefg", "big")

session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("session_id", default=None)


def _traced_context() -> contextvars.Context:
    span = NonRecordingSpan(SpanContext(trace_id=TRACE_ID, span_id=1, is_remote=True))
    with trace.use_span(span):
        return contextvars.copy_context()


def _render(event: LogEvent, **kwargs: object) -> dict:
    return orjson.loads(Formatter(project_id="myproject", **kwargs).format(event))  # type: ignore[arg-type]


class TestBasicOutput:
    def test_message_only(self) -> None:
        out = Formatter(project_id="myproject").format(LogEvent(level="info", message="Hello"))
        assert out == b'{"message":"Hello","severity":"INFO"}\n'

    def test_additional_info(self) -> None:
        event = LogEvent(
            level="info",
            message="My info message here",
            attributes={"animal": "walrus", "number": 1},
        )
        out = Formatter(project_id="myproject").format(event)
        assert out == (
            b'{"message":"My info message here","severity":"INFO",'
            b'"additional_info":{"animal":"walrus","number":1}}\n'
        )

    def test_empty_event_has_no_optional_blocks(self) -> None:
        payload = _render(LogEvent(level="warning", message="x"))
        assert payload == {"message": "x", "severity": "WARNING"}

    def test_unknown_level_is_info(self) -> None:
        assert _render(LogEvent(level="verbose", message="x"))["severity"] == "INFO"

    def test_exceptions_in_attributes_rendered_as_text(self) -> None:
        payload = _render(LogEvent(level="info", message="x", attributes={"err": KeyError("k")}))
        assert payload["additional_info"] == {"err": "'k'"}

    def test_non_string_keys_rendered_as_text(self) -> None:
        event = LogEvent(level="info", message="counts", attributes={"by_status": {200: 5, 404: 1}})
        out = Formatter().format(event)
        assert out == (
            b'{"message":"counts","severity":"INFO",'
            b'"additional_info":{"by_status":{"200":5,"404":1}}}\n'
        )

    def test_unserializable_attribute_raises(self) -> None:
        event = LogEvent(level="info", message="x", attributes={"obj": object()})
        with pytest.raises(orjson.JSONEncodeError):
            Formatter().format(event)

    def test_context_keys_are_read_only(self) -> None:
        formatter = Formatter(context_keys={"session_id": session_id})
        with pytest.raises(TypeError):
            formatter.context_keys["other"] = session_id  # type: ignore[index]


class TestTrace:
    def test_trace_from_active_span(self) -> None:
        event = LogEvent(level="info", message="My info here 100", context=_traced_context())
        out = Formatter(project_id="myproject").format(event)
        assert out == (
            b'{"message":"My info here 100","severity":"INFO",'
            b'"logging.googleapis.com/trace":'
            b'"projects/myproject/traces/31323334353637383961626364656667"}\n'
        )

    def test_no_trace_without_span(self) -> None:
        payload = _render(LogEvent(level="info", message="No trace here", context=contextvars.Context()))
        assert payload == {"message": "No trace here", "severity": "INFO"}


class TestContextKeys:
    def test_context_value_in_additional_info(self) -> None:
        ctx = contextvars.Context()
        ctx.run(session_id.set, "1239828228")
        event = LogEvent(level="info", message="Hello", context=ctx)

        out = Formatter(project_id="myproject", context_keys={"session_id": session_id}).format(event)
        assert out == (
            b'{"message":"Hello","severity":"INFO","additional_info":{"session_id":"1239828228"}}\n'
        )

    def test_ignored_without_context(self) -> None:
        event = LogEvent(level="info", message="Hello")
        payload = _render(event, context_keys={"session_id": session_id})
        assert "additional_info" not in payload


class TestHttpRequest:
    def test_request_block(self) -> None:
        event = LogEvent(
            level="info",
            message="handled",
            attributes={
                "request_method": "GET",
                "request_url": "/items/1",
                "latency": timedelta(milliseconds=250),
                "user": "bob",
            },
        )
        payload = _render(event)
        assert payload["httpRequest"] == {
            "requestMethod": "GET",
            "requestUrl": "/items/1",
            "latency": "0.25s",
        }
        assert payload["additional_info"] == {"user": "bob"}

    def test_claimed_keys_not_duplicated(self) -> None:
        event = LogEvent(
            level="info",
            message="handled",
            attributes={"request_method": "POST", "request_url": "/x", "latency": 3},
        )
        payload = _render(event)
        assert payload["httpRequest"]["requestMethod"] == "POST"
        assert "additional_info" not in payload

    def test_empty_method_keeps_raw_keys(self) -> None:
        event = LogEvent(
            level="info",
            message="handled",
            attributes={"request_method": "", "request_url": "/x"},
        )
        payload = _render(event)
        assert "httpRequest" not in payload
        assert payload["additional_info"] == {"request_method": "", "request_url": "/x"}


class TestGrpcStatus:
    def test_status_block(self) -> None:
        err = status_error(grpc.StatusCode.NOT_FOUND, "blah with key myid not found")
        event = LogEvent(level="info", message="Blah", attributes={GRPC_STATUS: err})
        out = Formatter(project_id="myproject").format(event)
        assert out == (
            b'{"message":"Blah","severity":"INFO",'
            b'"grpc":{"code":"NotFound","message":"blah with key myid not found"}}\n'
        )

    def test_details_rendered(self) -> None:
        info = error_details_pb2.ErrorInfo(reason="MISSING", domain="example.com")
        err = status_error(grpc.StatusCode.NOT_FOUND, "gone", [info])
        payload = _render(LogEvent(level="info", message="x", attributes={GRPC_STATUS: err}))
        assert payload["grpc"]["code"] == "NotFound"
        assert payload["grpc"]["message"] == "gone"
        assert payload["grpc"]["details"]
        assert "additional_info" not in payload

    def test_blank_message_uses_status_message(self) -> None:
        err = status_error(grpc.StatusCode.INVALID_ARGUMENT, "expected an integer")
        event = LogEvent(
            level="info",
            message=GRPC_STATUS_BLANK_MESSAGE,
            attributes={GRPC_STATUS: err},
        )
        assert _render(event)["message"] == "expected an integer"

    def test_undecodable_value_left_in_additional_info(self) -> None:
        event = LogEvent(
            level="info",
            message=GRPC_STATUS_BLANK_MESSAGE,
            attributes={GRPC_STATUS: ValueError("plain error")},
        )
        payload = _render(event)
        assert "grpc" not in payload
        assert payload["message"] == GRPC_STATUS_BLANK_MESSAGE
        assert payload["additional_info"] == {GRPC_STATUS: "plain error"}


class TestSourceLocation:
    def test_pipeline_location(self) -> None:
        event = LogEvent(
            level="info",
            message="x",
            caller=CallerLocation(file="app.py", line=7, function="main"),
        )
        payload = _render(event)
        assert payload["logging.googleapis.com/sourceLocation"] == {
            "file": "app.py",
            "line": 7,
            "function": "main",
        }

    def test_convenience_location_overrides_pipeline(self) -> None:
        err = status_error(grpc.StatusCode.NOT_FOUND, "blah with key 'myid' not found")
        event = LogEvent(
            level="info",
            message=GRPC_STATUS_BLANK_MESSAGE,
            attributes={
                GRPC_STATUS: err,
                GRPC_STATUS_CALLED_FROM_CONVENIENCE: CallerLocation("handler.py", 42, "get_item"),
            },
            caller=CallerLocation(file="reporters.py", line=10, function="grpc_info"),
        )
        payload = _render(event)
        assert payload == {
            "message": "blah with key 'myid' not found",
            "severity": "INFO",
            "logging.googleapis.com/sourceLocation": {
                "file": "handler.py",
                "line": 42,
                "function": "get_item",
            },
            "grpc": {"code": "NotFound", "message": "blah with key 'myid' not found"},
        }

    def test_marker_without_pipeline_location(self) -> None:
        err = status_error(grpc.StatusCode.NOT_FOUND, "gone")
        event = LogEvent(
            level="info",
            message=GRPC_STATUS_BLANK_MESSAGE,
            attributes={
                GRPC_STATUS: err,
                GRPC_STATUS_CALLED_FROM_CONVENIENCE: CallerLocation("handler.py", 42, "get_item"),
            },
        )
        payload = _render(event)
        assert "logging.googleapis.com/sourceLocation" not in payload
        assert "additional_info" not in payload

    def test_direct_status_keeps_pipeline_location(self) -> None:
        err = status_error(grpc.StatusCode.NOT_FOUND, "gone")
        caller = CallerLocation(file="app.py", line=3, function="lookup")
        event = LogEvent(level="info", message="x", attributes={GRPC_STATUS: err}, caller=caller)
        payload = _render(event)
        assert payload["logging.googleapis.com/sourceLocation"]["file"] == "app.py"


class TestErrorReport:
    def test_error_gets_type_and_stack(self) -> None:
        payload = _render(LogEvent(level="error", message="NOOOOOO!"))
        assert payload["severity"] == "ERROR"
        assert payload["@type"] == ERROR_REPORT_TYPE
        message, _, stack = payload["message"].partition("\n")
        assert message == "NOOOOOO!"
        assert stack.startswith("Stack (most recent call last):")

    def test_critical_is_reported(self) -> None:
        payload = _render(LogEvent(level="critical", message="down"))
        assert payload["@type"] == ERROR_REPORT_TYPE

    def test_warning_is_not_reported(self) -> None:
        payload = _render(LogEvent(level="warning", message="hmm"))
        assert "@type" not in payload
        assert payload["message"] == "hmm"

    def test_error_with_exception_uses_traceback(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError as exc:
            event = LogEvent(level="error", message="failed", exc_info=exc)
        payload = _render(event)
        assert payload["message"].startswith("failed\nTraceback (most recent call last):")
        assert "ValueError: boom" in payload["message"]

    def test_non_error_exception_appended_without_type(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError as exc:
            event = LogEvent(level="warning", message="retrying", exc_info=exc)
        payload = _render(event)
        assert "@type" not in payload
        assert payload["message"].startswith("retrying\nTraceback (most recent call last):")

    def test_status_message_then_stack(self) -> None:
        err = status_error(grpc.StatusCode.INTERNAL, "database unreachable")
        event = LogEvent(
            level="error",
            message=GRPC_STATUS_BLANK_MESSAGE,
            attributes={GRPC_STATUS: err},
        )
        payload = _render(event)
        assert payload["message"].startswith("database unreachable\nStack (most recent call last):")
        assert payload["grpc"]["code"] == "Internal"


class TestAttributesNotMutated:
    def test_callers_mapping_unchanged(self) -> None:
        err = status_error(grpc.StatusCode.NOT_FOUND, "gone")
        attributes = {
            "request_method": "GET",
            "request_url": "/x",
            GRPC_STATUS: err,
            "user": "bob",
        }
        snapshot = dict(attributes)
        payload = _render(LogEvent(level="info", message="x", attributes=attributes))

        assert payload["additional_info"] == {"user": "bob"}
        assert attributes == snapshot

    def test_event_reusable(self) -> None:
        event = LogEvent(level="info", message="x", attributes={"request_method": "GET"})
        formatter = Formatter()
        assert formatter.format(event) == formatter.format(event)


class TestEventFromDict:
    def test_splits_event_dict(self) -> None:
        ctx = contextvars.Context()
        event = event_from_dict(
            "info",
            {
                "event": "hello",
                "level": "warning",
                "filename": "app.py",
                "lineno": 5,
                "func_name": "main",
                CONTEXT_KEY: ctx,
                "user": "bob",
            },
        )
        assert event.level == "warning"
        assert event.message == "hello"
        assert event.caller == CallerLocation(file="app.py", line=5, function="main")
        assert event.context is ctx
        assert event.attributes == {"user": "bob"}

    def test_defaults(self) -> None:
        event = event_from_dict("error", {"event": 42})
        assert event.level == "error"
        assert event.message == "42"
        assert event.caller is None
        assert isinstance(event.context, contextvars.Context)

    def test_renderer_returns_line_without_newline(self) -> None:
        formatter = Formatter(project_id="myproject")
        line = formatter(None, "info", {"event": "Hello", CONTEXT_KEY: contextvars.Context()})
        assert line == '{"message":"Hello","severity":"INFO"}'
