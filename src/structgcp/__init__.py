"""structgcp: Google Cloud Logging structured JSON for structlog."""

from structgcp.config import configure_structlog, setup_structlog
from structgcp.console import ConsoleFormatter
from structgcp.core import Formatter, event_from_dict
from structgcp.errors import ERROR_REPORT_TYPE
from structgcp.extract import HTTP_STATUS, LATENCY, REQUEST_METHOD, REQUEST_URL
from structgcp.processors import capture_context, gcp_severity
from structgcp.reporters import grpc_error, grpc_info, grpc_warn
from structgcp.schema import CallerLocation, LogEvent, OutputRecord
from structgcp.status import GRPC_STATUS, GRPC_STATUS_BLANK_MESSAGE, status_error

__version__ = "0.1.0"

__all__ = [
    "CallerLocation",
    "ConsoleFormatter",
    "ERROR_REPORT_TYPE",
    "Formatter",
    "GRPC_STATUS",
    "GRPC_STATUS_BLANK_MESSAGE",
    "HTTP_STATUS",
    "LATENCY",
    "LogEvent",
    "OutputRecord",
    "REQUEST_METHOD",
    "REQUEST_URL",
    "capture_context",
    "configure_structlog",
    "event_from_dict",
    "gcp_severity",
    "grpc_error",
    "grpc_info",
    "grpc_warn",
    "setup_structlog",
    "status_error",
]
