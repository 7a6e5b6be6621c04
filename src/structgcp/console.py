"""Plain-text renderer for local development."""

from __future__ import annotations

from typing import Any

from structgcp.core import event_from_dict
from structgcp.schema import LogEvent


class ConsoleFormatter:
    """Render events as ``<level>: <message>`` lines, level right-aligned."""

    def __call__(
        self,
        _logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> str:
        return self.render(event_from_dict(method_name, event_dict))

    def render(self, event: LogEvent) -> str:
        return f"{event.level.lower():>10}: {event.message}"

    def format(self, event: LogEvent) -> bytes:
        return (self.render(event) + "\n").encode()
