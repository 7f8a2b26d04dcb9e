"""Structured log entries in the JSON shape Cloud Logging expects."""

from __future__ import annotations

import dataclasses
import json
import random
from dataclasses import dataclass, field
from typing import Any

_TRACE_KEY = "logging.googleapis.com/trace"


def _sprintf(format: str, args: tuple[Any, ...]) -> str:
    return format % args if args else format


def _dump_json(payload: dict[str, Any]) -> str:
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


@dataclass
class LogEntry:
    """A log entry; the logging methods print it as one line of JSON."""

    message: str = ""
    severity: str = ""
    trace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    component: str = ""

    def __str__(self) -> str:
        payload: dict[str, Any] = {
            "message": self.message,
            "severity": self.severity or "INFO",
        }
        if self.trace:
            payload[_TRACE_KEY] = self.trace
        if self.labels:
            payload["labels"] = dict(sorted(self.labels.items()))
        if self.component:
            payload["component"] = self.component
        return _dump_json(payload)

    def generate_trace_value(self, project_id: str, trace_function_name: str) -> LogEntry:
        """Set a random trace value scoped to the project and function."""
        self.trace = f"projects/{project_id}/traces/{trace_function_name}/{random.getrandbits(63)}"
        return self

    def with_label(self, key: str, value: str) -> LogEntry:
        self.labels[key] = value
        return self

    def with_trace(self, trace: str) -> LogEntry:
        self.trace = trace
        return self

    def with_component(self, component: str) -> LogEntry:
        self.component = component
        return self

    def _emit(self, severity: str, format: str, args: tuple[Any, ...]) -> str:
        message = _sprintf(format, args)
        entry = dataclasses.replace(
            self, severity=severity, message=message, labels=dict(self.labels)
        )
        print(entry)
        return message

    def log_critical(self, format: str, *args: Any) -> None:
        """Print a CRITICAL entry and raise ``RuntimeError`` with the message."""
        message = self._emit("CRITICAL", format, args)
        raise RuntimeError(message)

    def log_error(self, format: str, *args: Any) -> None:
        self._emit("ERROR", format, args)

    def log_warning(self, format: str, *args: Any) -> None:
        self._emit("WARNING", format, args)

    def log_info(self, format: str, *args: Any) -> None:
        self._emit("INFO", format, args)

    def log_debug(self, format: str, *args: Any) -> None:
        self._emit("DEBUG", format, args)


def new_logger() -> LogEntry:
    """Return an empty log entry to build on."""
    return LogEntry()