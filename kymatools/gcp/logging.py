"""Structured logging to a Cloud Logging style sink, with Prow job defaults."""

from __future__ import annotations

import dataclasses
import enum
import json
import os
import random
import sys
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

ERROR_REPORTING_TYPE = (
    "type.googleapis.com/google.devtools.clouderrorreporting.v1beta1.ReportedErrorEvent"
)
"""Payload type that makes Cloud Logging report the entry in Error Reporting."""
PROW_LOGS_PROJECT_ID = "sap-kyma-prow"
"""Default project to store logs in."""
CREDENTIALS_FILE_PATH = "/etc/gcpLoggingServiceAccountKey/key"
"""Default path of the logging service account credentials."""
PROWJOBS_LOG_NAME = "prowjobs"
"""Default log name for messages sent by Prow jobs."""
REPO_OWNERS_SERVICE_LOG_NAME = "repoowners"
"""Default log name for messages sent by the repo owners service."""


class Severity(enum.IntEnum):
    """Log entry severities, with the numeric values Cloud Logging uses."""

    DEFAULT = 0
    DEBUG = 100
    INFO = 200
    NOTICE = 300
    WARNING = 400
    ERROR = 500
    CRITICAL = 600
    ALERT = 700
    EMERGENCY = 800


_ERROR_REPORTING_SEVERITIES = frozenset({Severity.ERROR, Severity.CRITICAL, Severity.EMERGENCY})


@dataclass
class Payload:
    """The JSON payload of a log entry."""

    message: str = ""
    context: str = ""
    type: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON object form; empty context and type are left out."""
        result = {"message": self.message}
        if self.context:
            result["context"] = self.context
        if self.type:
            result["@type"] = self.type
        return result


@dataclass
class Entry:
    """A log entry ready to be written."""

    timestamp: datetime
    severity: Severity
    payload: Payload
    labels: dict[str, str] | None = None
    trace: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.name,
            "jsonPayload": self.payload.to_dict(),
        }
        if self.labels:
            result["labels"] = dict(self.labels)
        if self.trace:
            result["trace"] = self.trace
        return result


@dataclass
class Config:
    """Settings shared by the client and logger constructors."""

    app_name: str = ""
    log_name: str = ""
    component: str = ""
    project_id: str = PROW_LOGS_PROJECT_ID
    credentials_file_path: str = CREDENTIALS_FILE_PATH
    common_labels: dict[str, str] | None = None
    trace: str = ""
    context: str = ""


Option = Callable[[Config], None]
Sink = Callable[[str, Entry], None]


def _apply_options(config: Config, options: Sequence[Option]) -> Config:
    for option in options:
        try:
            option(config)
        except Exception as err:
            raise ValueError(f"failed applying functional option: {err}") from err
    return config


def with_project_id(project_id: str) -> Option:
    """Option setting the project to send log messages to."""

    def apply(config: Config) -> None:
        config.project_id = project_id

    return apply


def with_credentials_file_path(credentials_file_path: str) -> Option:
    """Option setting the path of the credentials file."""

    def apply(config: Config) -> None:
        config.credentials_file_path = credentials_file_path

    return apply


def with_trace(trace: str) -> Option:
    """Logger option setting the trace value used in entries."""

    def apply(config: Config) -> None:
        config.trace = trace

    return apply


def with_logger_context(context: str) -> Option:
    """Logger option setting the context description used in entries."""

    def apply(config: Config) -> None:
        config.context = context

    return apply


def _random_trace() -> str:
    return f"trace/{random.getrandbits(63)}"


def with_generated_trace() -> Option:
    """Logger option setting a randomly generated trace value."""

    def apply(config: Config) -> None:
        config.trace = _random_trace()

    return apply


def get_prowjob_labels() -> dict[str, str]:
    """Return the default labels of a Prow job, read from Prow's environment variables."""
    env = os.environ
    job_type = env.get("JOB_TYPE", "")
    labels = {
        "jobName": env.get("JOB_NAME", ""),
        "jobType": job_type,
        "buildID": env.get("BUILD_ID", ""),
        "prowjobID": env.get("PROW_JOB_ID", ""),
    }
    if job_type in ("presubmit", "postsubmit"):
        labels["repoName"] = env.get("REPO_NAME", "")
        labels["commitSHA"] = env.get("PULL_BASE_SHA", "")
    if job_type == "presubmit":
        labels["prNumber"] = env.get("PULL_NUMBER", "")
        labels["prSHA"] = env.get("PULL_PULL_SHA", "")
    return labels


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def get_message(template: str, fmt_args: Sequence[Any] | None) -> str:
    """Build the message text: the template alone, the formatted template, or the joined args."""
    if not fmt_args:
        return template
    if template:
        return template % tuple(fmt_args)
    if len(fmt_args) == 1 and isinstance(fmt_args[0], str):
        return fmt_args[0]
    parts: list[str] = []
    previous: Any = None
    for index, arg in enumerate(fmt_args):
        # Operands are separated by a space when neither side is a string.
        if index and not isinstance(arg, str) and not isinstance(previous, str):
            parts.append(" ")
        parts.append(_to_text(arg))
        previous = arg
    return "".join(parts)


def _pair_labels(context_labels: Sequence[str]) -> dict[str, str]:
    pairs = iter(context_labels)
    return dict(zip(pairs, pairs))


def get_labels(context_labels: Sequence[str]) -> dict[str, str]:
    """Turn a flat sequence of keys and values into a mapping.

    Raises ``ValueError`` when the sequence has an odd number of elements.
    """
    if len(context_labels) % 2:
        raise ValueError(
            "an odd number of strings was passed as contextLabels, "
            "can't make key, val pairs for all elements"
        )
    return _pair_labels(context_labels)


def get_entry(
    severity: Severity,
    context: str,
    trace: str,
    message: str,
    labels: Mapping[str, str] | None,
) -> Entry:
    """Create a log entry; error severities are marked for Error Reporting."""
    payload_type = ERROR_REPORTING_TYPE if severity in _ERROR_REPORTING_SEVERITIES else ""
    return Entry(
        timestamp=datetime.now(timezone.utc),
        severity=severity,
        payload=Payload(message=message, context=context, type=payload_type),
        labels=dict(labels) if labels is not None else None,
        trace=trace,
    )


def _stdout_sink(log_name: str, entry: Entry) -> None:
    record = {"logName": log_name, **entry.to_dict()}
    print(json.dumps(record, ensure_ascii=False), file=sys.stdout)


class Client:
    """Logging client; entries of its loggers are handed to ``sink(log_name, entry)``.

    Without a sink, entries are printed to standard output as JSON lines.
    """

    def __init__(self, *options: Option, sink: Sink | None = None) -> None:
        self.config = _apply_options(Config(), options)
        self.sink: Sink = sink if sink is not None else _stdout_sink

    @property
    def project_id(self) -> str:
        return self.config.project_id

    @property
    def credentials_file_path(self) -> str:
        return self.config.credentials_file_path

    def new_logger(self, *args: Option) -> Logger:
        """Create a logger configured by the given options; a log name is required."""
        config = _apply_options(Config(), args)
        if not config.log_name:
            raise ValueError("logname was not provided, can not create logger")
        return Logger(
            client=self,
            log_name=config.log_name,
            common_labels=dict(config.common_labels or {}),
            trace=config.trace,
            context=config.context,
        )

    def new_prowjob_logger(self) -> Logger:
        """Create a logger writing to the Prow jobs log with the job's labels."""
        return Logger(
            client=self, log_name=PROWJOBS_LOG_NAME, common_labels=get_prowjob_labels()
        )


@dataclass
class Logger:
    """Logger writing entries of one log through a :class:`Client`."""

    client: Client
    log_name: str
    common_labels: dict[str, str] = field(default_factory=dict)
    trace: str = ""
    context: str = ""

    def with_trace(self, trace: str) -> Logger:
        self.trace = trace
        return self

    def with_generated_trace(self) -> Logger:
        self.trace = _random_trace()
        return self

    def with_context(self, entry_context: str) -> Logger:
        """Return a copy of the logger using ``entry_context``."""
        return dataclasses.replace(
            self, common_labels=dict(self.common_labels), context=entry_context
        )

    def _write(self, entry: Entry) -> None:
        if self.common_labels:
            entry.labels = {**self.common_labels, **(entry.labels or {})}
        self.client.sink(self.log_name, entry)

    def _log(
        self,
        severity: Severity,
        template: str,
        args: Sequence[Any] | None,
        context: Sequence[str] | None,
    ) -> None:
        labels = None
        message = get_message(template, args)
        if context:
            try:
                labels = get_labels(context)
            except ValueError as err:
                self.error(str(err))
                labels = _pair_labels(context)
        self._write(get_entry(severity, self.context, self.trace, message, labels))

    def error(self, *args: Any) -> None:
        self._log(Severity.ERROR, "", args, None)

    def errorf(self, template: str, *args: Any) -> None:
        self._log(Severity.ERROR, template, args, None)

    def errorw(self, message: str, *args: str) -> None:
        """Log an error; ``args`` are alternating label keys and values."""
        self._log(Severity.ERROR, message, None, args)

    def log_error(self, message: str) -> None:
        self._log(Severity.ERROR, message, None, None)

    def warn(self, *args: Any) -> None:
        self._log(Severity.WARNING, "", args, None)

    def info(self, *args: Any) -> None:
        self._log(Severity.INFO, "", args, None)

    def infof(self, template: str, *args: Any) -> None:
        self._log(Severity.INFO, template, args, None)

    def infow(self, message: str, *args: str) -> None:
        """Log at info level; ``args`` are alternating label keys and values."""
        self._log(Severity.INFO, message, None, args)

    def log_info(self, message: str) -> None:
        self._log(Severity.INFO, message, None, None)

    def debug(self, *args: Any) -> None:
        self._log(Severity.DEBUG, "", args, None)

    def debugf(self, template: str, *args: Any) -> None:
        self._log(Severity.DEBUG, template, args, None)

    def debugw(self, message: str, *args: str) -> None:
        """Log at debug level; ``args`` are alternating label keys and values."""
        self._log(Severity.DEBUG, message, None, args)