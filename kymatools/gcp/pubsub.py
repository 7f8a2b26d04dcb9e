"""Pub/Sub client configuration and the message shapes exchanged over Pub/Sub."""

from __future__ import annotations

import argparse
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlparse

import yaml

DEFAULT_CREDENTIALS_FILE_PATH = "/etc/pubsub/credentials.json"

_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_CHARACTER = re.compile(r"[\x00-\x1f\x7f]")


class _BindAction(argparse.Action):
    """Store the parsed value in the namespace and on a bound object."""

    def __init__(self, option_strings: Sequence[str], dest: str, *, target: Any,
                 attribute: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self._target = target
        self._attribute = attribute

    def __call__(self, parser: argparse.ArgumentParser, namespace: argparse.Namespace,
                 values: Any, option_string: str | None = None) -> None:
        setattr(namespace, self.dest, values)
        setattr(self._target, self._attribute, values)


@dataclass
class ClientConfig:
    """Configuration of a Pub/Sub client."""

    project_id: str = ""
    credentials_file_path: str = ""
    logger: Any = None
    opts: list[Any] = field(default_factory=list)

    def add_flags(self, parser: argparse.ArgumentParser) -> None:
        """Register the client flags on ``parser``; parsed values are written to this config."""
        self.project_id = ""
        self.credentials_file_path = DEFAULT_CREDENTIALS_FILE_PATH
        parser.add_argument(
            "--pubsub-project-id",
            dest="pubsub_project_id",
            default="",
            action=_BindAction,
            target=self,
            attribute="project_id",
            help="Google cloud pubsub project ID.",
        )
        parser.add_argument(
            "--pubsub-credentials-files",
            dest="pubsub_credentials_files",
            default=DEFAULT_CREDENTIALS_FILE_PATH,
            action=_BindAction,
            target=self,
            attribute="credentials_file_path",
            help="Path to the file with pubsub client credentials.",
        )


@dataclass
class MessagePayload:
    """Payload of a Pub/Sub push message; ``data`` is base64 encoded on the wire."""

    attributes: dict[str, str] = field(default_factory=dict)
    data: bytes = b""
    message_id: str = ""
    publish_time: str = ""


def _require_mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {value!r}")
    return value


def _optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field {key!r} must be a list of strings, got {value!r}")
    return list(value)


def _refs(data: Mapping[str, Any]) -> list[dict[str, Any]]:
    value = data.get("refs")
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ValueError(f"field 'refs' must be a list of objects, got {value!r}")
    return [dict(item) for item in value]


_PROW_STRING_FIELDS = (
    ("project", "project"),
    ("topic", "topic"),
    ("run_id", "runid"),
    ("status", "status"),
    ("url", "url"),
    ("gcs_path", "gcs_path"),
)
_PROW_TRAILING_FIELDS = (
    ("job_type", "job_type"),
    ("job_name", "job_name"),
)


def _prow_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        attr: _optional_str(data, key)
        for attr, key in (*_PROW_STRING_FIELDS, *_PROW_TRAILING_FIELDS)
    }
    kwargs["refs"] = _refs(data)
    return kwargs


@dataclass
class ProwMessage:
    """Message published by Prow about a job run."""

    project: str | None = None
    topic: str | None = None
    run_id: str | None = None
    status: str | None = None
    url: str | None = None
    gcs_path: str | None = None
    refs: list[dict[str, Any]] = field(default_factory=list)
    job_type: str | None = None
    job_name: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProwMessage:
        """Build a message from its decoded JSON object."""
        return cls(**_prow_kwargs(_require_mapping(data)))

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form; ``refs`` is left out when empty."""
        result: dict[str, Any] = {key: getattr(self, attr) for attr, key in _PROW_STRING_FIELDS}
        if self.refs:
            result["refs"] = [dict(ref) for ref in self.refs]
        for attr, key in _PROW_TRAILING_FIELDS:
            result[key] = getattr(self, attr)
        return result


_FAILING_OPTIONAL_FIELDS = (
    ("firestore_document_id", "firestoreDocumentId"),
    ("github_issue_number", "githubIssueNumber"),
    ("github_issue_repo", "githubIssueRepo"),
    ("github_issue_org", "githubIssueOrg"),
    ("github_issue_url", "githubIssueUrl"),
    ("slack_thread_id", "slackThreadId"),
)
_FAILING_LIST_FIELDS = (
    ("github_commiters_logins", "githubCommitersLogins"),
    ("commiters_slack_logins", "slackCommitersLogins"),
)


@dataclass
class FailingTestMessage(ProwMessage):
    """A Prow message extended with the failure tracking details."""

    firestore_document_id: str | None = None
    github_issue_number: int | None = None
    github_issue_repo: str | None = None
    github_issue_org: str | None = None
    github_issue_url: str | None = None
    slack_thread_id: str | None = None
    github_commiters_logins: list[str] = field(default_factory=list)
    commiters_slack_logins: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FailingTestMessage:
        """Build a message from its decoded JSON object."""
        data = _require_mapping(data)
        kwargs = _prow_kwargs(data)
        for attr, key in _FAILING_OPTIONAL_FIELDS:
            if attr == "github_issue_number":
                kwargs[attr] = _optional_int(data, key)
            else:
                kwargs[attr] = _optional_str(data, key)
        for attr, key in _FAILING_LIST_FIELDS:
            kwargs[attr] = _str_list(data, key)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form; unset optional fields are left out."""
        result = super().to_dict()
        for attr, key in _FAILING_OPTIONAL_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        for attr, key in _FAILING_LIST_FIELDS:
            value = getattr(self, attr)
            if value:
                result[key] = list(value)
        return result


@dataclass
class Rotation:
    next_rotation_time: str = ""
    rotation_period: str = ""


def _yaml_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a scalar, got {value!r}")
    return value


def _yaml_str_map(value: Any, where: str) -> dict[str, str]:
    if value is None or value == "":
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ValueError(f"field {where!r} must be a mapping of strings")
    return dict(value)


@dataclass
class SecretRotateMessage:
    """Message published by the secret rotation automation."""

    name: str = ""
    create_time: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    topics: list[dict[str, str]] = field(default_factory=list)
    etag: str = ""
    rotation: Rotation = field(default_factory=Rotation)

    @classmethod
    def from_yaml(cls, text: str | bytes) -> SecretRotateMessage:
        """Parse the message from YAML (or JSON) text, keeping scalars as strings."""
        document = yaml.load(text, Loader=yaml.BaseLoader)
        if document is None or document == "":
            return cls()
        if not isinstance(document, dict):
            raise ValueError("secret rotate message must be a mapping")
        topics_value = document.get("topics")
        if topics_value is None or topics_value == "":
            topics: list[dict[str, str]] = []
        elif isinstance(topics_value, list):
            topics = [_yaml_str_map(topic, "topics") for topic in topics_value]
        else:
            raise ValueError("field 'topics' must be a list")
        rotation_value = document.get("rotation")
        if rotation_value is None or rotation_value == "":
            rotation = Rotation()
        elif isinstance(rotation_value, dict):
            rotation = Rotation(
                next_rotation_time=_yaml_str(rotation_value, "nextRotationTime"),
                rotation_period=_yaml_str(rotation_value, "rotationPeriod"),
            )
        else:
            raise ValueError("field 'rotation' must be a mapping")
        return cls(
            name=_yaml_str(document, "name"),
            create_time=_yaml_str(document, "createTime"),
            labels=_yaml_str_map(document.get("labels"), "labels"),
            topics=topics,
            etag=_yaml_str(document, "etag"),
            rotation=rotation,
        )


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def get_job_id(job_url: str) -> str:
    """Return the Prow job ID, the last element of the job URL path."""
    problem = None
    if _CONTROL_CHARACTER.search(job_url):
        problem = "invalid control character in URL"
    elif _INVALID_ESCAPE.search(job_url):
        problem = "invalid URL escape"
    if problem is not None:
        raise ValueError(f"failed parse test URL, error: {problem}")
    try:
        parsed = urlparse(job_url)
    except ValueError as err:
        raise ValueError(f"failed parse test URL, error: {err}") from err
    return _base(unquote(parsed.path))