"""Triggering Azure DevOps pipelines and reading back their results and logs."""

from __future__ import annotations

import base64
import enum
import time
import urllib.request
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

import yaml

T = TypeVar("T")


class RetryError(Exception):
    """Raised when every attempt of a retried call failed."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"#{number}: {err}" for number, err in enumerate(self.errors, 1))
        super().__init__(f"All attempts fail:\n{lines}")


def retry_call(func: Callable[[], T], attempts: int, delay: float) -> T:
    """Call ``func`` until it succeeds, at most ``attempts`` times.

    ``attempts`` of 0 retries until success. The wait between attempts starts
    at ``delay`` seconds and doubles after every failure.
    """
    errors: list[BaseException] = []
    attempt = 0
    while True:
        try:
            return func()
        except Exception as err:
            errors.append(err)
        attempt += 1
        if attempts and attempt >= attempts:
            raise RetryError(errors)
        wait = delay * (2 ** (attempt - 1))
        if wait > 0:
            time.sleep(wait)


@dataclass
class RetryStrategy:
    """Retry policy for requests to the Azure DevOps API.

    ``attempts`` of 0 means the request is retried until it succeeds;
    ``delay`` is the initial wait between attempts, in seconds.
    """

    attempts: int = 0
    delay: float = 0.0


@dataclass
class Config:
    """Where the pipeline lives and how to talk to it.

    ``ado_refresh_interval`` is the wait between status checks, in seconds.
    A pipeline version of 0 means the latest version.
    """

    ado_organization_url: str = ""
    ado_project_name: str = ""
    ado_pipeline_id: int = 0
    ado_pipeline_version: int = 0
    ado_retry_strategy: RetryStrategy = field(default_factory=RetryStrategy)
    ado_refresh_interval: float = 0.0

    def get_ado_config(self) -> Config:
        return self


class RunState(str, enum.Enum):
    CANCELING = "canceling"
    COMPLETED = "completed"
    IN_PROGRESS = "inProgress"
    UNKNOWN = "unknown"


class RunResult(str, enum.Enum):
    CANCELED = "canceled"
    FAILED = "failed"
    SUCCEEDED = "succeeded"
    UNKNOWN = "unknown"


@dataclass
class Run:
    state: RunState
    result: RunResult | None = None
    id: int | None = None


@dataclass
class BuildLog:
    url: str
    id: int | None = None


@dataclass
class RunPipelineParameters:
    preview_run: bool = False
    template_parameters: dict[str, str] | None = None
    yaml_override: str | None = None


@dataclass
class RunPipelineArgs:
    project: str
    pipeline_id: int
    run_parameters: RunPipelineParameters = field(default_factory=RunPipelineParameters)
    pipeline_version: int | None = None


@dataclass
class BuildTest:
    """Expectation that a message is present in, or absent from, the build logs."""

    description: str = ""
    log_message: str = ""
    expect_absent: bool = False


@dataclass
class TimelineTest:
    """Expectation about the state and result of a named build stage."""

    name: str = ""
    state: str = ""
    result: str = ""


def _format_duration(seconds: float) -> str:
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    if seconds < 1e-6:
        return f"{sign}{seconds * 1e9:g}ns"
    if seconds < 1e-3:
        return f"{sign}{seconds * 1e6:g}µs"
    if seconds < 1:
        return f"{sign}{seconds * 1e3:g}ms"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    secs_text = f"{secs:.9f}".rstrip("0").rstrip(".")
    if hours:
        return f"{sign}{int(hours)}h{int(minutes)}m{secs_text}s"
    if minutes:
        return f"{sign}{int(minutes)}m{secs_text}s"
    return f"{sign}{secs_text}s"


def get_run_result(ado_client: Any, ado_config: Config, pipeline_run_id: int) -> RunResult | None:
    """Poll the pipeline run until it completes and return its result.

    ``ado_client`` provides ``get_run(project=, pipeline_id=, run_id=)``
    returning a :class:`Run`.
    """
    strategy = ado_config.ado_retry_strategy
    while True:
        time.sleep(ado_config.ado_refresh_interval)
        try:
            run = retry_call(
                lambda: ado_client.get_run(
                    project=ado_config.ado_project_name,
                    pipeline_id=ado_config.ado_pipeline_id,
                    run_id=pipeline_run_id,
                ),
                strategy.attempts,
                strategy.delay,
            )
        except RetryError as err:
            raise RuntimeError(f"failed getting ADO pipeline run, err: {err}") from err
        if run.state == RunState.COMPLETED:
            return run.result
        print(
            "Pipeline run still in progress. Waiting for "
            f"{_format_duration(ado_config.ado_refresh_interval)}"
        )


def get_run_logs(
    build_client: Any,
    http_client: Any,
    ado_config: Config,
    pipeline_run_id: int,
    ado_pat: str,
) -> str:
    """Return the combined log of a pipeline run.

    ``build_client`` provides ``get_build_logs(project=, build_id=)`` returning
    a list of :class:`BuildLog`; ``http_client`` provides ``open(request)`` as
    ``urllib.request.OpenerDirector`` does, and defaults to one when ``None``.
    """
    strategy = ado_config.ado_retry_strategy
    try:
        build_logs = retry_call(
            lambda: build_client.get_build_logs(
                project=ado_config.ado_project_name, build_id=pipeline_run_id
            ),
            strategy.attempts,
            strategy.delay,
        )
    except RetryError as err:
        raise RuntimeError(f"failed getting build logs metadata, err: {err}") from err
    if not build_logs:
        raise LookupError("no build logs found for pipeline run")

    # The last log holds the output of all pipeline steps.
    last_log = build_logs[-1]
    try:
        request = urllib.request.Request(last_log.url, method="GET")
    except ValueError as err:
        raise ValueError(
            f"failed creating http request getting build log, err: {err}"
        ) from err
    credentials = base64.b64encode(f":{ado_pat}".encode("utf-8")).decode("ascii")
    request.add_header("Authorization", f"Basic {credentials}")

    client = http_client if http_client is not None else urllib.request.build_opener()
    try:
        response = retry_call(lambda: client.open(request), strategy.attempts, strategy.delay)
    except RetryError as err:
        raise RuntimeError(f"failed http request getting build log, err: {err}") from err
    try:
        body = response.read()
    except Exception as err:
        raise RuntimeError(f"failed reading http body with build log, err: {err}") from err
    try:
        response.close()
    except Exception as err:
        raise RuntimeError(f"failed closing http body with build log, err: {err}") from err
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return str(body)


def _field(entry: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = entry.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be of type {kind.__name__}, got {value!r}")
    return value


def _entries(document: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    value = document.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ValueError(f"field {key!r} must be a list of mappings")
    return value


def get_tests_definition(file_path: str) -> tuple[list[BuildTest], list[TimelineTest]]:
    """Read build and timeline test definitions from a YAML file."""
    try:
        with open(file_path, encoding="utf-8") as handle:
            content = handle.read()
    except OSError as err:
        raise OSError(f"error reading tests file: {err}") from err

    try:
        document = yaml.safe_load(content)
        if document is None:
            document = {}
        if not isinstance(document, Mapping):
            raise ValueError("tests definition must be a mapping")
        build_tests = [
            BuildTest(
                description=_field(entry, "description", str, ""),
                log_message=_field(entry, "logmessage", str, ""),
                expect_absent=_field(entry, "expectabsent", bool, False),
            )
            for entry in _entries(document, "buildTests")
        ]
        timeline_tests = [
            TimelineTest(
                name=_field(entry, "name", str, ""),
                state=_field(entry, "state", str, ""),
                result=_field(entry, "result", str, ""),
            )
            for entry in _entries(document, "timelineTests")
        ]
    except (yaml.YAMLError, ValueError) as err:
        raise ValueError(f"error unmarshalling tests: {err}") from err
    return build_tests, timeline_tests


RunPipelineArgsOption = Callable[[RunPipelineArgs], None]


def new_run_pipeline_args(
    template_parameters: dict[str, str], ado_config: Config, *args: RunPipelineArgsOption
) -> RunPipelineArgs:
    """Build the arguments for running the configured pipeline and apply the options."""
    run_args = RunPipelineArgs(
        project=ado_config.ado_project_name,
        pipeline_id=ado_config.ado_pipeline_id,
        run_parameters=RunPipelineParameters(
            preview_run=False, template_parameters=template_parameters
        ),
    )
    if ado_config.ado_pipeline_version != 0:
        run_args.pipeline_version = ado_config.ado_pipeline_version
    for option in args:
        try:
            option(run_args)
        except Exception as err:
            raise ValueError(f"failed setting pipeline run args, err: {err}") from err
    return run_args


def pipeline_preview_run(override_yaml_path: str) -> RunPipelineArgsOption:
    """Return an option turning the run into a preview with the YAML file as override."""

    def apply(args: RunPipelineArgs) -> None:
        args.run_parameters.preview_run = True
        try:
            with open(override_yaml_path, encoding="utf-8") as handle:
                override_yaml = handle.read()
        except OSError as err:
            raise OSError(f"failed reading override yaml file, err: {err}") from err
        args.run_parameters.yaml_override = override_yaml

    return apply