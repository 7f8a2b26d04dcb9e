"""Checks run against the logs and timeline of an Azure DevOps build."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kymatools.azuredevops.pipelines import (
    BuildTest,
    RetryError,
    RetryStrategy,
    TimelineTest,
    retry_call,
)

# Retry policy used where no strategy is passed in.
_DEFAULT_ATTEMPTS = 10
_DEFAULT_DELAY = 0.1


@dataclass
class TimelineRecord:
    """One stage, job or task in a build timeline."""

    name: str | None = None
    result: str | None = None
    state: str | None = None


@dataclass
class Timeline:
    """The records making up a build timeline."""

    records: list[TimelineRecord] = field(default_factory=list)


def _text(value: Any) -> Any:
    return getattr(value, "value", value)


def check_build_records(
    timeline: Timeline, test_name: str, test_result: str, test_state: str
) -> bool:
    """Return ``True`` if a record has the given name, result and state.

    Raises ``LookupError`` when no record matches.
    """
    for record in timeline.records:
        if record.name is None or record.name != test_name:
            continue
        if (
            record.result is not None
            and _text(record.result) == test_result
            and record.state is not None
            and _text(record.state) == test_state
        ):
            return True
    raise LookupError("no record found matching the criteria")


def get_build_stage_status(
    build_client: Any,
    retry_strategy: RetryStrategy,
    project_name: str,
    build_id: int,
    test: TimelineTest,
) -> bool:
    """Fetch the build timeline and check it for the stage described by ``test``.

    ``build_client`` provides ``get_build_timeline(project=, build_id=)``
    returning a :class:`Timeline`.
    """
    try:
        timeline = retry_call(
            lambda: build_client.get_build_timeline(project=project_name, build_id=build_id),
            retry_strategy.attempts,
            retry_strategy.delay,
        )
    except RetryError as err:
        raise RuntimeError(f"error getting build timeline: {err}") from err
    return check_build_records(timeline, test.name, test.result, test.state)


def check_build_log_for_message(
    build_client: Any,
    retry_strategy: RetryStrategy,
    project_name: str,
    pipeline_name: str,
    log_message: str,
    expect_absent: bool,
    pipeline_id: int,
    build_id: int,
) -> bool:
    """Check that ``log_message`` is present in (or absent from) the build logs.

    ``build_client`` provides ``get_builds(project=, definitions=)``,
    ``get_build_logs(project=, build_id=)`` and
    ``get_build_log_lines(project=, build_id=, log_id=)``.
    Returns ``True`` when the expectation holds and raises otherwise.
    """
    try:
        builds = retry_call(
            lambda: build_client.get_builds(project=project_name, definitions=[pipeline_id]),
            retry_strategy.attempts,
            retry_strategy.delay,
        )
    except RetryError as err:
        raise RuntimeError(f"error getting last build: {err}") from err

    if not builds:
        raise LookupError(f"no builds found for pipeline {pipeline_name}")

    try:
        logs = retry_call(
            lambda: build_client.get_build_logs(project=project_name, build_id=build_id),
            _DEFAULT_ATTEMPTS,
            _DEFAULT_DELAY,
        )
    except RetryError as err:
        raise RuntimeError(f"error getting build logs: {err}") from err

    for build_log in logs:
        try:
            lines = retry_call(
                lambda: build_client.get_build_log_lines(
                    project=project_name, build_id=build_id, log_id=build_log.id
                ),
                _DEFAULT_ATTEMPTS,
                _DEFAULT_DELAY,
            )
        except RetryError as err:
            raise RuntimeError(f"error getting build log lines: {err}") from err

        if any(log_message in line for line in lines):
            if expect_absent:
                raise ValueError(f"unexpected message found in logs: {log_message}")
            return True

    if expect_absent:
        return True
    raise LookupError(f"message not found in logs: {log_message}")


def run_build_tests(
    build_client: Any,
    retry_strategy: RetryStrategy,
    project_name: str,
    pipeline_name: str,
    pipeline_id: int,
    build_id: int,
    test: BuildTest,
) -> None:
    """Run one build log test; raise ``RuntimeError`` if it fails."""
    try:
        passed = check_build_log_for_message(
            build_client,
            retry_strategy,
            project_name,
            pipeline_name,
            test.log_message,
            test.expect_absent,
            pipeline_id,
            build_id,
        )
    except Exception as err:
        raise RuntimeError(f"test failed for {test.description}: {err}") from err
    if not passed:
        raise RuntimeError(f"test failed for {test.description}: condition not met")
    print(f"Test passed for {test.description}")


def run_timeline_tests(
    build_client: Any,
    retry_strategy: RetryStrategy,
    project_name: str,
    build_id: int,
    test: TimelineTest,
) -> None:
    """Run one timeline test; raise ``RuntimeError`` if it fails."""
    try:
        passed = get_build_stage_status(
            build_client, retry_strategy, project_name, build_id, test
        )
    except Exception as err:
        raise RuntimeError(f"test failed for {test.name}: {err}") from err
    if not passed:
        raise RuntimeError(f"test failed for {test.name}: condition not met")
    print(f"Test passed for {test.name}")