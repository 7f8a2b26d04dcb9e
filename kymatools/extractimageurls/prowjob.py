"""Image URL extraction from Prow job configuration."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import yaml


@dataclass(frozen=True)
class Repository:
    """A GitHub repository identified by owner and name."""

    name: str
    owner: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


def _job_images(job: Mapping[str, Any]) -> Iterator[str]:
    spec = job.get("spec")
    if not spec:
        return
    for container in spec.get("containers") or []:
        yield container.get("image") or ""


def _periodic_images(periodics: Iterable[Mapping[str, Any]] | None) -> Iterator[str]:
    for job in periodics or []:
        yield from _job_images(job)


def _per_repository_images(
    jobs_by_repo: Mapping[str, Iterable[Mapping[str, Any]]] | None,
) -> Iterator[str]:
    for jobs in (jobs_by_repo or {}).values():
        for job in jobs or []:
            yield from _job_images(job)


def from_prow_job_config(config: Mapping[str, Any] | None) -> list[str]:
    """Return images of periodic, presubmit and postsubmit jobs, in that order."""
    config = config or {}
    return [
        *_periodic_images(config.get("periodics")),
        *_per_repository_images(config.get("presubmits")),
        *_per_repository_images(config.get("postsubmits")),
    ]


def from_repository_content(content: str | bytes) -> list[str]:
    """Parse an in-repository Prow job file and return its images.

    Images come from periodics first, then postsubmits, then presubmits.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    config = yaml.safe_load(content) or {}
    if not isinstance(config, dict):
        raise ValueError("prow job configuration must be a mapping")
    return [
        *_periodic_images(config.get("periodics")),
        *_per_repository_images(config.get("postsubmits")),
        *_per_repository_images(config.get("presubmits")),
    ]