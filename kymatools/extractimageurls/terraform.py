"""Image URL extraction from Terraform files."""

from __future__ import annotations

import re
from typing import IO, Any

_IMAGE_PATTERN = re.compile(
    r"([a-z0-9]+(?:[.-][a-z0-9]+)*/)*([a-z0-9]+(?:[.-][a-z0-9]+)*)"
    r"(?::[a-z0-9.-]+)?/([a-z0-9-]+)/([a-z0-9-]+)(?::[a-z0-9.-]+)"
)


def from_terraform(reader: IO[Any]) -> list[str]:
    """Return the docker images referenced in Terraform file content."""
    data = reader.read()
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return [match.group(0) for match in _IMAGE_PATTERN.finditer(data)]