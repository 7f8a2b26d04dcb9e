"""Helpers shared by the image URL extractors."""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterable, Iterator
from typing import IO, Any

ExtractFunc = Callable[[IO[Any]], list[str]]

_YAML_DOCUMENT_SEPARATOR = re.compile(rb"(?m)^---\n")


def from_files(files: Iterable[str | os.PathLike[str]], extract: ExtractFunc) -> list[str]:
    """Run ``extract`` on every file in turn and collect the image URLs it finds.

    A file that cannot be opened raises ``OSError``; a failing extractor is
    reported as ``ValueError`` naming the file.
    """
    images: list[str] = []
    for file in files:
        with open(file, "rb") as reader:
            try:
                found = extract(reader)
            except Exception as err:
                raise ValueError(
                    f"failed to extract images from file {os.fspath(file)}: {err}"
                ) from err
        images.extend(found)
    return images


def _walk(path: str) -> Iterator[str]:
    """Yield ``path`` and everything below it, in lexical order, without following links."""
    yield path
    if os.path.islink(path) or not os.path.isdir(path):
        return
    try:
        names = sorted(os.listdir(path))
    except OSError:
        return
    for name in names:
        yield from _walk(os.path.normpath(os.path.join(path, name)))


def find_files_in_directory(root_path: str | os.PathLike[str], regex: str) -> list[str]:
    """Return every path under ``root_path`` (the root included) that matches ``regex``."""
    pattern = re.compile(regex)
    return [path for path in _walk(os.fspath(root_path)) if pattern.search(path)]


def unique_images(images: Iterable[str]) -> list[str]:
    """Return the images without duplicates, keeping the order of first appearance."""
    return list(dict.fromkeys(images))


def split_yaml_into_sections(data: bytes | str) -> list[bytes]:
    """Split YAML text into documents at lines consisting of ``---``."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return _YAML_DOCUMENT_SEPARATOR.split(data)