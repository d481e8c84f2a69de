"""
lambda_configuration.paths — Logical key to storage path resolution.

A key is either a dotted string ("db.host") or an explicit sequence of
segments (["db", "host.primary"]) for segment names containing dots.
Both resolve to the same segment list, always rooted at "data".
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from lambda_configuration.exceptions import UsageError
from lambda_configuration.models import ROOT_SEGMENT

Key = str | Sequence[str] | None

_PLACEHOLDER_PREFIX = "#path"


def resolve(key: Key) -> list[str]:
    """Return the storage path for key, prefixed with the root segment."""
    if key is None:
        return [ROOT_SEGMENT]
    if isinstance(key, str):
        segments = key.split(".")
    elif isinstance(key, Sequence) and not isinstance(key, (bytes, bytearray, Mapping)):
        segments = list(key)
        if not segments:
            raise UsageError("key must contain at least one segment")
    else:
        raise UsageError(f"key must be a string or a sequence of strings, got {type(key).__name__}")

    for segment in segments:
        if not isinstance(segment, str):
            raise UsageError(f"key segments must be strings, got {type(segment).__name__}")
        if segment == "":
            raise UsageError(f"key {key!r} contains an empty segment")
    return [ROOT_SEGMENT, *segments]


def is_root(path: Sequence[str]) -> bool:
    return len(path) == 1 and path[0] == ROOT_SEGMENT


def placeholders(path: Sequence[str]) -> tuple[str, dict[str, str]]:
    """Build a document path expression and its ExpressionAttributeNames.

    Every segment is aliased (#path0.#path1...) so reserved words and
    characters such as '.', '-' or ' ' never reach the expression parser.
    """
    aliases = [f"{_PLACEHOLDER_PREFIX}{index}" for index in range(len(path))]
    return ".".join(aliases), dict(zip(aliases, path, strict=True))
