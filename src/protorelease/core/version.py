"""Protocol version value type.

A ``Version`` is a ``(major, minor, build)`` triple ordered lexicographically.
Strings of the form ``<major>.<minor>`` (build defaults to 0) and
``<major>.<minor>.<build>`` parse; anything else, including a bare
``<major>``, is rejected with ``ParseError`` rather than coerced.

Examples:
    >>> parse_version("5.2")
    Version(major=5, minor=2, build=0)
    >>> str(parse_version("5.2.1"))
    '5.2.1'
    >>> parse_version("5.2") < parse_version("5.3") < parse_version("6.0")
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from protorelease.core.errors import ParseError

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)(?:\.([0-9]+))?")


@dataclass(frozen=True, order=True)
class Version:
    """One protocol generation. Hashable, so usable as a catalog key."""

    major: int
    minor: int
    build: int = 0

    def __post_init__(self) -> None:
        for name in ("major", "minor", "build"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ParseError(f"Version {name} must be a non-negative integer, got {value!r}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.build}"

    @property
    def short(self) -> str:
        """``<major>.<minor>``, as used in commit messages."""
        return f"{self.major}.{self.minor}"


def parse_version(text: str) -> Version:
    """Parse ``<major>.<minor>[.<build>]``.

    Raises:
        ParseError: If *text* is not a valid version string.
    """
    match = _VERSION_RE.fullmatch(text)
    if match is None:
        raise ParseError(f"Invalid version string {text!r}: expected <major>.<minor>[.<build>]")
    major, minor, build = match.groups()
    return Version(int(major), int(minor), int(build) if build is not None else 0)


def parse_release_tag(name: str) -> Version | None:
    """Parse an upstream release tag such as ``v1.5.7``.

    Returns ``None`` for tags that are not stable releases: prereleases
    (``v0.12.0-beta1``), build-metadata suffixes and unrelated names.
    """
    if name.startswith("v"):
        name = name[1:]
    if "-" in name or "+" in name:
        return None
    try:
        return parse_version(name)
    except ParseError:
        return None


__all__ = ["Version", "parse_version", "parse_release_tag"]
