"""Discovery of the protocol versions declared in an upstream snapshot.

A snapshot declares protocol ``<major>.<minor>`` by containing a file named
``tfplugin<major>.<minor>.proto`` (or ``tfplugin<major>.proto`` for ``.0``)
directly under the protocol directory. Discovery walks exactly that one
directory level.

Anything else in the directory is skipped without complaint: READMEs,
subdirectories, and names like ``tfplugin.proto`` whose version part does
not parse.

Examples:
    >>> catalog = discover(Snapshot(upstream, stable_commit), "docs/plugin-protocol")
    >>> [str(v) for v in catalog.versions()]
    ['5.0.0', '5.1.0', '5.2.0', '6.0.0']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from protorelease.core.errors import ParseError
from protorelease.core.logging import get_logger
from protorelease.core.protocols import ContentRef, ObjectKind, Snapshot
from protorelease.core.version import Version, parse_version
from protorelease.release.naming import PROTO_PREFIX, PROTO_SUFFIX

logger = get_logger(__name__)


@dataclass(frozen=True)
class VersionCatalog:
    """Versions found at one commit, each with its definition's ContentRef."""

    commit: str
    entries: dict[Version, ContentRef] = field(default_factory=dict)

    def versions(self) -> list[Version]:
        return sorted(self.entries)

    def items(self) -> list[tuple[Version, ContentRef]]:
        """Entries in ascending version order."""
        return [(version, self.entries[version]) for version in self.versions()]

    def __iter__(self) -> Iterator[Version]:
        return iter(self.versions())

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, version: object) -> bool:
        return version in self.entries

    def __getitem__(self, version: Version) -> ContentRef:
        return self.entries[version]


def version_from_filename(name: str) -> Version:
    """Extract the protocol version a definition file declares.

    Raises:
        ParseError: If *name* is not a protocol definition file name or its
            version part does not parse.
    """
    if not (name.startswith(PROTO_PREFIX) and name.endswith(PROTO_SUFFIX)):
        raise ParseError(f"{name!r} is not a protocol definition file")
    # The file name carries <major>[.<minor>]; the build component is always 0.
    return parse_version(name[len(PROTO_PREFIX):len(name) - len(PROTO_SUFFIX)] + ".0")


def discover(snapshot: Snapshot, path_prefix: str) -> VersionCatalog:
    """Build the catalog of versions declared under *path_prefix*.

    Entries are visited in name order, so when two files declare the same
    version the result does not depend on listing order: the name sorting
    last wins.

    Raises:
        NotFoundError: If *path_prefix* does not exist in the snapshot.
    """
    entries: dict[Version, ContentRef] = {}
    for entry in sorted(snapshot.list_directory(path_prefix), key=lambda e: e.name):
        if entry.kind is not ObjectKind.BLOB:
            continue
        try:
            version = version_from_filename(entry.name)
        except ParseError:
            continue
        if version in entries:
            logger.warning("duplicate_protocol_version", version=str(version), file=entry.name)
        entries[version] = entry.ref

    logger.info(
        "catalog_discovered",
        commit=snapshot.commit,
        versions=[str(v) for v in sorted(entries)],
    )
    return VersionCatalog(commit=snapshot.commit, entries=entries)
