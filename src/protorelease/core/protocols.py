"""
Collaborator contracts and shared value types.

The release synthesizer never talks to git, the network or a compiler
directly. It talks to three structural protocols, and any object with the
right shape can stand in for them: the real git-backed implementations in
``protorelease.git``, or the in-memory ones used by tests and dry runs.

Architecture:
    ::

        protocols.py
        ├── UpstreamSource    — read-only history: list_directory, read_content
        ├── UpstreamHistory   — UpstreamSource plus fetch and stable/latest commits
        ├── Snapshot          — one UpstreamSource pinned at one commit
        ├── TargetRepository  — lookup_tag, put_blob/tree/commit/tag
        └── value types       — ContentRef, DirectoryEntry, TreeEntry,
                                 Signature, FileMode, TagLookup

    The external generation collaborator's protocol lives beside its
    implementation in ``protorelease.release.generator``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol, runtime_checkable

from protorelease.core.version import Version


class ObjectKind(str, Enum):
    """Kind of a content-addressed object."""

    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"
    TAG = "tag"


class FileMode(str, Enum):
    """Permission bits recorded for tree entries, in git's octal spelling."""

    REGULAR = "100644"
    EXECUTABLE = "100755"
    SYMLINK = "120000"
    TREE = "40000"

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind.TREE if self is FileMode.TREE else ObjectKind.BLOB


@dataclass(frozen=True)
class ContentRef:
    """Opaque content-derived identifier of one immutable byte sequence.

    Equal refs mean equal bytes; the upstream's object id is used directly.
    """

    oid: str

    def __str__(self) -> str:
        return self.oid


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of an upstream directory listing."""

    name: str
    kind: ObjectKind
    ref: ContentRef


@dataclass(frozen=True)
class TreeEntry:
    """One child of a tree object: ``(name, kind, mode, hash)``."""

    name: str
    mode: FileMode
    oid: str

    @property
    def kind(self) -> ObjectKind:
        return self.mode.kind

    def sort_key(self) -> str:
        # Trees sort as if their name ended in "/", matching git's tree order.
        return self.name + "/" if self.mode is FileMode.TREE else self.name


@dataclass(frozen=True)
class Signature:
    """Author, committer or tagger identity with a timestamp."""

    name: str
    email: str
    when: datetime

    def format(self) -> str:
        """Render as ``Name <email> <epoch> <+hhmm>``, the git object header form."""
        offset = self.when.utcoffset()
        minutes = int(offset.total_seconds() // 60) if offset is not None else 0
        sign = "-" if minutes < 0 else "+"
        minutes = abs(minutes)
        return (
            f"{self.name} <{self.email}> {int(self.when.timestamp())} "
            f"{sign}{minutes // 60:02d}{minutes % 60:02d}"
        )


class TagLookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class TagLookup:
    """Tagged result of a tag lookup.

    Keeps "the tag is absent" apart from "the lookup itself failed"; only the
    former may be read as "not yet released".
    """

    status: TagLookupStatus
    target: str | None = None
    error: Exception | None = None

    @classmethod
    def found(cls, target: str | None = None) -> TagLookup:
        return cls(TagLookupStatus.FOUND, target=target)

    @classmethod
    def not_found(cls) -> TagLookup:
        return cls(TagLookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: Exception) -> TagLookup:
        return cls(TagLookupStatus.ERROR, error=error)


@runtime_checkable
class UpstreamSource(Protocol):
    """Read-only access to upstream history."""

    def list_directory(self, commit: str, prefix: str) -> list[DirectoryEntry]:
        """List the entries directly under *prefix* at *commit*.

        Raises:
            NotFoundError: If *prefix* does not exist at *commit*.
        """
        ...

    def read_content(self, ref: ContentRef) -> bytes:
        """Return the bytes behind *ref*."""
        ...


@runtime_checkable
class UpstreamHistory(UpstreamSource, Protocol):
    """An upstream source that can also be refreshed and resolved."""

    def fetch(self) -> None: ...

    def latest_stable(self) -> tuple[Version, str]:
        """Newest stable release version and the commit it tags."""
        ...

    def latest_commit(self) -> str:
        """Head of the tracked branch."""
        ...


@runtime_checkable
class TargetRepository(Protocol):
    """Object and ref store receiving releases.

    Writes must be safe to call from several threads; implementations
    serialize their own object appends.
    """

    def lookup_tag(self, name: str) -> TagLookup: ...

    def put_blob(self, data: bytes) -> str: ...

    def put_tree(self, entries: list[TreeEntry]) -> str: ...

    def put_commit(self, tree: str, author: Signature, message: str) -> str: ...

    def put_tag(self, name: str, target: str, tagger: Signature, message: str) -> None:
        """Create annotated tag *name*. Never overwrites an existing tag."""
        ...


@dataclass(frozen=True)
class Snapshot:
    """An upstream source pinned at one commit."""

    source: UpstreamSource
    commit: str

    def list_directory(self, prefix: str) -> list[DirectoryEntry]:
        return self.source.list_directory(self.commit, prefix)

    def read_content(self, ref: ContentRef) -> bytes:
        return self.source.read_content(ref)


__all__ = [
    "ObjectKind",
    "FileMode",
    "ContentRef",
    "DirectoryEntry",
    "TreeEntry",
    "Signature",
    "TagLookupStatus",
    "TagLookup",
    "UpstreamSource",
    "UpstreamHistory",
    "TargetRepository",
    "Snapshot",
]
