"""In-process collaborators with git-compatible object ids.

``MemoryRepository`` and ``MemoryUpstream`` implement the same contracts as
the git-backed classes without a git binary. Object ids are computed exactly
as git computes them, so trees and commits built here hash identically to
the ones a real repository would store.

Used by the test suite, and by ``run_mirror`` callers that want to see what
a run would publish without touching a repository.

Usage::

    upstream = MemoryUpstream()
    upstream.commit({"docs/plugin-protocol/tfplugin5.2.proto": b"..."}, tag="v0.12.0")
    repo = MemoryRepository()
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from protorelease.core.errors import NotFoundError, RepositoryWriteError, UpstreamError
from protorelease.core.protocols import (
    ContentRef,
    DirectoryEntry,
    FileMode,
    ObjectKind,
    Signature,
    TagLookup,
    TreeEntry,
)
from protorelease.core.version import Version, parse_release_tag
from protorelease.git.objects import (
    decode_tree,
    encode_commit,
    encode_tag,
    encode_tree,
    object_id,
    sort_entries,
)


@dataclass(frozen=True)
class StoredObject:
    kind: ObjectKind
    body: bytes


class ObjectStore:
    """Thread-safe content-addressed object map."""

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}
        self._lock = threading.Lock()

    def put(self, kind: ObjectKind, body: bytes) -> str:
        oid = object_id(kind, body)
        with self._lock:
            self._objects.setdefault(oid, StoredObject(kind, body))
        return oid

    def get(self, oid: str) -> StoredObject:
        try:
            return self._objects[oid]
        except KeyError:
            raise NotFoundError(f"object {oid} does not exist") from None

    def __contains__(self, oid: str) -> bool:
        return oid in self._objects

    def __len__(self) -> int:
        return len(self._objects)


class MemoryRepository:
    """TargetRepository kept entirely in memory."""

    def __init__(self) -> None:
        self.objects = ObjectStore()
        self.tags: dict[str, str] = {}
        self._ref_lock = threading.Lock()

    def lookup_tag(self, name: str) -> TagLookup:
        target = self.tags.get(name)
        return TagLookup.found(target) if target is not None else TagLookup.not_found()

    def put_blob(self, data: bytes) -> str:
        return self.objects.put(ObjectKind.BLOB, data)

    def put_tree(self, entries: list[TreeEntry]) -> str:
        for entry in entries:
            if entry.oid not in self.objects:
                raise RepositoryWriteError(f"tree entry {entry.name} refers to missing object {entry.oid}")
        try:
            body = encode_tree(entries)
        except ValueError as exc:
            raise RepositoryWriteError(f"failed to encode tree: {exc}", cause=exc) from exc
        return self.objects.put(ObjectKind.TREE, body)

    def put_commit(self, tree: str, author: Signature, message: str) -> str:
        if tree not in self.objects:
            raise RepositoryWriteError(f"commit refers to missing tree {tree}")
        return self.objects.put(ObjectKind.COMMIT, encode_commit(tree, author, author, message))

    def put_tag(self, name: str, target: str, tagger: Signature, message: str) -> None:
        if target not in self.objects:
            raise RepositoryWriteError(f"tag {name} refers to missing commit {target}").with_context(tag=name)
        tag_oid = self.objects.put(
            ObjectKind.TAG, encode_tag(name, target, ObjectKind.COMMIT, tagger, message)
        )
        with self._ref_lock:
            if name in self.tags:
                raise RepositoryWriteError(f"tag {name} already exists").with_context(tag=name)
            self.tags[name] = tag_oid

    # ── Inspection helpers ──────────────────────────────────────

    def read_tree(self, oid: str) -> list[TreeEntry]:
        """Decode a stored tree back into its entries."""
        stored = self.objects.get(oid)
        if stored.kind is not ObjectKind.TREE:
            raise NotFoundError(f"object {oid} is a {stored.kind.value}, not a tree")
        return decode_tree(stored.body)

    def read_blob(self, oid: str) -> bytes:
        return self.objects.get(oid).body

    def tag_commit(self, name: str) -> str:
        """Commit id a tag points at."""
        body = self.objects.get(self.tags[name]).body.decode()
        return body.split("\n", 1)[0].split(" ", 1)[1]

    def commit_tree(self, oid: str) -> str:
        body = self.objects.get(oid).body.decode()
        return body.split("\n", 1)[0].split(" ", 1)[1]

    def commit_message(self, oid: str) -> str:
        body = self.objects.get(oid).body.decode()
        return body.split("\n\n", 1)[1]


class MemoryUpstream:
    """Upstream history built from plain ``{path: bytes}`` snapshots."""

    def __init__(self, branch: str = "master") -> None:
        self.branch = branch
        self.objects = ObjectStore()
        self.commits: dict[str, str] = {}
        self.tags: dict[str, str] = {}
        self.head: str | None = None
        self._serial = 0

    def commit(self, files: dict[str, bytes], *, tag: str | None = None) -> str:
        """Record a snapshot as the new branch head; optionally tag it."""
        tree = self._store_tree(_nest(files))
        self._serial += 1
        commit_id = object_id(ObjectKind.COMMIT, f"tree {tree}\nserial {self._serial}\n".encode())
        self.commits[commit_id] = tree
        self.head = commit_id
        if tag is not None:
            self.tags[tag] = commit_id
        return commit_id

    def _store_tree(self, node: dict) -> str:
        entries: list[TreeEntry] = []
        for name, child in node.items():
            if isinstance(child, dict):
                entries.append(TreeEntry(name, FileMode.TREE, self._store_tree(child)))
            else:
                entries.append(TreeEntry(name, FileMode.REGULAR, self.objects.put(ObjectKind.BLOB, child)))
        return self.objects.put(ObjectKind.TREE, encode_tree(sort_entries(entries)))

    # ── History ─────────────────────────────────────────────────

    def fetch(self) -> None:
        """Nothing to fetch; the history is already local."""

    def latest_stable(self) -> tuple[Version, str]:
        releases = {
            version: commit
            for name, commit in self.tags.items()
            if (version := parse_release_tag(name)) is not None
        }
        if not releases:
            raise UpstreamError("upstream has no stable release tags")
        newest = max(releases)
        return newest, releases[newest]

    def latest_commit(self) -> str:
        if self.head is None:
            raise UpstreamError(f"upstream branch {self.branch} has no commits")
        return self.head

    # ── UpstreamSource ──────────────────────────────────────────

    def list_directory(self, commit: str, prefix: str) -> list[DirectoryEntry]:
        if commit not in self.commits:
            raise UpstreamError(f"commit {commit} does not exist").with_context(commit=commit)
        tree = self.commits[commit]
        for part in [p for p in prefix.split("/") if p]:
            match = [e for e in self._entries(tree) if e.name == part and e.mode is FileMode.TREE]
            if not match:
                raise NotFoundError(f"{prefix} does not exist in commit {commit}").with_context(path=prefix)
            tree = match[0].oid
        return [
            DirectoryEntry(name=e.name, kind=e.kind, ref=ContentRef(e.oid))
            for e in self._entries(tree)
        ]

    def _entries(self, tree: str) -> list[TreeEntry]:
        return decode_tree(self.objects.get(tree).body)

    def read_content(self, ref: ContentRef) -> bytes:
        try:
            return self.objects.get(ref.oid).body
        except NotFoundError as exc:
            raise UpstreamError(f"can't read upstream blob {ref.oid}", cause=exc) from exc


def _nest(files: dict[str, bytes]) -> dict:
    root: dict = {}
    for path, data in files.items():
        parts = [p for p in path.split("/") if p]
        node = root
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = data
    return root
