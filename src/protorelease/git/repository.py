"""Target repository backed by git plumbing commands.

Every write goes through a plumbing command that stores exactly one object
(``hash-object -w``, ``mktree``, ``mktag``) or creates exactly one ref
(``update-ref`` with an empty old value, which fails if the ref exists).
Nothing touches the index, the working tree or ``HEAD``.

Lookup failures are reported through :class:`TagLookup` so that "tag absent"
and "repository broken" never collapse into the same answer.
"""

from __future__ import annotations

import threading
from pathlib import Path

from protorelease.core.errors import GitCommandError, RepositoryError, RepositoryWriteError
from protorelease.core.logging import get_logger
from protorelease.core.protocols import ObjectKind, Signature, TagLookup, TreeEntry
from protorelease.git.objects import encode_commit, encode_tag, sort_entries
from protorelease.git.runner import DEFAULT_TIMEOUT, git_output

logger = get_logger(__name__)


class GitRepository:
    """TargetRepository implementation over an existing git repository."""

    def __init__(self, git_dir: Path, *, timeout: float = DEFAULT_TIMEOUT):
        self.git_dir = git_dir
        self.timeout = timeout
        self._write_lock = threading.Lock()

    @classmethod
    def open(cls, path: Path, *, timeout: float = DEFAULT_TIMEOUT) -> GitRepository:
        """Open the repository containing *path*.

        Raises:
            RepositoryError: If *path* is not inside a git repository.
        """
        try:
            git_dir = git_output(["rev-parse", "--absolute-git-dir"], cwd=path, timeout=timeout)
        except (GitCommandError, OSError) as exc:
            raise RepositoryError(
                f"failed to open target repository at {path}: {exc}", cause=exc,
            ).with_context(path=str(path)) from exc
        logger.debug("target_repository_opened", git_dir=git_dir)
        return cls(Path(git_dir), timeout=timeout)

    def _git(self, args: list[str], *, input: bytes | None = None) -> str:
        return git_output(args, git_dir=self.git_dir, input=input, timeout=self.timeout)

    # ── Reads ───────────────────────────────────────────────────

    def lookup_tag(self, name: str) -> TagLookup:
        try:
            target = self._git(["rev-parse", "--verify", "--quiet", f"refs/tags/{name}"])
        except GitCommandError as exc:
            # --quiet exits 1 (and prints nothing) only when the ref is missing.
            if exc.returncode == 1 and not exc.stderr:
                return TagLookup.not_found()
            return TagLookup.failed(
                RepositoryError(
                    f"can't check if tag {name} is already present: {exc.message}", cause=exc,
                ).with_context(tag=name)
            )
        return TagLookup.found(target)

    # ── Writes ──────────────────────────────────────────────────

    def put_blob(self, data: bytes) -> str:
        return self._write(["hash-object", "-w", "-t", "blob", "--stdin"], data, "blob")

    def put_tree(self, entries: list[TreeEntry]) -> str:
        try:
            ordered = sort_entries(entries)
        except ValueError as exc:
            raise RepositoryWriteError(f"failed to encode tree: {exc}", cause=exc) from exc
        lines = b"".join(
            f"{entry.mode.value} {entry.kind.value} {entry.oid}\t{entry.name}\0".encode(
                "utf-8", errors="surrogateescape"
            )
            for entry in ordered
        )
        return self._write(["mktree", "-z"], lines, "tree")

    def put_commit(self, tree: str, author: Signature, message: str) -> str:
        body = encode_commit(tree, author, author, message)
        return self._write(["hash-object", "-w", "-t", "commit", "--stdin"], body, "commit")

    def put_tag(self, name: str, target: str, tagger: Signature, message: str) -> None:
        body = encode_tag(name, target, ObjectKind.COMMIT, tagger, message)
        tag_oid = self._write(["mktag"], body, "tag")
        with self._write_lock:
            try:
                # An empty old value makes update-ref refuse to replace an existing tag.
                self._git(["update-ref", "-m", f"protorelease: {name}", f"refs/tags/{name}", tag_oid, ""])
            except GitCommandError as exc:
                raise RepositoryWriteError(
                    f"failed to write tag {name}: {exc.message}", cause=exc,
                ).with_context(tag=name) from exc

    def _write(self, args: list[str], data: bytes, what: str) -> str:
        with self._write_lock:
            try:
                return self._git(args, input=data)
            except GitCommandError as exc:
                raise RepositoryWriteError(f"failed to write {what}: {exc.message}", cause=exc) from exc
