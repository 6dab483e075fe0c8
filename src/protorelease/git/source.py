"""Upstream history backed by a bare git mirror.

The mirror lives in a bare repository (``work.git`` by default) that is
created on first use and reused afterwards. Fetching brings in one branch
and every tag; from there the two points of history the mirror cares about
are resolved:

- **latest stable**: the commit behind the newest stable release tag
- **latest unstable**: the head of the fetched branch

Usage::

    upstream = GitUpstream.open(Path("work.git"), url=URL, branch="master")
    upstream.fetch()
    version, stable = upstream.latest_stable()
    entries = upstream.list_directory(stable, "docs/plugin-protocol")
"""

from __future__ import annotations

from pathlib import Path

from protorelease.core.errors import GitCommandError, NotFoundError, UpstreamError
from protorelease.core.logging import get_logger
from protorelease.core.protocols import ContentRef, DirectoryEntry, ObjectKind
from protorelease.core.version import Version, parse_release_tag
from protorelease.git.runner import DEFAULT_TIMEOUT, git_output, run_git

logger = get_logger(__name__)

_TAG_PREFIX = "refs/tags/"


class GitUpstream:
    """Read-only upstream source over a bare git repository."""

    def __init__(
        self,
        git_dir: Path,
        *,
        url: str | None = None,
        branch: str = "master",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.git_dir = git_dir
        self.url = url
        self.branch = branch
        self.timeout = timeout

    @classmethod
    def open(
        cls,
        git_dir: Path,
        *,
        url: str,
        branch: str = "master",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> GitUpstream:
        """Initialize the bare mirror if needed and point ``origin`` at *url*.

        Raises:
            UpstreamError: If the repository cannot be created or configured.
        """
        upstream = cls(git_dir, url=url, branch=branch, timeout=timeout)
        try:
            if not (git_dir / "HEAD").is_file():
                run_git(["init", "--bare", "--quiet", str(git_dir)], timeout=timeout)
                logger.info("upstream_initialized", git_dir=str(git_dir))
            upstream._git(["config", "remote.origin.url", url])
        except GitCommandError as exc:
            raise UpstreamError(
                f"failed to initialize upstream repository at {git_dir}: {exc.message}",
                cause=exc,
            ).with_context(path=str(git_dir)) from exc
        return upstream

    def _git(self, args: list[str], **kwargs) -> str:
        kwargs.setdefault("timeout", self.timeout)
        return git_output(args, git_dir=self.git_dir, **kwargs)

    # ── Fetch & resolve ─────────────────────────────────────────

    def fetch(self) -> None:
        """Fetch the configured branch and all tags from ``origin``, forced."""
        refspec = f"+refs/heads/{self.branch}:refs/heads/{self.branch}"
        try:
            self._git(["fetch", "--tags", "--force", "--quiet", "origin", refspec])
        except GitCommandError as exc:
            raise UpstreamError(
                f"failed to fetch from {self.url}: {exc.message}", cause=exc,
            ).with_context(url=self.url) from exc
        logger.info("upstream_fetched", url=self.url, branch=self.branch)

    def release_tags(self) -> dict[Version, str]:
        """Map each stable release version to its tag name."""
        try:
            output = self._git(["for-each-ref", "--format=%(refname)", _TAG_PREFIX])
        except GitCommandError as exc:
            raise UpstreamError(f"failed to enumerate upstream tags: {exc.message}", cause=exc) from exc

        tags: dict[Version, str] = {}
        for refname in sorted(output.splitlines()):
            name = refname[len(_TAG_PREFIX):]
            version = parse_release_tag(name)
            if version is not None:
                tags[version] = name
        return tags

    def latest_stable(self) -> tuple[Version, str]:
        """Return the newest stable release version and its commit.

        Raises:
            UpstreamError: If there is no stable release tag or it cannot be peeled.
        """
        tags = self.release_tags()
        if not tags:
            raise UpstreamError("upstream has no stable release tags")
        newest = max(tags)
        tag_name = tags[newest]
        logger.info("newest_upstream_version", version=str(newest), tag=tag_name)
        try:
            commit = self._git(["rev-parse", "--verify", f"{_TAG_PREFIX}{tag_name}^{{commit}}"])
        except GitCommandError as exc:
            raise UpstreamError(
                f"failed to read tag for upstream v{newest}: {exc.message}", cause=exc,
            ).with_context(tag=tag_name) from exc
        logger.info("latest_stable_commit", commit=commit)
        return newest, commit

    def latest_commit(self) -> str:
        """Return the head commit of the fetched branch."""
        try:
            commit = self._git(["rev-parse", "--verify", f"refs/heads/{self.branch}^{{commit}}"])
        except GitCommandError as exc:
            raise UpstreamError(
                f"failed to read latest {self.branch} ref from upstream: {exc.message}", cause=exc,
            ) from exc
        logger.info("latest_unstable_commit", commit=commit)
        return commit

    # ── UpstreamSource ──────────────────────────────────────────

    def list_directory(self, commit: str, prefix: str) -> list[DirectoryEntry]:
        """List the entries directly under *prefix* at *commit*.

        Raises:
            NotFoundError: If *prefix* is not a directory at *commit*.
            UpstreamError: If *commit* is unknown, or for any other failure.
        """
        try:
            self._git(["rev-parse", "--verify", "--quiet", f"{commit}^{{commit}}"])
        except GitCommandError as exc:
            raise UpstreamError(
                f"commit {commit} does not exist in the upstream mirror", cause=exc,
            ).with_context(commit=commit) from exc

        try:
            oid = self._git(["rev-parse", "--verify", "--quiet", f"{commit}:{prefix}"])
        except GitCommandError as exc:
            if exc.returncode == 1:
                raise NotFoundError(
                    f"{prefix} does not exist in commit {commit}", cause=exc,
                ).with_context(path=prefix) from exc
            raise UpstreamError(f"failed to read {prefix} in {commit}: {exc.message}", cause=exc) from exc

        try:
            kind = self._git(["cat-file", "-t", oid])
        except GitCommandError as exc:
            raise UpstreamError(f"failed to read object {oid}: {exc.message}", cause=exc) from exc
        if kind != ObjectKind.TREE.value:
            raise NotFoundError(f"{prefix} is a {kind}, not a directory, in commit {commit}").with_context(
                path=prefix
            )

        try:
            raw = run_git(["ls-tree", "-z", oid], git_dir=self.git_dir, timeout=self.timeout).stdout
        except GitCommandError as exc:
            raise UpstreamError(f"failed to list {prefix} in {commit}: {exc.message}", cause=exc) from exc

        entries: list[DirectoryEntry] = []
        for record in raw.decode("utf-8", errors="surrogateescape").split("\0"):
            if not record:
                continue
            meta, name = record.split("\t", 1)
            _mode, kind, entry_oid = meta.split(" ")
            entries.append(DirectoryEntry(name=name, kind=ObjectKind(kind), ref=ContentRef(entry_oid)))
        return entries

    def read_content(self, ref: ContentRef) -> bytes:
        """Read a blob from the mirror.

        Raises:
            UpstreamError: If the blob cannot be read; the mirror is unusable.
        """
        try:
            return run_git(
                ["cat-file", "blob", ref.oid], git_dir=self.git_dir, timeout=self.timeout,
            ).stdout
        except GitCommandError as exc:
            raise UpstreamError(f"can't read upstream blob {ref.oid}: {exc.message}", cause=exc) from exc
