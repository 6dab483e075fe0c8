"""
Release synthesis: one immutable tag per protocol version not yet released.

For each version in a catalog the synthesizer runs the same pipeline and
publishes the result, or records why it could not:

Architecture:
    ::

        catalog ──► ReleaseLedger.has_release(tag)? ──yes──► skipped
                            │ no
                            ▼
        read definition ─► staging_area ─► Generator.generate ─► ObjectTreeBuilder
                                                                       │ tree
                            ┌──────────── publish lock ────────────────┘
                            ▼
                      put_commit(tree) ─► put_tag(tag → commit)
                            │
                            ▼
                       Ok(Release) / Err(ReleaseError)

Manifesto:
    - **Idempotent:** The tag name is the only gate. Re-running against an
      unchanged upstream publishes nothing.
    - **Write order:** tree → commit → tag. A failure at any point leaves at
      most unreferenced objects, never a tag without its commit.
    - **Per-version isolation:** A failing version becomes an entry in the
      report; the remaining versions still publish. ``fail_fast`` restores
      stop-at-first-error.
    - **Fatal means fatal:** A failed tag lookup, an unreachable upstream or
      an unopenable repository aborts the run, naming the version in progress.

Concurrency:
    With ``max_workers > 1``, staging, generation and tree building run on a
    thread pool. Commit and tag writes are serialized under one lock.
    ``stop()`` lets in-flight versions finish and starts no new ones.

Examples:
    >>> synthesizer = ReleaseSynthesizer(upstream, repo, CommandGenerator.go_module())
    >>> report = synthesizer.synthesize(catalog, ReleaseLedger(repo))
    >>> [r.tag_name for r in report.releases]
    ['v5.1.0']
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from protorelease.core.errors import ExternalToolError, ReleaseError, is_fatal
from protorelease.core.logging import LogContext, get_logger
from protorelease.core.protocols import ContentRef, Signature, TargetRepository, UpstreamSource
from protorelease.core.result import Err, Ok, Result, partition_results
from protorelease.core.version import Version, parse_version
from protorelease.release import naming
from protorelease.release.catalog import VersionCatalog
from protorelease.release.generator import Generator
from protorelease.release.ledger import ReleaseLedger
from protorelease.release.staging import StagedRelease, staging_area
from protorelease.release.tree import ObjectTreeBuilder

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Release:
    """A published release. Never mutated once created."""

    version: Version
    tag_name: str
    tree: str
    commit: str
    author: Signature
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": str(self.version),
            "tag": self.tag_name,
            "tree": self.tree,
            "commit": self.commit,
            "author": f"{self.author.name} <{self.author.email}>",
            "message": self.message,
        }


@dataclass(frozen=True)
class VersionFailure:
    """Why one version could not be released."""

    version: Version
    tag_name: str
    error: ReleaseError

    def to_dict(self) -> dict[str, Any]:
        return {"version": str(self.version), "tag": self.tag_name, "error": self.error.to_dict()}


@dataclass
class SynthesisReport:
    """Outcome of one ``synthesize`` call."""

    releases: list[Release] = field(default_factory=list)
    skipped: list[Version] = field(default_factory=list)
    failures: list[VersionFailure] = field(default_factory=list)
    not_started: list[Version] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "releases": [r.to_dict() for r in self.releases],
            "skipped": [str(v) for v in self.skipped],
            "failures": [f.to_dict() for f in self.failures],
            "not_started": [str(v) for v in self.not_started],
        }


class ReleaseSynthesizer:
    """Publishes releases for the unreleased versions of a catalog."""

    def __init__(
        self,
        source: UpstreamSource,
        repository: TargetRepository,
        generator: Generator,
        *,
        author_name: str = "The Terraform Team",
        author_email: str = "noreply@hashicorp.com",
        module_path_template: str = naming.DEFAULT_MODULE_PATH_TEMPLATE,
        staging_root: Path | None = None,
        generation_timeout: float | None = None,
        max_workers: int = 1,
        fail_fast: bool = False,
        clock: Clock = utc_now,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.source = source
        self.repository = repository
        self.generator = generator
        self.author_name = author_name
        self.author_email = author_email
        self.module_path_template = module_path_template
        self.staging_root = staging_root
        self.generation_timeout = generation_timeout
        self.max_workers = max_workers
        self.fail_fast = fail_fast
        self.clock = clock
        self._publish_lock = threading.Lock()
        self._stop = threading.Event()

    def stop(self) -> None:
        """Finish in-flight versions but start no new ones."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    # ── Batch ───────────────────────────────────────────────────

    def synthesize(self, catalog: VersionCatalog, ledger: ReleaseLedger) -> SynthesisReport:
        """Release every version of *catalog* that *ledger* does not know.

        Returns:
            Report of created releases, skipped versions and per-version failures.

        Raises:
            RepositoryError: If a tag lookup fails (fatal).
            UpstreamError: If the upstream becomes unusable (fatal).
        """
        report = SynthesisReport()
        pending: list[tuple[Version, ContentRef]] = []
        for version, ref in catalog.items():
            tag = naming.tag_name(version)
            try:
                released = ledger.has_release(tag)
            except ReleaseError as exc:
                raise exc.with_context(version=str(version), tag=tag)
            if released:
                logger.info("release_exists", version=str(version), tag=tag)
                report.skipped.append(version)
            else:
                pending.append((version, ref))

        if self.max_workers == 1 or len(pending) < 2:
            results = self._run_sequential(pending, report)
        else:
            results = self._run_parallel(pending, report)

        releases, errors = partition_results(results)
        report.releases = sorted(releases, key=lambda r: r.version)
        for error in errors:
            version = parse_version(error.context.version)
            report.failures.append(
                VersionFailure(version=version, tag_name=naming.tag_name(version), error=error)
            )
        report.failures.sort(key=lambda f: f.version)
        report.not_started.sort()

        logger.info(
            "synthesis_finished",
            created=[r.tag_name for r in report.releases],
            skipped=len(report.skipped),
            failed=[f.tag_name for f in report.failures],
            not_started=[str(v) for v in report.not_started],
        )
        return report

    def _run_sequential(
        self, pending: list[tuple[Version, ContentRef]], report: SynthesisReport
    ) -> list[Result[Release]]:
        results: list[Result[Release]] = []
        for index, (version, ref) in enumerate(pending):
            if self.stopping:
                report.not_started.extend(v for v, _ in pending[index:])
                break
            result = self.synthesize_version(version, ref)
            results.append(result)
            if result.is_err() and self.fail_fast:
                report.not_started.extend(v for v, _ in pending[index + 1:])
                break
        return results

    def _run_parallel(
        self, pending: list[tuple[Version, ContentRef]], report: SynthesisReport
    ) -> list[Result[Release]]:
        lock = threading.Lock()
        # Per call, so a fail-fast halt does not outlive this batch.
        halted = threading.Event()

        def work(version: Version, ref: ContentRef) -> Result[Release] | None:
            if self.stopping or halted.is_set():
                with lock:
                    report.not_started.append(version)
                return None
            result = self.synthesize_version(version, ref)
            if result.is_err() and self.fail_fast:
                halted.set()
            return result

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="synthesize") as pool:
            futures = [pool.submit(work, version, ref) for version, ref in pending]
            try:
                outcomes = [future.result() for future in futures]
            except BaseException:
                halted.set()
                raise
        return [outcome for outcome in outcomes if outcome is not None]

    # ── Single version ──────────────────────────────────────────

    def synthesize_version(self, version: Version, ref: ContentRef) -> Result[Release]:
        """Stage, generate, build and publish one version.

        Per-version failures come back as ``Err``; fatal errors raise.
        """
        tag = naming.tag_name(version)
        with LogContext(version=str(version), tag=tag):
            try:
                return Ok(self._publish(version, ref, tag))
            except ReleaseError as exc:
                exc.with_context(version=str(version), tag=tag)
                if is_fatal(exc):
                    raise
                logger.error("release_failed", error=exc.message, error_type=type(exc).__name__)
                return Err(exc)

    def _publish(self, version: Version, ref: ContentRef, tag: str) -> Release:
        definition = self.source.read_content(ref)

        with staging_area(
            version,
            definition,
            root=self.staging_root,
            module_path_template=self.module_path_template,
        ) as staged:
            logger.info("staging_release", module_path=staged.module_path)
            self._generate(staged)
            tree = ObjectTreeBuilder(self.repository).build(staged.root)

        author = Signature(self.author_name, self.author_email, self.clock())
        message = naming.commit_message(version)
        with self._publish_lock:
            commit = self.repository.put_commit(tree, author, message)
            self.repository.put_tag(tag, commit, author, message)

        logger.info(
            "tag_created",
            tree=tree,
            commit=commit,
            message=f"Created tag {tag} for v{version.short}, referring to commit {commit}",
        )
        return Release(
            version=version,
            tag_name=tag,
            tree=tree,
            commit=commit,
            author=author,
            message=message,
        )

    def _generate(self, staged: StagedRelease) -> None:
        try:
            self.generator.generate(staged, timeout=self.generation_timeout)
        except ReleaseError:
            raise
        except Exception as exc:
            raise ExternalToolError(
                f"generator crashed for v{staged.version}: {type(exc).__name__}: {exc}", cause=exc,
            ) from exc
