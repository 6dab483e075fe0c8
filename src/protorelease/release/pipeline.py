"""
Process-level mirror run.

``run_mirror`` wires the collaborators together and performs one complete,
idempotent pass:

    1. open (or create) the upstream mirror and the target repository
    2. fetch upstream, resolve the latest stable and latest unstable commits
    3. discover the version catalog at both commits
    4. synthesize stable releases from the stable catalog
    5. hand the unstable catalog to the (inert) unstable track

Failures in steps 1-3 and failed tag lookups are fatal: they raise out of
``run_mirror``. Per-version failures in step 4 are returned in the report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from protorelease.core.errors import NotFoundError
from protorelease.core.logging import get_logger
from protorelease.core.protocols import Snapshot, TargetRepository, UpstreamHistory
from protorelease.core.settings import MirrorSettings
from protorelease.core.version import Version
from protorelease.git.repository import GitRepository
from protorelease.git.source import GitUpstream
from protorelease.release.catalog import VersionCatalog, discover
from protorelease.release.generator import CommandGenerator, Generator
from protorelease.release.ledger import ReleaseLedger
from protorelease.release.synthesizer import ReleaseSynthesizer, SynthesisReport
from protorelease.release.unstable import UnstableTrackManager

logger = get_logger(__name__)


@dataclass
class MirrorOutcome:
    """Everything one mirror run learned and did."""

    stable_version: Version
    stable_commit: str
    unstable_commit: str
    stable_catalog: VersionCatalog
    unstable_catalog: VersionCatalog
    report: SynthesisReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "stable_version": str(self.stable_version),
            "stable_commit": self.stable_commit,
            "unstable_commit": self.unstable_commit,
            "stable_versions": [str(v) for v in self.stable_catalog.versions()],
            "unstable_versions": [str(v) for v in self.unstable_catalog.versions()],
            **self.report.to_dict(),
        }


def open_upstream(settings: MirrorSettings) -> GitUpstream:
    return GitUpstream.open(
        settings.work_dir,
        url=settings.upstream_url,
        branch=settings.upstream_branch,
        timeout=settings.git_timeout,
    )


def open_target(settings: MirrorSettings) -> GitRepository:
    return GitRepository.open(settings.target_dir, timeout=settings.git_timeout)


def discover_or_empty(upstream: UpstreamHistory, commit: str, proto_path: str) -> VersionCatalog:
    """Catalog at *commit*; a missing protocol directory means nothing to release."""
    try:
        return discover(Snapshot(upstream, commit), proto_path)
    except NotFoundError as exc:
        logger.warning("protocol_directory_missing", commit=commit, path=proto_path, error=exc.message)
        return VersionCatalog(commit=commit)


def build_synthesizer(
    settings: MirrorSettings,
    upstream: UpstreamHistory,
    repository: TargetRepository,
    generator: Generator | None = None,
) -> ReleaseSynthesizer:
    return ReleaseSynthesizer(
        upstream,
        repository,
        generator if generator is not None else CommandGenerator.go_module(settings.go_proxy),
        author_name=settings.author_name,
        author_email=settings.author_email,
        module_path_template=settings.module_path_template,
        staging_root=settings.staging_root,
        generation_timeout=settings.generation_timeout,
        max_workers=settings.max_workers,
        fail_fast=settings.fail_fast,
    )


def run_mirror(
    settings: MirrorSettings,
    *,
    upstream: UpstreamHistory | None = None,
    repository: TargetRepository | None = None,
    generator: Generator | None = None,
    unstable: UnstableTrackManager | None = None,
) -> MirrorOutcome:
    """Run one full mirror pass.

    Collaborators not supplied are built from *settings*: a bare git mirror
    at ``work_dir``, the git repository at ``target_dir`` and the Go module
    generation recipe.

    Raises:
        UpstreamError: Upstream cannot be opened, fetched or resolved.
        RepositoryError: Target cannot be opened, or a tag lookup failed.
    """
    if upstream is None:
        upstream = open_upstream(settings)
    if repository is None:
        repository = open_target(settings)

    if settings.fetch:
        upstream.fetch()

    stable_version, stable_commit = upstream.latest_stable()
    unstable_commit = upstream.latest_commit()

    stable_catalog = discover_or_empty(upstream, stable_commit, settings.proto_path)
    unstable_catalog = discover_or_empty(upstream, unstable_commit, settings.proto_path)

    ledger = ReleaseLedger(repository)
    synthesizer = build_synthesizer(settings, upstream, repository, generator)
    report = synthesizer.synthesize(stable_catalog, ledger)

    (unstable or UnstableTrackManager()).synthesize_unstable(unstable_catalog, ledger)

    return MirrorOutcome(
        stable_version=stable_version,
        stable_commit=stable_commit,
        unstable_commit=unstable_commit,
        stable_catalog=stable_catalog,
        unstable_catalog=unstable_catalog,
        report=report,
    )
