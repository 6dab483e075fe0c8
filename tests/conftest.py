"""
Shared pytest fixtures for protorelease tests.

This module provides:
- A fixed clock so commit and tag ids are reproducible
- In-memory upstream and target repositories
- Fake generation collaborators (succeeding, failing, slow)
- A ``git`` availability check for integration tests

Usage:
    def test_something(upstream, repository, synthesizer_factory):
        synthesizer = synthesizer_factory()
        ...
"""

from __future__ import annotations

import shutil
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest
import structlog

from protorelease.core.errors import ExternalToolError
from protorelease.core.version import Version
from protorelease.git.memory import MemoryRepository, MemoryUpstream
from protorelease.release.staging import StagedRelease
from protorelease.release.synthesizer import ReleaseSynthesizer

PROTO_DIR = "docs/plugin-protocol"

FIXED_TIME = datetime(2019, 1, 8, 12, 0, 0, tzinfo=timezone.utc)


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests when no git binary is available."""
    if shutil.which("git") is not None:
        return
    skip = pytest.mark.skip(reason="git executable not found")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


# =============================================================================
# Fake generation collaborators
# =============================================================================


class FakeGenerator:
    """Writes a module file and a bindings file, like the Go recipe would.

    Versions listed in ``fail_for`` raise ``ExternalToolError``; ``delay``
    sleeps inside every call to widen race windows in concurrency tests.
    """

    def __init__(self, fail_for: set[Version] | None = None, delay: float = 0.0):
        self.fail_for = fail_for or set()
        self.delay = delay
        self.calls: list[Version] = []
        self.timeouts: list[float | None] = []
        self._lock = threading.Lock()

    def generate(self, staged: StagedRelease, timeout: float | None = None) -> None:
        with self._lock:
            self.calls.append(staged.version)
            self.timeouts.append(timeout)
        if self.delay:
            time.sleep(self.delay)
        if staged.version in self.fail_for:
            raise ExternalToolError(f"protoc failed for v{staged.version}")
        (staged.root / "go.mod").write_text(f"module {staged.module_path}\n")
        bindings = staged.package_dir / f"{staged.package_dir.name}.pb.go"
        bindings.write_text(f"package {staged.package_dir.name}\n")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop logging configuration left behind by CLI runs."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_TIME


@pytest.fixture
def upstream() -> MemoryUpstream:
    """Upstream with a tagged stable release and one newer untagged commit.

    Stable (v0.12.0): protocols 5.0 and 5.1, plus a README.
    Branch head:      adds protocol 6.0.
    """
    source = MemoryUpstream()
    stable_files = {
        f"{PROTO_DIR}/README.md": b"# Plugin protocol\n",
        f"{PROTO_DIR}/tfplugin5.0.proto": b'syntax = "proto3";\npackage tfplugin5;\n// 5.0\n',
        f"{PROTO_DIR}/tfplugin5.1.proto": b'syntax = "proto3";\npackage tfplugin5;\n// 5.1\n',
        "main.go": b"package main\n",
    }
    source.commit(stable_files, tag="v0.12.0")
    source.commit(
        {**stable_files, f"{PROTO_DIR}/tfplugin6.0.proto": b'syntax = "proto3";\npackage tfplugin6;\n'}
    )
    return source


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def synthesizer_factory(
    upstream: MemoryUpstream,
    repository: MemoryRepository,
    generator: FakeGenerator,
    fixed_clock: Callable[[], datetime],
    tmp_path: Path,
) -> Callable[..., ReleaseSynthesizer]:
    """Build a synthesizer over the shared fixtures; keyword args override."""

    def factory(**overrides) -> ReleaseSynthesizer:
        kwargs = {
            "staging_root": tmp_path / "staging",
            "clock": fixed_clock,
        }
        kwargs.update(overrides)
        source = kwargs.pop("source", upstream)
        target = kwargs.pop("repository", repository)
        gen = kwargs.pop("generator", generator)
        return ReleaseSynthesizer(source, target, gen, **kwargs)

    return factory
