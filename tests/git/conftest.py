"""Helpers for tests that drive a real ``git`` binary."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest


def git(*args: str, cwd: Path) -> str:
    completed = subprocess.run(["git", *args], cwd=str(cwd), capture_output=True, check=True)
    return completed.stdout.decode().strip()


@pytest.fixture
def git_env(monkeypatch, tmp_path):
    """Deterministic identity, and no discovery of repositories above tmp_path."""
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("HOME", str(tmp_path))
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "Upstream Dev")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "dev@example.com")
    return tmp_path


@pytest.fixture
def target_repo(git_env) -> Path:
    """An empty non-bare repository to publish releases into."""
    path = git_env / "target"
    path.mkdir()
    git("init", "--quiet", cwd=path)
    return path


@pytest.fixture
def remote_repo(git_env) -> dict:
    """A small upstream project with one stable tag, one prerelease and a newer head.

    Returns the repository path and the ids of its commits.
    """
    path = git_env / "remote"
    path.mkdir()
    git("init", "--quiet", cwd=path)
    git("symbolic-ref", "HEAD", "refs/heads/master", cwd=path)

    proto = path / "docs" / "plugin-protocol"
    proto.mkdir(parents=True)
    (proto / "README.md").write_text("# Plugin protocol\n")
    (proto / "tfplugin5.0.proto").write_text('syntax = "proto3";\n// 5.0\n')
    (proto / "tfplugin5.1.proto").write_text('syntax = "proto3";\n// 5.1\n')
    git("add", "-A", cwd=path)
    git("commit", "--quiet", "-m", "protocol 5.1", cwd=path)
    git("tag", "-a", "-m", "v0.12.0", "v0.12.0", cwd=path)
    stable = git("rev-parse", "HEAD", cwd=path)

    (proto / "tfplugin6.0.proto").write_text('syntax = "proto3";\n// 6.0\n')
    git("add", "-A", cwd=path)
    git("commit", "--quiet", "-m", "protocol 6.0", cwd=path)
    git("tag", "v0.13.0-beta1", cwd=path)
    head = git("rev-parse", "HEAD", cwd=path)

    return {"path": path, "stable": stable, "head": head}
