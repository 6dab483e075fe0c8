"""Tests for protorelease.release.tree: directory → tree objects."""

import os
import random

import pytest

from protorelease.core.errors import StagingError
from protorelease.core.protocols import FileMode
from protorelease.git.memory import MemoryRepository
from protorelease.release import tree as tree_module
from protorelease.release.tree import ObjectTreeBuilder, build_tree


@pytest.fixture
def staged_dir(tmp_path):
    root = tmp_path / "build"
    (root / "tfplugin5").mkdir(parents=True)
    (root / "go.mod").write_text("module example.com/v5\n")
    (root / "go.sum").write_text("")
    (root / "tfplugin5" / "tfplugin5.proto").write_text('syntax = "proto3";\n')
    (root / "tfplugin5" / "tfplugin5.pb.go").write_text("package tfplugin5\n")
    return root


def _entries(repo, oid):
    return {e.name: e for e in repo.read_tree(oid)}


class TestObjectTreeBuilder:
    def test_structure(self, staged_dir):
        repo = MemoryRepository()
        root = build_tree(repo, staged_dir)

        top = _entries(repo, root)
        assert set(top) == {"go.mod", "go.sum", "tfplugin5"}
        assert top["tfplugin5"].mode is FileMode.TREE
        assert top["go.mod"].mode is FileMode.REGULAR
        assert repo.read_blob(top["go.mod"].oid) == b"module example.com/v5\n"

        package = _entries(repo, top["tfplugin5"].oid)
        assert set(package) == {"tfplugin5.proto", "tfplugin5.pb.go"}

    def test_same_content_same_id(self, staged_dir, tmp_path):
        repo = MemoryRepository()
        copy = tmp_path / "copy"
        (copy / "tfplugin5").mkdir(parents=True)
        for relative in ["go.mod", "go.sum", "tfplugin5/tfplugin5.proto", "tfplugin5/tfplugin5.pb.go"]:
            (copy / relative).write_bytes((staged_dir / relative).read_bytes())
        assert build_tree(repo, staged_dir) == build_tree(repo, copy)

    def test_independent_of_listing_order(self, staged_dir, monkeypatch):
        """Shuffled directory listings still produce the same root id."""
        repo = MemoryRepository()
        expected = build_tree(repo, staged_dir)

        real_scandir = os.scandir

        class ShuffledScandir:
            def __init__(self, path):
                self._it = real_scandir(path)
                self._entries = list(self._it)
                random.Random(7).shuffle(self._entries)
                self._entries.reverse()

            def __enter__(self):
                return iter(self._entries)

            def __exit__(self, *exc):
                self._it.close()
                return False

        monkeypatch.setattr(tree_module.os, "scandir", ShuffledScandir)
        assert build_tree(repo, staged_dir) == expected

    def test_content_change_changes_id(self, staged_dir):
        repo = MemoryRepository()
        before = build_tree(repo, staged_dir)
        (staged_dir / "go.sum").write_text("changed\n")
        assert build_tree(repo, staged_dir) != before

    def test_executable_bit(self, staged_dir):
        script = staged_dir / "gen.sh"
        script.write_text("#!/bin/sh\n")
        script.chmod(0o755)
        repo = MemoryRepository()
        top = _entries(repo, build_tree(repo, staged_dir))
        assert top["gen.sh"].mode is FileMode.EXECUTABLE
        assert top["go.mod"].mode is FileMode.REGULAR

    def test_mode_change_changes_id(self, staged_dir):
        repo = MemoryRepository()
        before = build_tree(repo, staged_dir)
        (staged_dir / "go.mod").chmod(0o755)
        assert build_tree(repo, staged_dir) != before

    def test_symlink_stores_target(self, staged_dir):
        (staged_dir / "current").symlink_to("tfplugin5")
        repo = MemoryRepository()
        top = _entries(repo, build_tree(repo, staged_dir))
        assert top["current"].mode is FileMode.SYMLINK
        assert repo.read_blob(top["current"].oid) == b"tfplugin5"

    def test_empty_directory(self, tmp_path):
        repo = MemoryRepository()
        assert ObjectTreeBuilder(repo).build(tmp_path) == "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

    def test_unreadable_directory(self, tmp_path):
        with pytest.raises(StagingError) as exc_info:
            build_tree(MemoryRepository(), tmp_path / "missing")
        assert exc_info.value.context.path == str(tmp_path / "missing")

    def test_unreadable_file(self, staged_dir, monkeypatch):
        real_read_bytes = type(staged_dir).read_bytes

        def failing_read_bytes(self):
            if self.name == "go.sum":
                raise PermissionError("denied")
            return real_read_bytes(self)

        monkeypatch.setattr(type(staged_dir), "read_bytes", failing_read_bytes)
        with pytest.raises(StagingError) as exc_info:
            build_tree(MemoryRepository(), staged_dir)
        assert exc_info.value.context.path.endswith("go.sum")

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs mkfifo")
    def test_special_file_rejected(self, staged_dir):
        os.mkfifo(staged_dir / "pipe")
        with pytest.raises(StagingError):
            build_tree(MemoryRepository(), staged_dir)
