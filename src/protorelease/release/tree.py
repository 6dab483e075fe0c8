"""Conversion of a staged directory into content-addressed tree objects.

Each file becomes a blob, each directory a tree whose entries are sorted by
name before the tree is written. The root tree id therefore depends only on
names, bytes and permission bits, never on the order the operating system
happens to list a directory in: staging the same output twice yields the
same root id.

Modes:
    regular file      100644
    executable file   100755   (any execute bit set)
    symbolic link     120000   (blob holds the link target)
    directory         40000
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from protorelease.core.errors import StagingError
from protorelease.core.protocols import FileMode, TargetRepository, TreeEntry


class ObjectTreeBuilder:
    """Writes a directory hierarchy into a repository's object store."""

    def __init__(self, repository: TargetRepository):
        self.repository = repository

    def build(self, directory: Path) -> str:
        """Store *directory* recursively and return its root tree id.

        Raises:
            StagingError: If any entry cannot be read. Nothing that was
                already written is referenced by a release in that case.
            RepositoryWriteError: If the repository rejects an object.
        """
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda entry: entry.name)
        except OSError as exc:
            raise StagingError(f"failed to read {directory}: {exc}", cause=exc).with_context(
                path=str(directory)
            ) from exc

        entries = [self._entry(Path(child.path)) for child in children]
        entries.sort(key=TreeEntry.sort_key)
        return self.repository.put_tree(entries)

    def _entry(self, path: Path) -> TreeEntry:
        try:
            st = path.lstat()
            if stat.S_ISLNK(st.st_mode):
                target = os.fsencode(os.readlink(path))
                return TreeEntry(path.name, FileMode.SYMLINK, self.repository.put_blob(target))
            if stat.S_ISDIR(st.st_mode):
                return TreeEntry(path.name, FileMode.TREE, self.build(path))
            if not stat.S_ISREG(st.st_mode):
                raise StagingError(f"unsupported file type at {path}").with_context(path=str(path))
            data = path.read_bytes()
        except OSError as exc:
            raise StagingError(f"failed to read {path}: {exc}", cause=exc).with_context(
                path=str(path)
            ) from exc

        mode = FileMode.EXECUTABLE if st.st_mode & 0o111 else FileMode.REGULAR
        return TreeEntry(path.name, mode, self.repository.put_blob(data))


def build_tree(repository: TargetRepository, directory: Path) -> str:
    """Shorthand for ``ObjectTreeBuilder(repository).build(directory)``."""
    return ObjectTreeBuilder(repository).build(directory)
