"""Scratch directories holding one version's generation inputs and outputs.

Layout of a staging directory for protocol 5.2::

    build-5.2.0-XXXXXX/           ← StagedRelease.root (becomes the release tree)
    └── tfplugin5/                ← package dir, named after the major version
        └── tfplugin5.proto       ← the upstream definition, byte for byte

The generation collaborator then adds its own files (module metadata,
generated bindings) in place. The directory is removed when the
``staging_area`` block exits, whether it exits normally or by an exception.
"""

from __future__ import annotations

import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from protorelease.core.errors import StagingError
from protorelease.core.logging import get_logger
from protorelease.core.version import Version
from protorelease.release import naming

logger = get_logger(__name__)


@dataclass(frozen=True)
class StagedRelease:
    """Paths and names for one version being staged."""

    version: Version
    root: Path
    module_path: str

    @property
    def package_dir(self) -> Path:
        return self.root / naming.package_dir_name(self.version)

    @property
    def proto_file(self) -> Path:
        return self.package_dir / naming.proto_file_name(self.version)


def materialize(staged: StagedRelease, definition: bytes) -> None:
    """Write the protocol definition into the package layout."""
    try:
        staged.package_dir.mkdir()
        staged.proto_file.write_bytes(definition)
    except OSError as exc:
        raise StagingError(
            f"failed to write {staged.proto_file.name} for v{staged.version}: {exc}", cause=exc,
        ).with_context(version=str(staged.version), path=str(staged.proto_file)) from exc


@contextmanager
def staging_area(
    version: Version,
    definition: bytes,
    *,
    root: Path | None = None,
    module_path_template: str = naming.DEFAULT_MODULE_PATH_TEMPLATE,
) -> Iterator[StagedRelease]:
    """Create a staging directory for *version*, populated with *definition*.

    Args:
        version: Protocol version being staged.
        definition: Raw bytes of the protocol definition file.
        root: Parent directory for the temporary directory (system default if None).
        module_path_template: Module path pattern with a ``{major}`` placeholder.

    Raises:
        StagingError: If the directory or the definition file cannot be created.
    """
    try:
        if root is not None:
            root.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.TemporaryDirectory(prefix=f"build-{version}-", dir=root)
    except OSError as exc:
        raise StagingError(
            f"failed to create temporary build directory for v{version}: {exc}", cause=exc,
        ).with_context(version=str(version), path=str(root) if root else None) from exc

    with tmp as path:
        staged = StagedRelease(
            version=version,
            root=Path(path),
            module_path=naming.module_path(version, module_path_template),
        )
        logger.debug("staging_created", path=path)
        materialize(staged, definition)
        yield staged
