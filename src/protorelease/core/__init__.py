"""protorelease core -- domain-agnostic primitives shared by every layer.

Architecture::

    errors.py      Structured error hierarchy (ReleaseError and kinds)
    result.py      Result[T] envelope (Ok / Err / partition_results)
    logging.py     structlog configuration and scoped log context
    settings.py    MirrorSettings (pydantic-settings, PROTORELEASE_ env)
    version.py     Version value type and parsers
    protocols.py   Collaborator protocols and object value types
"""

from protorelease.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    ExternalToolError,
    GenerationTimeoutError,
    GitCommandError,
    NotFoundError,
    ParseError,
    ReleaseError,
    RepositoryError,
    RepositoryWriteError,
    StagingError,
    UpstreamError,
    is_fatal,
)
from protorelease.core.protocols import (
    ContentRef,
    DirectoryEntry,
    FileMode,
    ObjectKind,
    Signature,
    Snapshot,
    TagLookup,
    TagLookupStatus,
    TargetRepository,
    TreeEntry,
    UpstreamHistory,
    UpstreamSource,
)
from protorelease.core.result import Err, Ok, Result, partition_results
from protorelease.core.version import Version, parse_release_tag, parse_version

__all__ = [
    # errors
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "ExternalToolError",
    "GenerationTimeoutError",
    "GitCommandError",
    "NotFoundError",
    "ParseError",
    "ReleaseError",
    "RepositoryError",
    "RepositoryWriteError",
    "StagingError",
    "UpstreamError",
    "is_fatal",
    # protocols
    "ContentRef",
    "DirectoryEntry",
    "FileMode",
    "ObjectKind",
    "Signature",
    "Snapshot",
    "TagLookup",
    "TagLookupStatus",
    "TargetRepository",
    "TreeEntry",
    "UpstreamHistory",
    "UpstreamSource",
    # result
    "Err",
    "Ok",
    "Result",
    "partition_results",
    # version
    "Version",
    "parse_release_tag",
    "parse_version",
]
