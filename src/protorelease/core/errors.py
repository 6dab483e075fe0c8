"""
Structured error types for protorelease.

Provides a typed hierarchy of errors carrying the metadata the release
synthesizer needs to decide whether a failure belongs to one version (and
can be collected alongside the rest of the batch) or to the whole run (and
must abort it immediately).

Every error carries:
- **Category:** What kind of failure (source, parse, storage, generation, ...)
- **Retryable:** Whether re-running the same step could plausibly succeed
- **Context:** Version, tag, path and command involved, plus free-form metadata
- **Cause:** The chained underlying exception

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        ReleaseError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  NotFoundError      ParseError        StagingError               │
        │  (SOURCE)           (PARSE)           (STORAGE)                  │
        │                                                                  │
        │  ExternalToolError  RepositoryError   UpstreamError              │
        │  (GENERATION)       (REPOSITORY)      (SOURCE, fatal)            │
        │       │                  │                                       │
        │  GenerationTimeout  RepositoryWrite   ConfigError   GitCommand   │
        │  Error              Error             (CONFIG)      Error        │
        └─────────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Treat a RepositoryError from a tag lookup as "not released"
    ✅ DO: Let it abort the run; only NotFound means "not released"

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Usage:
    from protorelease.core.errors import ExternalToolError

    try:
        subprocess.run(argv, check=True, timeout=remaining)
    except subprocess.CalledProcessError as e:
        raise ExternalToolError("protoc failed", cause=e).with_context(
            version="5.2.0", command=" ".join(argv),
        )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories for classification and reporting.

    Attributes:
        SOURCE: Upstream history, missing paths or refs
        PARSE: Malformed version strings
        STORAGE: Staging directory and file I/O
        GENERATION: External generation tools
        REPOSITORY: Target repository reads and writes
        CONFIG: Invalid settings
        INTERNAL: Bugs, unexpected state
    """

    SOURCE = "SOURCE"
    PARSE = "PARSE"
    STORAGE = "STORAGE"
    GENERATION = "GENERATION"
    REPOSITORY = "REPOSITORY"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields relevant to the failure need to be set; ``to_dict()``
    drops the rest so log lines stay short.

    Attributes:
        version: Protocol version being processed (e.g. ``"5.2.0"``)
        tag: Release tag name involved (e.g. ``"v5.2.0"``)
        path: Filesystem or tree path involved
        command: Command line of a failed subprocess
        metadata: Additional key-value pairs
    """

    version: str | None = None
    tag: str | None = None
    path: str | None = None
    command: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["version", "tag", "path", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ReleaseError(Exception):
    """
    Base exception for all protorelease errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    call sites only pass what differs from the norm.

    Examples:
        >>> error = ReleaseError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(version="5.0.0").context.version
        '5.0.0'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ReleaseError:
        """
        Add context to this error (fluent API).

        Unknown keys land in ``context.metadata``. Keys already set are not
        overwritten, so an inner layer's more precise context wins.
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SOURCE / PARSE ERRORS
# =============================================================================


class NotFoundError(ReleaseError):
    """A path, ref or tag that was expected to exist does not.

    Usually recoverable: often it simply means there is nothing to do.
    """

    default_category = ErrorCategory.SOURCE


class ParseError(ReleaseError):
    """A version string is malformed.

    Catalog discovery skips entries raising this; it never aborts a run.
    """

    default_category = ErrorCategory.PARSE


class UpstreamError(ReleaseError):
    """The upstream history cannot be opened, fetched or resolved.

    Process-level: aborts the whole run.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = True


# =============================================================================
# PER-VERSION ERRORS
# =============================================================================


class StagingError(ReleaseError):
    """Reading or writing the staging area failed (the I/O error kind)."""

    default_category = ErrorCategory.STORAGE


class ExternalToolError(ReleaseError):
    """The external generation collaborator failed."""

    default_category = ErrorCategory.GENERATION


class GenerationTimeoutError(ExternalToolError):
    """The external generation collaborator did not finish before its deadline.

    Attributes:
        timeout: The deadline, in seconds, that was exceeded
    """

    default_retryable = True

    def __init__(self, message: str, *, timeout: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.timeout is not None:
            result["timeout"] = self.timeout
        return result


# =============================================================================
# REPOSITORY ERRORS
# =============================================================================


class RepositoryError(ReleaseError):
    """The target repository could not be opened or read.

    Raised for every lookup failure other than "not found". Process-level:
    treating it as "not released" would re-publish existing versions.
    """

    default_category = ErrorCategory.REPOSITORY


class RepositoryWriteError(RepositoryError):
    """Persisting an object or tag to the target repository failed.

    Aborts only the affected version.
    """


# =============================================================================
# CONFIG / LOW-LEVEL
# =============================================================================


class ConfigError(ReleaseError):
    """Settings are missing or invalid."""

    default_category = ErrorCategory.CONFIG


class GitCommandError(ReleaseError):
    """A ``git`` invocation exited unsuccessfully.

    The git collaborators translate this into one of the domain errors
    above; it should not escape them.

    Attributes:
        argv: The command line that was run
        returncode: Process exit status (``None`` if it never ran to completion)
        stderr: Captured standard error, stripped
    """

    def __init__(
        self,
        argv: list[str],
        returncode: int | None,
        stderr: str = "",
        *,
        cause: Exception | None = None,
    ):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(
            f"{' '.join(argv)} exited with status {returncode}{detail}",
            context=ErrorContext(command=" ".join(argv)),
            cause=cause,
        )


#: Errors that abort the whole run rather than a single version.
FATAL_ERRORS: tuple[type[ReleaseError], ...] = (
    UpstreamError,
    ConfigError,
)


def is_fatal(error: BaseException) -> bool:
    """True if *error* must abort the whole run.

    A plain ``RepositoryError`` (lookup/open failure) is fatal; its
    ``RepositoryWriteError`` subclass is scoped to one version.
    """
    if isinstance(error, RepositoryWriteError):
        return False
    return isinstance(error, FATAL_ERRORS + (RepositoryError,))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ReleaseError",
    "NotFoundError",
    "ParseError",
    "UpstreamError",
    "StagingError",
    "ExternalToolError",
    "GenerationTimeoutError",
    "RepositoryError",
    "RepositoryWriteError",
    "ConfigError",
    "GitCommandError",
    "is_fatal",
]
