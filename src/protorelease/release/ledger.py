"""Release ledger: which versions already have a published release.

The ledger is the idempotency gate. A version is released exactly when its
tag exists in the target repository; the check is by tag name only, so a
definition that changes without a version bump is never re-released.

A lookup that fails for any reason other than "no such tag" is raised as
:class:`RepositoryError` and aborts the run. Reading such a failure as
"not released" would publish a second release for an existing version.
"""

from __future__ import annotations

from protorelease.core.errors import RepositoryError
from protorelease.core.protocols import TagLookup, TagLookupStatus, TargetRepository
from protorelease.core.version import Version
from protorelease.release.naming import tag_name


class ReleaseLedger:
    """Idempotency gate over a target repository."""

    def __init__(self, repository: TargetRepository):
        self.repository = repository

    def lookup(self, tag: str) -> TagLookup:
        """Tagged lookup result: found, not found, or failed."""
        return self.repository.lookup_tag(tag)

    def has_release(self, tag: str) -> bool:
        """True if *tag* exists.

        Raises:
            RepositoryError: If the lookup itself failed.
        """
        result = self.lookup(tag)
        if result.status is TagLookupStatus.FOUND:
            return True
        if result.status is TagLookupStatus.NOT_FOUND:
            return False
        error = result.error
        if isinstance(error, RepositoryError):
            raise error
        raise RepositoryError(f"can't check if tag {tag} is already present: {error}", cause=error).with_context(
            tag=tag
        )

    def is_released(self, version: Version) -> bool:
        return self.has_release(tag_name(version))

    def missing(self, versions: list[Version]) -> list[Version]:
        """The subset of *versions* with no release yet, in ascending order."""
        return [version for version in sorted(versions) if not self.is_released(version)]
