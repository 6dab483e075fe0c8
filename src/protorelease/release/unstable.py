"""Unstable release track.

A second track, fed by the catalog of the upstream branch head rather than
the newest stable release, is reserved here. It publishes nothing: what it
should publish (for instance a moving pre-release ref per minor version) is
undecided, and until it is, ``synthesize_unstable`` must stay observably
inert. It reads nothing from the catalog, writes nothing to the repository
and never raises.
"""

from __future__ import annotations

from protorelease.core.logging import get_logger
from protorelease.release.catalog import VersionCatalog
from protorelease.release.ledger import ReleaseLedger

logger = get_logger(__name__)


class UnstableTrackManager:
    """Placeholder for the unstable release track."""

    def synthesize_unstable(self, catalog: VersionCatalog, ledger: ReleaseLedger) -> None:
        logger.debug("unstable_track_skipped", commit=catalog.commit, versions=len(catalog))
        return None
