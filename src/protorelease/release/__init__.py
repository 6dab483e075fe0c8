"""Release synthesis engine.

    naming.py       Tag, module path, file and commit message conventions
    catalog.py      VersionCatalog: versions declared in an upstream snapshot
    ledger.py       ReleaseLedger: idempotency gate over existing tags
    staging.py      StagedRelease and scoped staging directories
    generator.py    External generation collaborator (subprocess recipe)
    tree.py         ObjectTreeBuilder: directory → content-addressed tree
    synthesizer.py  ReleaseSynthesizer: per-version stage/generate/publish
    unstable.py     UnstableTrackManager (inert)
    pipeline.py     run_mirror: one full process-level pass
"""

from protorelease.release.catalog import VersionCatalog, discover
from protorelease.release.generator import CommandGenerator, GenerationStep, Generator
from protorelease.release.ledger import ReleaseLedger
from protorelease.release.staging import StagedRelease, staging_area
from protorelease.release.synthesizer import (
    Release,
    ReleaseSynthesizer,
    SynthesisReport,
    VersionFailure,
)
from protorelease.release.tree import ObjectTreeBuilder, build_tree
from protorelease.release.unstable import UnstableTrackManager

__all__ = [
    "CommandGenerator",
    "GenerationStep",
    "Generator",
    "ObjectTreeBuilder",
    "Release",
    "ReleaseLedger",
    "ReleaseSynthesizer",
    "StagedRelease",
    "SynthesisReport",
    "UnstableTrackManager",
    "VersionCatalog",
    "VersionFailure",
    "build_tree",
    "discover",
    "staging_area",
]
