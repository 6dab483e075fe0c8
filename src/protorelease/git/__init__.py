"""Git-backed and in-memory collaborators.

    runner.py      run_git: subprocess wrapper with timeout and error mapping
    objects.py     Git object encoding and ids
    source.py      GitUpstream: bare mirror, fetch, stable/latest resolution
    repository.py  GitRepository: target repository over plumbing commands
    memory.py      MemoryUpstream / MemoryRepository: no git binary required
"""

from protorelease.git.memory import MemoryRepository, MemoryUpstream
from protorelease.git.repository import GitRepository
from protorelease.git.source import GitUpstream

__all__ = ["GitRepository", "GitUpstream", "MemoryRepository", "MemoryUpstream"]
