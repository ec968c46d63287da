"""Commit construction and version history."""

from .commit_builder import CommitBuilder, synthetic_sha
from .version_allocator import VersionAllocator
from .versions import LoadedVersion, VersionEntry, VersionService

__all__ = [
    "CommitBuilder",
    "LoadedVersion",
    "VersionAllocator",
    "VersionEntry",
    "VersionService",
    "synthetic_sha",
]
