"""Core directory splitting modules."""

from .splitter import DirectorySplitter, SplitState, assign_groups, cleanup_manifest
from .walker import DirectoryWalker

__all__ = [
    'DirectorySplitter',
    'DirectoryWalker',
    'SplitState',
    'assign_groups',
    'cleanup_manifest'
]
