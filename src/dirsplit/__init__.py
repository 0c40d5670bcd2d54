"""Directory Splitter

Split the matched files of a directory tree, together with their related
files, into a configurable number of balanced output directories.
"""

__version__ = "0.1.0"

from .core.classifier import is_hidden, is_vcs_dir, is_build_dir, is_excluded
from .core.walker import DirectoryWalker, parse_extensions, walk_directory, walk_python_files
from .core.matcher import FileMatcher, PatternFileMatcher, PredicateFileMatcher, normalize_path
from .core.splitter import DirectorySplitter, SplitState, assign_groups, cleanup_manifest
from .models.config import SplitConfig, load_config, save_config
from .models.split import (
    Bucket,
    CleanupReport,
    FileGroup,
    ManifestEntry,
    MovedFile,
    OperationError,
    SplitManifest,
    SplitResult,
    load_manifest,
    save_manifest,
)
from .exceptions import (
    DirSplitError,
    ConfigurationError,
    MatchError,
    FileOperationError,
    WalkError,
)

__all__ = [
    # Core components
    "DirectorySplitter",
    "DirectoryWalker",
    "FileMatcher",
    "PatternFileMatcher",
    "PredicateFileMatcher",
    "SplitConfig",

    # Types and enums
    "SplitState",
    "Bucket",
    "FileGroup",
    "ManifestEntry",
    "MovedFile",
    "OperationError",
    "SplitManifest",
    "SplitResult",
    "CleanupReport",

    # Errors
    "DirSplitError",
    "ConfigurationError",
    "MatchError",
    "FileOperationError",
    "WalkError",

    # Utilities
    "assign_groups",
    "cleanup_manifest",
    "is_hidden",
    "is_vcs_dir",
    "is_build_dir",
    "is_excluded",
    "normalize_path",
    "parse_extensions",
    "walk_directory",
    "walk_python_files",
    "load_config",
    "save_config",
    "load_manifest",
    "save_manifest",
]
