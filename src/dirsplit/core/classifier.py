"""Path classification predicates used to prune directory traversal."""

import os
from typing import Union

VCS_DIR_NAME = ".git"
BUILD_DIR_NAME = "target"

PathLike = Union[str, os.PathLike, os.DirEntry]


def _final_component(path: PathLike) -> str:
    """Return the last path segment without normalizing `.` or `..` away."""
    if isinstance(path, os.DirEntry):
        return path.name
    text = os.fspath(path)
    stripped = text.rstrip("/" + os.sep)
    if not stripped:
        return ""
    return os.path.basename(stripped)


def is_hidden(path: PathLike) -> bool:
    """Check whether the final path segment is a dotfile.

    The self and parent segments (`.` and `..`) are never hidden.
    """
    name = _final_component(path)
    return name.startswith(".") and name not in (".", "..")


def is_vcs_dir(path: PathLike, is_dir: bool = True) -> bool:
    """Check whether the entry is a version-control metadata directory."""
    return is_dir and _final_component(path) == VCS_DIR_NAME


def is_build_dir(path: PathLike, is_dir: bool = True) -> bool:
    """Check whether the entry is a build-output directory."""
    return is_dir and _final_component(path) == BUILD_DIR_NAME


def is_excluded(path: PathLike, is_dir: bool) -> bool:
    """Combined traversal pruning policy."""
    return is_hidden(path) or is_vcs_dir(path, is_dir) or is_build_dir(path, is_dir)
