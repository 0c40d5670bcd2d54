"""Custom exceptions for dirsplit."""

from pathlib import Path
from typing import List, Optional, Tuple, Union


class DirSplitError(Exception):
    """Base exception for dirsplit errors."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None and str(self.path) not in message:
            return f"{message}: {self.path}"
        return message


class ConfigurationError(DirSplitError):
    """Raised when a split configuration is invalid."""
    pass


class MatchError(DirSplitError):
    """Raised when a matcher cannot evaluate a path."""
    pass


class FileOperationError(DirSplitError):
    """Raised when file operations fail."""
    pass


class WalkError(DirSplitError):
    """Raised after a concurrent walk when one or more actions failed."""

    def __init__(self, errors: List[Tuple[Path, BaseException]]):
        self.errors = errors
        first_path = errors[0][0] if errors else None
        super().__init__(f"{len(errors)} file action(s) failed during walk", first_path)

    def __str__(self) -> str:
        lines = [Exception.__str__(self)]
        for path, error in self.errors:
            lines.append(f"  {path}: {error}")
        return "\n".join(lines)
