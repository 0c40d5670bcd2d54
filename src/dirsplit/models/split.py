"""Data model for split operations: groups, buckets and the manifest."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..exceptions import FileOperationError


@dataclass
class FileGroup:
    """A matched primary file plus the related files that travel with it."""
    primary: Path
    related: List[Path] = field(default_factory=list)

    @property
    def members(self) -> List[Path]:
        """All paths in the group, primary first."""
        return [self.primary] + self.related

    @property
    def size(self) -> int:
        return 1 + len(self.related)


@dataclass
class Bucket:
    """One output directory slot and its running assignment state."""
    index: int
    groups: List[FileGroup] = field(default_factory=list)
    file_count: int = 0
    path: Optional[Path] = None

    def assign(self, group: FileGroup) -> None:
        self.groups.append(group)
        self.file_count += group.size

    @property
    def is_empty(self) -> bool:
        return not self.groups

    @property
    def files(self) -> List[Path]:
        return [member for group in self.groups for member in group.members]


@dataclass(frozen=True)
class MovedFile:
    """A single completed move."""
    source: Path
    destination: Path


@dataclass
class ManifestEntry:
    """An output directory and the files moved into it."""
    directory: Path
    moves: List[MovedFile] = field(default_factory=list)
    created: bool = True

    @property
    def files(self) -> List[Path]:
        """Destination paths, in the order they were moved."""
        return [move.destination for move in self.moves]


@dataclass
class SplitManifest:
    """Record of directories created and files moved by one split."""
    output_root: Path
    entries: List[ManifestEntry] = field(default_factory=list)
    output_root_created: bool = False

    @property
    def directories(self) -> List[Path]:
        return [entry.directory for entry in self.entries]

    @property
    def files(self) -> List[Path]:
        return [path for entry in self.entries for path in entry.files]

    def as_pairs(self) -> List[Tuple[Path, List[Path]]]:
        """The manifest as ordered `(directory, moved files)` pairs."""
        return [(entry.directory, entry.files) for entry in self.entries]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "output_root": str(self.output_root),
            "output_root_created": self.output_root_created,
            "entries": [
                {
                    "directory": str(entry.directory),
                    "created": entry.created,
                    "moves": [
                        {"source": str(move.source), "destination": str(move.destination)}
                        for move in entry.moves
                    ],
                }
                for entry in self.entries
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "SplitManifest":
        """Create from dictionary."""
        return cls(
            output_root=Path(data["output_root"]),
            output_root_created=data.get("output_root_created", False),
            entries=[
                ManifestEntry(
                    directory=Path(entry["directory"]),
                    created=entry.get("created", True),
                    moves=[
                        MovedFile(source=Path(move["source"]), destination=Path(move["destination"]))
                        for move in entry.get("moves", [])
                    ],
                )
                for entry in data.get("entries", [])
            ],
        )


@dataclass(frozen=True)
class OperationError:
    """A per-path failure recorded instead of raised."""
    path: Path
    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation} failed for {self.path}: {self.message}"


@dataclass
class SplitResult:
    """Outcome of a split: the manifest plus any per-file errors."""
    manifest: SplitManifest
    buckets: List[Bucket] = field(default_factory=list)
    errors: List[OperationError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def group_count(self) -> int:
        return sum(len(bucket.groups) for bucket in self.buckets)

    @property
    def moved_count(self) -> int:
        return len(self.manifest.files)


@dataclass
class CleanupReport:
    """Outcome of cleaning up a manifest."""
    removed_files: List[Path] = field(default_factory=list)
    removed_directories: List[Path] = field(default_factory=list)
    skipped_directories: List[Path] = field(default_factory=list)
    errors: List[OperationError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def save_manifest(manifest: SplitManifest, path: Path) -> None:
    """Save a manifest to a JSON file."""
    try:
        with open(path, 'w') as f:
            json.dump(manifest.to_dict(), f, indent=2)
    except OSError as e:
        raise FileOperationError(f"Cannot write manifest: {e}", path) from e


def load_manifest(path: Path) -> SplitManifest:
    """Load a manifest from a JSON file."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
        return SplitManifest.from_dict(data)
    except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise FileOperationError(f"Cannot read manifest: {e}", path) from e
