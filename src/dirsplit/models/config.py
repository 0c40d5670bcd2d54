"""Configuration model for directory splitting."""

import json
import os
import string
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from ..exceptions import ConfigurationError

INDEX_SLOT = "{}"
FILE_TEMPLATE_FIELDS = {"name", "stem", "suffix", "index"}


def _absolute(path) -> Path:
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))


@dataclass(frozen=True)
class SplitConfig:
    """Validated, immutable settings for one split operation."""
    source_dir: Path
    bucket_count: int
    output_dir: Optional[Path] = None
    dir_template: str = "part_{}"
    dir_suffix: str = ""
    file_template: Optional[str] = None
    max_workers: int = 4
    follow_links: bool = False

    def __post_init__(self) -> None:
        """Validate the configuration after creation."""
        # Stored absolute and normalized
        object.__setattr__(self, "source_dir", _absolute(self.source_dir))
        if self.output_dir is not None:
            object.__setattr__(self, "output_dir", _absolute(self.output_dir))

        if isinstance(self.bucket_count, bool) or not isinstance(self.bucket_count, int):
            raise ConfigurationError(f"Bucket count must be an integer, got {self.bucket_count!r}")
        if self.bucket_count < 1:
            raise ConfigurationError(f"Bucket count must be at least 1, got {self.bucket_count}")

        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be a positive integer, got {self.max_workers!r}")

        if not self.source_dir.exists():
            raise ConfigurationError("Source directory does not exist", self.source_dir)
        if not self.source_dir.is_dir():
            raise ConfigurationError("Source path is not a directory", self.source_dir)

        if self.output_root.exists() and not self.output_root.is_dir():
            raise ConfigurationError("Output path exists and is not a directory", self.output_root)

        self._validate_dir_template()
        self._validate_file_template()

    def _validate_dir_template(self) -> None:
        if self.dir_template.count(INDEX_SLOT) != 1:
            raise ConfigurationError(
                f"Directory template must contain exactly one '{INDEX_SLOT}' slot: {self.dir_template!r}"
            )
        sample = self.dir_name(0)
        if not sample or sample in (".", "..") or "/" in sample or os.sep in sample:
            raise ConfigurationError(f"Directory template produces an invalid name: {sample!r}")

    def _validate_file_template(self) -> None:
        if self.file_template is None:
            return
        try:
            parsed = list(string.Formatter().parse(self.file_template))
        except ValueError as e:
            raise ConfigurationError(f"Malformed file template {self.file_template!r}: {e}") from e

        for _, field_name, _, _ in parsed:
            if field_name is None:
                continue
            if field_name not in FILE_TEMPLATE_FIELDS:
                raise ConfigurationError(
                    f"Unknown field '{{{field_name}}}' in file template; "
                    f"expected one of {sorted(FILE_TEMPLATE_FIELDS)}"
                )

        try:
            sample = self.file_name(Path("sample.txt"), 0)
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigurationError(f"File template cannot be rendered {self.file_template!r}: {e}") from e
        if not sample or "/" in sample or os.sep in sample:
            raise ConfigurationError(f"File template produces an invalid name: {sample!r}")

    @property
    def output_root(self) -> Path:
        """Directory under which bucket directories are created."""
        return self.output_dir if self.output_dir is not None else self.source_dir

    def dir_name(self, index: int) -> str:
        """Render the bucket directory name for an index."""
        return self.dir_template.replace(INDEX_SLOT, str(index)) + self.dir_suffix

    def dir_path(self, index: int) -> Path:
        return self.output_root / self.dir_name(index)

    def file_name(self, path: Path, index: int) -> str:
        """Render the destination file name for a moved file."""
        if self.file_template is None:
            return path.name
        return self.file_template.format(
            name=path.name,
            stem=path.stem,
            suffix=path.suffix,
            index=index,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for field_info in fields(self):
            value = getattr(self, field_info.name)
            data[field_info.name] = str(value) if isinstance(value, Path) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SplitConfig":
        known = {field_info.name for field_info in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        if "source_dir" not in data or "bucket_count" not in data:
            raise ConfigurationError("Configuration requires 'source_dir' and 'bucket_count'")
        return cls(**data)


def load_config(config_path: Path) -> SplitConfig:
    """Load configuration from JSON file."""
    try:
        with open(config_path, 'r') as f:
            config_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", config_path) from e

    if not isinstance(config_data, dict):
        raise ConfigurationError("Configuration file must contain a JSON object", config_path)

    return SplitConfig.from_dict(config_data)


def save_config(config: SplitConfig, config_path: Path) -> None:
    """Save configuration to JSON file."""
    try:
        with open(config_path, 'w') as f:
            json.dump(config.to_dict(), f, indent=2)
    except OSError as e:
        raise ConfigurationError(f"Cannot write configuration: {e}", config_path) from e
