"""Data models for dirsplit."""

from .config import SplitConfig
from .split import FileGroup, Bucket, SplitManifest, SplitResult

__all__ = ["SplitConfig", "FileGroup", "Bucket", "SplitManifest", "SplitResult"]
