"""Recursive directory traversal with exclusion pruning and async file actions."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple, Union

from ..exceptions import FileOperationError, WalkError
from .classifier import is_excluded

logger = logging.getLogger(__name__)

FileAction = Callable[[Path], Awaitable[None]]
ExtensionSpec = Optional[Union[str, Iterable[str]]]

EXTENSION_DELIMITER = ","
ANY_EXTENSION = "*"


def parse_extensions(spec: ExtensionSpec) -> Optional[FrozenSet[str]]:
    """Normalize an extension specifier.

    Accepts a single extension, a comma-separated string or an iterable of
    extensions. Leading dots are dropped. Returns None when every file
    should match (`None`, empty or `*`).
    """
    if spec is None:
        return None

    values = spec.split(EXTENSION_DELIMITER) if isinstance(spec, str) else list(spec)
    cleaned = {value.strip().lstrip(".") for value in values}
    cleaned.discard("")

    if not cleaned or ANY_EXTENSION in cleaned:
        return None
    return frozenset(cleaned)


def _extension_matches(name: str, allowed: Optional[FrozenSet[str]]) -> bool:
    if allowed is None:
        return True
    suffix = os.path.splitext(name)[1]
    return bool(suffix) and suffix[1:] in allowed


class DirectoryWalker:
    """Walk a directory tree yielding regular files, pruning excluded subtrees.

    Hidden entries, version-control metadata directories and build-output
    directories are skipped together with everything below them. Within
    each directory entries are visited in name order, files before
    subdirectories, so the yielded sequence is reproducible.
    """

    def __init__(self,
                 follow_links: bool = False,
                 max_workers: int = 4,
                 skip_dirs: Iterable[Union[str, Path]] = ()):
        """
        Initialize the walker.

        Args:
            follow_links: Whether to descend into symlinked directories and
                yield symlinked files (default: False)
            max_workers: Concurrency limit for `walk_directory` (default: 4)
            skip_dirs: Additional directories whose subtrees are never visited
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.follow_links = follow_links
        self.max_workers = max_workers
        self.skip_dirs: Set[str] = {self._key(path) for path in skip_dirs}

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return os.path.normcase(os.path.abspath(os.fspath(path)))

    def iter_files(self, root: Union[str, Path], extensions: ExtensionSpec = None) -> Iterator[Path]:
        """Lazily yield every matching regular file under root.

        The root is validated eagerly; traversal only starts once the
        returned iterator is consumed.
        """
        root = Path(root)
        if not root.exists():
            raise FileOperationError("Directory does not exist", root)
        if not root.is_dir():
            raise FileOperationError("Path is not a directory", root)

        allowed = parse_extensions(extensions)
        return self._walk(root, allowed, visited=set(), is_root=True)

    def _walk(self,
              directory: Path,
              allowed: Optional[FrozenSet[str]],
              visited: Set[Tuple[int, int]],
              is_root: bool = False) -> Iterator[Path]:
        if self.follow_links:
            # Symlinked directories can form cycles
            try:
                stat = directory.stat()
            except OSError as e:
                logger.warning(f"Cannot stat directory {directory}: {e}")
                return
            identity = (stat.st_dev, stat.st_ino)
            if identity in visited:
                logger.debug(f"Skipping already visited directory: {directory}")
                return
            visited.add(identity)

        try:
            with os.scandir(directory) as scanner:
                entries = sorted(scanner, key=lambda entry: entry.name)
        except OSError as e:
            if is_root:
                raise FileOperationError(f"Cannot read directory: {e}", directory) from e
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        subdirectories: List[Path] = []
        for entry in entries:
            try:
                entry_is_dir = entry.is_dir(follow_symlinks=self.follow_links)
                entry_is_file = entry.is_file(follow_symlinks=self.follow_links)
            except OSError as e:
                logger.warning(f"Cannot inspect {entry.path}: {e}")
                continue

            if is_excluded(entry, entry_is_dir):
                logger.debug(f"Pruned excluded entry: {entry.path}")
                continue

            if entry_is_dir:
                if self._key(entry.path) in self.skip_dirs:
                    logger.debug(f"Pruned skipped directory: {entry.path}")
                    continue
                subdirectories.append(Path(entry.path))
            elif entry_is_file and _extension_matches(entry.name, allowed):
                yield Path(entry.path)

        for subdirectory in subdirectories:
            yield from self._walk(subdirectory, allowed, visited)

    async def walk_directory(self,
                             root: Union[str, Path],
                             extensions: ExtensionSpec,
                             action: FileAction) -> List[Path]:
        """Run an async action for every matching file with bounded concurrency.

        Every dispatched action runs to completion even when others fail.
        Failures are collected and raised together as a WalkError.

        Returns:
            The files the action was dispatched for, in traversal order.
        """
        paths = await asyncio.get_running_loop().run_in_executor(
            None, lambda: list(self.iter_files(root, extensions))
        )
        logger.info(f"Dispatching {len(paths)} files from {root} (max_workers={self.max_workers})")

        semaphore = asyncio.Semaphore(self.max_workers)

        async def run_with_semaphore(path: Path) -> None:
            async with semaphore:
                await action(path)

        results = await asyncio.gather(
            *[run_with_semaphore(path) for path in paths],
            return_exceptions=True
        )

        errors: List[Tuple[Path, BaseException]] = []
        for path, result in zip(paths, results):
            if isinstance(result, Exception):
                logger.error(f"Action failed for {path}: {result}")
                errors.append((path, result))
            elif isinstance(result, BaseException):
                raise result

        if errors:
            raise WalkError(errors)

        return paths

    async def walk_sequential(self,
                              root: Union[str, Path],
                              extensions: ExtensionSpec,
                              action: FileAction) -> int:
        """Feed matching files to the action one at a time in traversal order.

        The first failing action aborts the walk and its exception propagates.

        Returns:
            Number of files processed.
        """
        count = 0
        for path in self.iter_files(root, extensions):
            await action(path)
            count += 1
        return count

    async def walk_python_files(self, root: Union[str, Path], action: FileAction) -> int:
        """Sequentially walk the Python sources under root."""
        return await self.walk_sequential(root, "py", action)


async def walk_directory(root: Union[str, Path],
                         extensions: ExtensionSpec,
                         action: FileAction,
                         max_workers: int = 4) -> List[Path]:
    """Convenience wrapper around DirectoryWalker.walk_directory."""
    return await DirectoryWalker(max_workers=max_workers).walk_directory(root, extensions, action)


async def walk_python_files(root: Union[str, Path], action: FileAction) -> int:
    """Convenience wrapper around DirectoryWalker.walk_python_files."""
    return await DirectoryWalker().walk_python_files(root, action)
