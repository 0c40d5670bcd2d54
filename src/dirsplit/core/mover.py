"""Async file operations for materializing and cleaning up split directories."""

import asyncio
import errno
import logging
import os
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, TypeVar

from ..exceptions import FileOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncFileMover:
    """Run blocking filesystem mutations on a thread pool."""

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self.executor = ThreadPoolExecutor(max_workers=max_workers)

    async def _run(self, func: Callable[[], T]) -> T:
        return await asyncio.get_running_loop().run_in_executor(self.executor, func)

    async def ensure_directory(self, path: Path) -> bool:
        """Create a directory and its parents.

        An existing empty directory is accepted as-is. An existing non-empty
        directory or a non-directory at the path is a collision.

        Returns:
            True when the directory was created by this call.
        """
        def _ensure() -> bool:
            if path.exists() or path.is_symlink():
                if not path.is_dir():
                    raise FileOperationError("Path exists and is not a directory", path)
                if any(path.iterdir()):
                    raise FileOperationError("Output directory already exists and is not empty", path)
                return False
            path.mkdir(parents=True)
            return True

        try:
            created = await self._run(_ensure)
        except FileOperationError:
            raise
        except OSError as e:
            raise FileOperationError(f"Failed to create directory: {e}", path) from e

        if created:
            logger.debug(f"Created directory: {path}")
        return created

    async def move_file(self, source: Path, target_path: Path) -> Path:
        """Move a file, renaming the target if the name is already taken.

        Returns:
            The final destination path.
        """
        def _move() -> Path:
            final_target = self._resolve_duplicate(target_path)
            self._move_sync(source, final_target)
            return final_target

        try:
            final_target = await self._run(_move)
        except OSError as e:
            raise FileOperationError(f"Failed to move file: {e}", source) from e

        logger.debug(f"Moved {source} -> {final_target}")
        return final_target

    @staticmethod
    def _move_sync(source: Path, target: Path) -> None:
        try:
            os.rename(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            logger.warning(f"Cross-device move, copying {source} to {target}")
            shutil.copy2(source, target)
            try:
                os.unlink(source)
            except OSError:
                # Leave no second copy behind when the source cannot be removed
                os.unlink(target)
                raise

    @staticmethod
    def _resolve_duplicate(target_path: Path) -> Path:
        """Resolve duplicate filenames by adding a number."""
        if not target_path.exists():
            return target_path

        base = target_path.stem
        ext = target_path.suffix
        parent = target_path.parent
        counter = 1

        while True:
            new_path = parent / f"{base} ({counter}){ext}"
            if not new_path.exists():
                return new_path
            counter += 1

    async def remove_file(self, path: Path) -> bool:
        """Remove a file.

        Returns:
            False when the file was already gone.
        """
        def _remove() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        try:
            removed = await self._run(_remove)
        except OSError as e:
            raise FileOperationError(f"Failed to remove file: {e}", path) from e

        if removed:
            logger.debug(f"Removed file: {path}")
        return removed

    async def remove_directory_if_empty(self, path: Path) -> bool:
        """Remove a directory only if it has no entries.

        Returns:
            True when removed, False when it was missing or not empty.
        """
        def _remove() -> bool:
            if not path.is_dir():
                return False
            if any(path.iterdir()):
                return False
            path.rmdir()
            return True

        try:
            removed = await self._run(_remove)
        except OSError as e:
            raise FileOperationError(f"Failed to remove directory: {e}", path) from e

        if removed:
            logger.debug(f"Removed directory: {path}")
        return removed

    def close(self) -> None:
        self.executor.shutdown(wait=True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()
