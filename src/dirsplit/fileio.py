"""Thin file I/O helpers used around split operations."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Iterator, List, Optional, Sequence, TypeVar

from .core.classifier import is_hidden
from .exceptions import FileOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_EDITOR = "nvim"


async def _run_blocking(func: Callable[[], T]) -> T:
    return await asyncio.get_running_loop().run_in_executor(None, func)


def has_extension(path: Path, extension: str) -> bool:
    """Case-sensitive extension check; extension is given without the dot."""
    suffix = Path(path).suffix
    return bool(suffix) and suffix[1:] == extension


def get_files_with_extension(directory: Path, extension: str) -> Iterator[Path]:
    """Recursively yield non-hidden files under directory with the extension."""
    for dirpath, _, filenames in os.walk(directory):
        for filename in sorted(filenames):
            if not is_hidden(filename) and has_extension(Path(filename), extension):
                yield Path(dirpath) / filename


def read_to_string(path: Path) -> str:
    """Read a whole text file, naming the path on failure."""
    try:
        return Path(path).read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise FileOperationError(f"Failed to read file: {e}", path) from e


async def read_file_content(path: Path) -> str:
    """Read a whole text file without blocking the event loop."""
    return await _run_blocking(lambda: read_to_string(path))


async def read_lines(path: Path) -> List[str]:
    """Read a text file as a list of stripped lines."""
    content = await read_file_content(path)
    return [line.strip() for line in content.splitlines()]


async def write_to_file(path: Path, content: str) -> None:
    """Create or truncate path and write content to it."""
    def _write() -> None:
        Path(path).write_text(content)

    try:
        await _run_blocking(_write)
    except OSError as e:
        raise FileOperationError(f"Failed to write file: {e}", path) from e


async def delete_files_with_extension(directory: Path, extension: str) -> List[Path]:
    """Delete every file under directory whose extension matches, ignoring case.

    Failures are logged and skipped.

    Returns:
        The files that were removed.
    """
    wanted = extension.lstrip(".").lower()

    def _collect() -> List[Path]:
        matches = []
        for dirpath, _, filenames in os.walk(directory):
            for filename in filenames:
                suffix = os.path.splitext(filename)[1]
                if suffix and suffix[1:].lower() == wanted:
                    matches.append(Path(dirpath) / filename)
        return matches

    async def _remove(path: Path) -> Optional[Path]:
        try:
            await _run_blocking(path.unlink)
        except OSError as e:
            logger.error(f"Failed to remove {path}: {e}")
            return None
        logger.info(f"Removed: {path}")
        return path

    candidates = await _run_blocking(_collect)
    results = await asyncio.gather(*[_remove(path) for path in candidates])
    return [path for path in results if path is not None]


async def check_file_for_multiple_lines(path: Path,
                                        multi_line_files: List[Path],
                                        lock: asyncio.Lock) -> None:
    """Append path to multi_line_files when the file has more than one line."""
    content = await read_file_content(path)
    if len(content.splitlines()) > 1:
        logger.info(f"File with multiple lines found: {path}")
        async with lock:
            multi_line_files.append(path)


async def open_files_in_editor(files: Sequence[Path], editor: Optional[str] = None) -> int:
    """Open files in an interactive editor and wait for it to exit.

    Returns:
        The editor's exit code, or 0 when there was nothing to open.
    """
    if not files:
        return 0

    command = editor or os.environ.get("EDITOR") or DEFAULT_EDITOR
    try:
        process = await asyncio.create_subprocess_exec(command, *[str(path) for path in files])
    except OSError as e:
        raise FileOperationError(f"Failed to launch editor '{command}': {e}") from e
    return await process.wait()


async def process_file(path: Path, processor: Callable[[Path], Awaitable[T]]) -> T:
    """Apply an async processor to a single file."""
    return await processor(path)
