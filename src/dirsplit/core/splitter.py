"""Split a directory's matched files into balanced output directories.

The splitter discovers matched files, groups each with its related files,
assigns groups to buckets by least-loaded file count and moves them into
freshly created directories. The returned manifest drives `cleanup`.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Set

from ..exceptions import DirSplitError, FileOperationError, MatchError
from ..models.config import SplitConfig
from ..models.split import (
    Bucket,
    CleanupReport,
    FileGroup,
    ManifestEntry,
    MovedFile,
    OperationError,
    SplitManifest,
    SplitResult,
)
from .matcher import FileMatcher, normalize_path
from .mover import AsyncFileMover
from .walker import DirectoryWalker

logger = logging.getLogger(__name__)


class SplitState(Enum):
    """Lifecycle of a split operation."""
    CONFIGURED = "configured"
    DISCOVERING = "discovering"
    GROUPING = "grouping"
    ASSIGNING = "assigning"
    MATERIALIZING = "materializing"
    DONE = "done"
    FAILED = "failed"


ACTIVE_STATES = {
    SplitState.DISCOVERING,
    SplitState.GROUPING,
    SplitState.ASSIGNING,
    SplitState.MATERIALIZING,
}


def assign_groups(groups: Iterable[FileGroup], bucket_count: int) -> List[Bucket]:
    """Assign groups to buckets with a greedy least-loaded policy.

    Groups are taken in the given order; each goes to the bucket with the
    fewest files so far, ties broken by the lowest index. The spread
    between the fullest and emptiest bucket never exceeds the largest
    group.
    """
    if bucket_count < 1:
        raise ValueError("bucket_count must be at least 1")

    buckets = [Bucket(index=i) for i in range(bucket_count)]
    for group in groups:
        target = min(buckets, key=lambda bucket: (bucket.file_count, bucket.index))
        target.assign(group)
    return buckets


class DirectorySplitter:
    """Orchestrates discovery, grouping, assignment and materialization."""

    def __init__(self, config: SplitConfig, matcher: FileMatcher):
        self.config = config
        self.matcher = matcher
        self.state = SplitState.CONFIGURED
        self._manifest_lock = asyncio.Lock()

    def _make_walker(self) -> DirectoryWalker:
        skip_dirs = [self.config.dir_path(i) for i in range(self.config.bucket_count)]
        output_root = self.config.output_root
        if output_root.resolve() != self.config.source_dir.resolve():
            skip_dirs.append(output_root)

        return DirectoryWalker(
            follow_links=self.config.follow_links,
            max_workers=self.config.max_workers,
            skip_dirs=skip_dirs,
        )

    async def discover(self) -> List[Path]:
        """Collect every matched path under the source, in traversal order."""
        walker = self._make_walker()
        loop = asyncio.get_running_loop()

        logger.info(f"Scanning {self.config.source_dir} for files...")
        candidates = await loop.run_in_executor(
            None, lambda: list(walker.iter_files(self.config.source_dir))
        )

        semaphore = asyncio.Semaphore(self.config.max_workers)

        async def match_with_semaphore(path: Path) -> bool:
            async with semaphore:
                try:
                    return await loop.run_in_executor(None, self.matcher.matches, path)
                except DirSplitError:
                    raise
                except Exception as e:
                    raise MatchError(f"Matcher failed: {e}", path) from e

        # gather keeps results aligned with the candidate order
        verdicts = await asyncio.gather(*[match_with_semaphore(path) for path in candidates])
        matched = [path for path, verdict in zip(candidates, verdicts) if verdict]

        logger.info(f"Matched {len(matched)} of {len(candidates)} files")
        return matched

    def group(self, matched: List[Path]) -> List[FileGroup]:
        """Group matched paths with their related files.

        A path joins at most one group: the first group to claim it wins,
        whether as a primary or as a related file. Paths are compared in
        normalized absolute form.
        """
        claimed: Set[Path] = set()
        groups: List[FileGroup] = []

        for primary in map(normalize_path, matched):
            if primary in claimed:
                logger.debug(f"Skipping already claimed file: {primary}")
                continue

            claimed.add(primary)
            related = []
            for companion in sorted({normalize_path(path) for path in self._related(primary)}):
                if companion == primary:
                    continue
                if companion in claimed:
                    logger.debug(f"Related file {companion} already claimed, not grouping with {primary}")
                    continue
                claimed.add(companion)
                related.append(companion)

            groups.append(FileGroup(primary=primary, related=related))

        logger.info(f"Formed {len(groups)} file groups")
        return groups

    def _related(self, path: Path) -> Set[Path]:
        try:
            return self.matcher.related(path)
        except DirSplitError:
            raise
        except Exception as e:
            raise MatchError(f"Matcher failed to find related files: {e}", path) from e

    def _begin(self) -> None:
        if self.state in ACTIVE_STATES:
            raise DirSplitError(f"Split already in progress (state: {self.state.value})")

    async def _plan(self) -> List[Bucket]:
        try:
            self.state = SplitState.DISCOVERING
            matched = await self.discover()

            self.state = SplitState.GROUPING
            groups = self.group(matched)
        except Exception:
            self.state = SplitState.FAILED
            raise

        self.state = SplitState.ASSIGNING
        buckets = assign_groups(groups, self.config.bucket_count)
        for bucket in buckets:
            if not bucket.is_empty:
                bucket.path = self.config.dir_path(bucket.index)
        return buckets

    async def plan(self) -> List[Bucket]:
        """Compute the bucket assignment without touching the filesystem."""
        self._begin()
        buckets = await self._plan()
        self.state = SplitState.DONE
        return buckets

    async def split(self) -> SplitResult:
        """Run a full split.

        Discovery and grouping failures propagate before anything is
        mutated. Once moving starts, per-file failures are recorded in the
        result and the remaining files are still moved.
        """
        self._begin()
        buckets = await self._plan()

        self.state = SplitState.MATERIALIZING
        manifest = SplitManifest(output_root=self.config.output_root)
        result = SplitResult(manifest=manifest, buckets=buckets)

        async with AsyncFileMover(max_workers=self.config.max_workers) as mover:
            try:
                await self._materialize(mover, buckets, result)
            except Exception:
                self.state = SplitState.FAILED
                raise

        self.state = SplitState.DONE
        if result.errors:
            logger.error(f"Split finished with {len(result.errors)} error(s)")
        logger.info(
            f"Moved {result.moved_count} files into {len(manifest.entries)} directories"
        )
        return result

    async def _materialize(self,
                           mover: AsyncFileMover,
                           buckets: List[Bucket],
                           result: SplitResult) -> None:
        manifest = result.manifest
        non_empty = [bucket for bucket in buckets if not bucket.is_empty]
        if not non_empty:
            logger.info("No files matched, nothing to move")
            return

        output_root = self.config.output_root
        if not output_root.exists():
            await mover.ensure_directory(output_root)
            manifest.output_root_created = True

        # Directories are created in index order so the manifest order is stable
        ready = []
        for bucket in non_empty:
            try:
                created = await mover.ensure_directory(bucket.path)
            except FileOperationError as e:
                logger.error(str(e))
                result.errors.append(OperationError(bucket.path, "create_dir", str(e)))
                for path in bucket.files:
                    result.errors.append(
                        OperationError(path, "move", f"Output directory unavailable: {bucket.path}")
                    )
                continue

            entry = ManifestEntry(directory=bucket.path, created=created)
            manifest.entries.append(entry)
            ready.append((bucket, entry))

        semaphore = asyncio.Semaphore(self.config.max_workers)

        async def move_bucket(bucket: Bucket, entry: ManifestEntry) -> None:
            async with semaphore:
                await self._move_bucket(mover, bucket, entry, result)

        await asyncio.gather(*[move_bucket(bucket, entry) for bucket, entry in ready])

    async def _move_bucket(self,
                           mover: AsyncFileMover,
                           bucket: Bucket,
                           entry: ManifestEntry,
                           result: SplitResult) -> None:
        logger.debug(f"Moving {bucket.file_count} files into {bucket.path}")

        # Group members move independently; one failed member does not hold back the rest
        for path in bucket.files:
            target = bucket.path / self.config.file_name(path, bucket.index)
            try:
                destination = await mover.move_file(path, target)
            except FileOperationError as e:
                logger.error(str(e))
                async with self._manifest_lock:
                    result.errors.append(OperationError(path, "move", str(e)))
                continue

            async with self._manifest_lock:
                entry.moves.append(MovedFile(source=path, destination=destination))

    async def cleanup(self, manifest: SplitManifest) -> CleanupReport:
        """Remove moved files and the directories this split created."""
        return await cleanup_manifest(manifest, max_workers=self.config.max_workers)


async def cleanup_manifest(manifest: SplitManifest, max_workers: int = 4) -> CleanupReport:
    """Best-effort removal of everything a split recorded in its manifest.

    Files already gone are skipped silently. Directories are removed only
    if this split created them and they are empty; non-empty ones are kept
    with a warning. Failures are collected per path.
    """
    report = CleanupReport()
    logger.info(f"Starting cleanup of {len(manifest.entries)} directories")

    async with AsyncFileMover(max_workers=max_workers) as mover:
        for entry in manifest.entries:
            for path in entry.files:
                try:
                    if await mover.remove_file(path):
                        report.removed_files.append(path)
                except FileOperationError as e:
                    logger.error(str(e))
                    report.errors.append(OperationError(path, "remove_file", str(e)))

        directories = [entry.directory for entry in manifest.entries if entry.created]
        if manifest.output_root_created:
            directories.append(manifest.output_root)

        for directory in directories:
            try:
                removed = await mover.remove_directory_if_empty(directory)
            except FileOperationError as e:
                logger.error(str(e))
                report.errors.append(OperationError(directory, "remove_dir", str(e)))
                continue

            if removed:
                report.removed_directories.append(directory)
            elif directory.is_dir():
                logger.warning(f"Directory not empty, leaving it in place: {directory}")
                report.skipped_directories.append(directory)

    logger.info(
        f"Cleanup removed {len(report.removed_files)} files and "
        f"{len(report.removed_directories)} directories"
    )
    return report
