"""List directory trees and pick out files that are new or modified."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from .config import DEFAULT_MAX_CONCURRENCY
from .errors import wrap_os_error

if TYPE_CHECKING:
    from .store import ModTimeStore

logger = logging.getLogger("simplepoll")

T = TypeVar("T")


def _walk_files(root: str) -> list[str]:
    """Recursively list regular files under ``root``.

    Symlinked directories are not followed; broken symlinks are skipped.
    Runs in a worker thread.
    """
    files: list[str] = []
    pending = [root]

    while pending:
        directory = pending.pop()
        subdirs: list[str] = []
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        subdirs.append(entry.path)
                    elif entry.is_file():
                        files.append(entry.path)
        except OSError as e:
            raise wrap_os_error(e, directory) from e
        # Keep scandir order within a directory, visit subdirectories after
        pending.extend(reversed(subdirs))

    return files


def _stat_mtime(path: str) -> float:
    """Return the modification time of ``path`` in milliseconds."""
    try:
        return os.stat(path).st_mtime_ns / 1_000_000
    except OSError as e:
        raise wrap_os_error(e, path) from e


class Scanner:
    """Lists a tree and filters it against a shared ``ModTimeStore``."""

    def __init__(self, store: ModTimeStore, max_concurrency: int = DEFAULT_MAX_CONCURRENCY) -> None:
        """Initialize the scanner.

        Args:
            store: Shared modification time store.
            max_concurrency: Maximum number of stat calls in flight.

        """
        self.store = store
        self.max_concurrency = max_concurrency

    async def list_files(self, root: str) -> list[str]:
        """List every file under ``root`` as an absolute path.

        Args:
            root: Absolute directory path.

        Returns:
            File paths in enumeration order.

        Raises:
            PathNotFoundError: ``root`` (or a directory below it) does not exist.
            OperationalIOError: Any other listing failure.

        """
        files = await asyncio.to_thread(_walk_files, root)
        logger.debug("Listed %d files under %s", len(files), root)
        return files

    async def _stat(self, path: str) -> float:
        return await asyncio.to_thread(_stat_mtime, path)

    async def _map_limited(self, items: list[str], func: Callable[[str], Awaitable[T]]) -> list[T]:
        """Apply ``func`` to every item with at most ``max_concurrency`` in flight.

        A fixed pool of workers pulls the next index, so only the workers
        exist as tasks regardless of how many items there are. Results keep
        the order of ``items``. After the first failure no new items start.
        """
        results: list[T] = [None] * len(items)  # type: ignore[list-item]
        next_index = 0

        async def worker() -> None:
            nonlocal next_index
            while next_index < len(items):
                index = next_index
                next_index += 1
                try:
                    results[index] = await func(items[index])
                except Exception:
                    next_index = len(items)
                    raise

        workers = min(self.max_concurrency, len(items))
        await asyncio.gather(*(worker() for _ in range(workers)))
        return results

    async def filter_new(self, files: list[str], extension: str | None) -> list[str]:
        """Keep files ending with ``extension`` that are new or modified.

        Without an extension, or with nothing to check, ``files`` is returned
        as-is and nothing is stat'ed. Kept files have their mtime recorded.
        The first stat failure aborts the whole batch.

        Args:
            files: Candidate paths.
            extension: Required suffix, or None.

        Returns:
            Kept paths in the same order as ``files``.

        """
        if not files or not extension:
            return files

        async def check(path: str) -> bool:
            if not path.endswith(extension):
                return False
            mtime = await self._stat(path)
            return self.store.check_and_update(path, mtime)

        keep = await self._map_limited(files, check)
        return [path for path, kept in zip(files, keep) if kept]

    async def seed(self, files: list[str], extension: str | None) -> int:
        """Record the current mtime of every matching file without reporting it.

        Args:
            files: Paths found by the startup listing.
            extension: Required suffix, or None for all files.

        Returns:
            Number of files recorded.

        """
        targets = [path for path in files if not extension or path.endswith(extension)]
        async def record(path: str) -> None:
            self.store.record(path, await self._stat(path))

        await self._map_limited(targets, record)
        return len(targets)

    async def scan(self, root: str, extension: str | None) -> list[str]:
        """List ``root`` and return the files that are new or modified."""
        return await self.filter_new(await self.list_files(root), extension)
