"""Shared record of the last-seen modification time of every observed file."""

from __future__ import annotations


class ModTimeStore:
    """Maps absolute file paths to modification times in milliseconds.

    One store is shared by every watch of a registry, so watches over
    overlapping trees see each other's observations. Entries are never
    evicted: a stale entry only concerns a path that no longer exists.
    All access happens on the event loop thread.
    """

    def __init__(self) -> None:
        self._mtimes: dict[str, float] = {}

    def get(self, path: str) -> float | None:
        """Return the recorded mtime of ``path``, or None if never observed."""
        return self._mtimes.get(path)

    def record(self, path: str, mtime: float) -> None:
        """Record ``mtime`` for ``path`` unconditionally."""
        self._mtimes[path] = mtime

    def check_and_update(self, path: str, mtime: float) -> bool:
        """Record ``mtime`` if ``path`` is new or was modified since last seen.

        Args:
            path: Absolute file path.
            mtime: Current modification time in milliseconds.

        Returns:
            True if the file is new or newer than the recorded time.

        """
        previous = self._mtimes.get(path)
        if previous is not None and previous >= mtime:
            return False
        self._mtimes[path] = mtime
        return True

    def clear(self) -> None:
        """Forget every recorded path."""
        self._mtimes.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._mtimes

    def __len__(self) -> int:
        return len(self._mtimes)


# Used by watches and registries that are not handed a store explicitly.
DEFAULT_STORE = ModTimeStore()
