"""Path-keyed table of live watches sharing one modification time store."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import InitializationError
from .store import ModTimeStore
from .watch import Watch

if TYPE_CHECKING:
    from .config import WatchConfig


def _key(root_path: str | Path) -> str:
    return os.path.abspath(os.path.expanduser(os.fspath(root_path)))


class WatchRegistry:
    """Creates, looks up and destroys watches, one per root directory."""

    def __init__(self, store: ModTimeStore | None = None, logger: logging.Logger | None = None) -> None:
        """Initialize the registry.

        Args:
            store: Store shared by every watch. A fresh one if None.
            logger: Logger instance.

        """
        self.store = store if store is not None else ModTimeStore()
        self.logger = logger or logging.getLogger("simplepoll")
        self._watches: dict[str, Watch] = {}

    async def create(self, config: WatchConfig) -> Watch:
        """Return the watch for ``config.root``, creating and starting it if needed.

        An existing watch is returned unchanged even if ``config`` differs.

        Raises:
            InitializationError: The startup scan of a new watch failed.

        """
        key = config.root
        if (existing := self._watches.get(key)) is not None:
            return existing

        watch = Watch(config, store=self.store, logger=self.logger)
        self._watches[key] = watch
        # Recorded while initializing, replayed once seeding completes
        watch.start()

        try:
            await watch.initialize()
        except InitializationError:
            if self._watches.get(key) is watch:
                del self._watches[key]
            raise

        self.logger.info("Watching directory: %s", key)
        return watch

    def destroy(self, root_path: str | Path | None) -> None:
        """Close and forget the watch for ``root_path``. No-op if there is none."""
        if not root_path:
            return

        watch = self._watches.pop(_key(root_path), None)
        if watch is None:
            return

        watch.close()
        self.logger.info("Stopped watching directory: %s", watch.root)

    def destroy_all(self) -> int:
        """Destroy every watch.

        Returns:
            Number of watches destroyed.

        """
        paths = list(self._watches)
        for path in paths:
            self.destroy(path)
        return len(paths)

    def get(self, root_path: str | Path) -> Watch | None:
        """Return the watch for ``root_path``, or None."""
        return self._watches.get(_key(root_path))

    @property
    def paths(self) -> list[str]:
        """Absolute roots of all live watches."""
        return list(self._watches)

    def __contains__(self, root_path: object) -> bool:
        if not isinstance(root_path, (str, Path)):
            return False
        return _key(root_path) in self._watches

    def __len__(self) -> int:
        return len(self._watches)
