"""Long-running process hosting the configured directory watches."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

from .errors import InitializationError, OperationalError
from .registry import WatchRegistry
from .scanner import Scanner
from .sorter import sort_files
from .store import ModTimeStore
from .watch import PollResult, ResultQueue

if TYPE_CHECKING:
    from .config import PollerSettings


@dataclass
class DaemonStats:
    """Statistics for the daemon."""

    start_time: datetime
    watches_active: int = 0
    cycles_reported: int = 0
    files_reported: int = 0
    errors: int = 0


class PollDaemon:
    """Runs one watch per configured directory and logs what they find."""

    def __init__(self, settings: PollerSettings) -> None:
        """Initialize the daemon.

        Args:
            settings: Daemon settings.

        """
        self.settings = settings
        self.logger = self._setup_logging()

        self.registry = WatchRegistry(ModTimeStore(), self.logger)
        self.results = ResultQueue(logger=self.logger)

        # State
        self.stats = DaemonStats(start_time=datetime.now())
        self._running = False

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the daemon.

        Returns:
            Configured logger instance.

        """
        level = getattr(logging, self.settings.log_level.upper(), None)
        if not isinstance(level, int):
            raise ValueError(f"Invalid log_level: {self.settings.log_level!r}")

        logger = logging.getLogger("simplepoll")
        logger.setLevel(level)

        # Clear existing handlers to avoid duplicates if daemon is recreated
        if logger.handlers:
            logger.handlers.clear()

        console_handler = RichHandler(
            console=Console(),
            show_time=True,
            show_path=False,
        )
        console_handler.setLevel(logging.INFO)
        logger.addHandler(console_handler)

        self.settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(self.settings.log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(file_handler)

        return logger

    async def _start_watches(self) -> None:
        """Create a watch for every configured directory."""
        for watch_settings in self.settings.watches:
            root = os.path.abspath(watch_settings.path)
            config = watch_settings.to_watch_config(
                self.results.callback_for(root),
                self.settings.max_concurrency,
            )
            try:
                await self.registry.create(config)
            except InitializationError as e:
                self.stats.errors += 1
                self.logger.error("Could not watch %s: %s", root, e)

        self.stats.watches_active = len(self.registry)

    def _handle_result(self, result: PollResult) -> None:
        """Log a delivered result and update stats."""
        if not result.ok:
            self.stats.errors += 1
            self.logger.error("Polling %s failed: %s", result.root, result.error)
            return

        self.stats.cycles_reported += 1
        self.stats.files_reported += len(result.files)
        self.logger.info("%d new or modified files in %s", len(result.files), result.root)
        for path in result.files:
            self.logger.info("  %s", path)

    async def run_once(self) -> dict[str, list[str]]:
        """Scan every configured directory once, without seeding.

        Returns:
            Matching files per absolute root.

        """
        scanner = Scanner(ModTimeStore(), self.settings.max_concurrency)
        found: dict[str, list[str]] = {}

        for watch_settings in self.settings.watches:
            root = os.path.abspath(watch_settings.path)
            try:
                files = await scanner.scan(root, watch_settings.extension)
                found[root] = await sort_files(files, watch_settings.sort)
            except OperationalError as e:
                self.stats.errors += 1
                self.logger.warning("Skipping %s: %s", root, e)

        return found

    async def run_daemon(self) -> None:
        """Run the daemon continuously."""
        self._running = True
        self.logger.info("Starting simplepoll daemon...")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            await self._start_watches()
            if not self.registry:
                self.logger.warning("No directories are being watched")

            while self._running:
                if result := await self.results.get(timeout=0.5):
                    self._handle_result(result)

        except asyncio.CancelledError:
            self.logger.info("Daemon cancelled")
            raise
        finally:
            self.registry.destroy_all()
            if dropped := self.results.qsize():
                self.logger.debug("Discarding %d undelivered results", dropped)
                self.results.clear()
            self.logger.info(
                "Daemon stopped. Stats: watches=%d, cycles=%d, files=%d, errors=%d",
                self.stats.watches_active,
                self.stats.cycles_reported,
                self.stats.files_reported,
                self.stats.errors,
            )

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        self.logger.info("Shutdown signal received")
        self._running = False

    def stop(self) -> None:
        """Stop the daemon."""
        self._running = False
