"""Polling watch over a single directory tree."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .errors import ConfigurationError, InitializationError, OperationalError, PathNotFoundError, SimplePollError
from .scanner import Scanner
from .sorter import sort_files
from .store import DEFAULT_STORE

if TYPE_CHECKING:
    from .config import WatchConfig
    from .store import ModTimeStore


class WatchState(Enum):
    """Lifecycle state of a watch."""

    INITIALIZING = "initializing"  # Startup seeding scan not finished
    IDLE = "idle"  # No timer pending
    SCHEDULED = "scheduled"  # Timer pending
    SCANNING = "scanning"  # Poll cycle in flight
    STOPPED = "stopped"  # Closed, terminal


@dataclass(frozen=True)
class PollResult:
    """Outcome of one delivered poll cycle."""

    root: str
    error: Exception | None
    files: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when the cycle found files without error."""
        return self.error is None


class ResultQueue:
    """Collects watch results into an awaitable queue of ``PollResult``."""

    def __init__(self, maxsize: int = 0, logger: logging.Logger | None = None) -> None:
        """Initialize the queue.

        Args:
            maxsize: Maximum number of buffered results, 0 for unbounded.
            logger: Logger instance.

        """
        self.logger = logger or logging.getLogger("simplepoll")
        self._results: asyncio.Queue[PollResult] = asyncio.Queue(maxsize=maxsize)

    def callback_for(self, root: str) -> Callable[[Exception | None, list[str]], None]:
        """Build an ``on_result`` callback that enqueues results tagged with ``root``."""

        def on_result(error: Exception | None, files: list[str]) -> None:
            try:
                self._results.put_nowait(PollResult(root=root, error=error, files=list(files)))
            except asyncio.QueueFull:
                self.logger.warning("Result queue full, dropping result for %s", root)

        return on_result

    async def get(self, timeout: float | None = None) -> PollResult | None:
        """Get the next result.

        Args:
            timeout: Maximum time to wait.

        Returns:
            Next result, or None if timeout.

        """
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._results.get(), timeout=timeout)
            return await self._results.get()
        except TimeoutError:
            return None

    def clear(self) -> int:
        """Drop all buffered results.

        Returns:
            Number of results dropped.

        """
        count = 0
        while not self._results.empty():
            try:
                self._results.get_nowait()
                count += 1
            except asyncio.QueueEmpty:
                break
        return count

    def empty(self) -> bool:
        """Check if no results are buffered."""
        return self._results.empty()

    def qsize(self) -> int:
        """Get the number of buffered results."""
        return self._results.qsize()


class Watch:
    """Polls one directory tree and reports new or modified files.

    A watch starts in ``INITIALIZING``: ``initialize()`` seeds the store with
    every file already present so those are never reported. Afterwards each
    timer fire runs one ``poll()`` cycle (list, filter, sort, deliver) and
    re-arms the timer, so at most one cycle is ever in flight.
    """

    def __init__(
        self,
        config: WatchConfig,
        store: ModTimeStore | None = None,
        scanner: Scanner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the watch. Performs no I/O.

        Args:
            config: Watch configuration.
            store: Shared modification time store. Uses the default store if None.
            scanner: Scanner to use. Built from ``store`` if None.
            logger: Logger instance.

        """
        if config is None:
            raise ConfigurationError("Invalid watch configuration")

        self.config = config
        self.root = config.root
        self.store = store if store is not None else DEFAULT_STORE
        self.scanner = scanner or Scanner(self.store, config.max_concurrency)
        self.logger = logger or logging.getLogger("simplepoll")

        self._state = WatchState.INITIALIZING
        self._start_requested = False
        self._closed = False
        self._timer: asyncio.TimerHandle | None = None
        self._poll_task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"Watch({self.root!r}, state={self._state.value})"

    @property
    def state(self) -> WatchState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_scheduled(self) -> bool:
        """Check if a poll timer is pending."""
        return self._timer is not None

    @property
    def is_closed(self) -> bool:
        """Check if the watch was closed or failed to initialize."""
        return self._closed

    async def initialize(self) -> None:
        """Run the startup seeding scan.

        Raises:
            InitializationError: Listing or stat failed, or already initialized.

        """
        if self._state is not WatchState.INITIALIZING:
            raise InitializationError(f"Watch for {self.root} is already initialized")

        try:
            files = await self.scanner.list_files(self.root)
            seeded = await self.scanner.seed(files, self.config.extension)
        except SimplePollError as e:
            self._closed = True
            self._state = WatchState.STOPPED
            raise InitializationError(f"Startup scan of {self.root} failed: {e}") from e

        self.logger.debug("Seeded %d existing files under %s", seeded, self.root)

        if self._closed:
            return

        self._state = WatchState.IDLE
        if self._start_requested:
            self._start_requested = False
            self.start()

    def start(self) -> None:
        """Arm the poll timer. Idempotent."""
        if self._closed:
            self.logger.debug("Ignoring start of closed watch: %s", self.root)
            return

        if self._state is WatchState.INITIALIZING:
            self._start_requested = True
            return

        if self._state in (WatchState.SCHEDULED, WatchState.SCANNING):
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.config.period, self._on_timer)
        self._state = WatchState.SCHEDULED

    def stop(self) -> None:
        """Cancel the pending poll timer. Idempotent.

        A cycle that is already scanning runs to completion and reschedules.
        """
        self._start_requested = False
        if self._timer is None:
            return

        self._timer.cancel()
        self._timer = None
        if self._state is WatchState.SCHEDULED:
            self._state = WatchState.IDLE

    def close(self) -> None:
        """Stop for good. An in-flight cycle still delivers but never reschedules."""
        self.stop()
        self._closed = True
        if self._state is not WatchState.SCANNING:
            self._state = WatchState.STOPPED

    def _on_timer(self) -> None:
        self._timer = None
        self._poll_task = asyncio.get_running_loop().create_task(self.poll())

    async def poll(self) -> None:
        """Run one poll cycle and reschedule."""
        self.stop()
        if self._closed or self._state is WatchState.SCANNING:
            return

        self._state = WatchState.SCANNING
        try:
            error: OperationalError | None = None
            try:
                files = await self.scanner.scan(self.root, self.config.extension)
                files = await sort_files(files, self.config.sort, self.config.sort_fn)
            except OperationalError as e:
                error = e
                files = []

            if isinstance(error, PathNotFoundError):
                # The directory may not exist yet; keep polling until it does
                self.logger.debug("Path not found, retrying next cycle: %s", error.path)
            elif error is not None or files:
                await self._deliver(error, files)
        finally:
            if self._closed:
                self._state = WatchState.STOPPED
            else:
                self._state = WatchState.IDLE
                self.start()

    async def _deliver(self, error: OperationalError | None, files: list[str]) -> None:
        """Invoke the result callback exactly once for this cycle."""
        if error is not None:
            self.logger.warning("Poll of %s failed: %s", self.root, error)
        else:
            self.logger.debug("Found %d new files under %s", len(files), self.root)

        try:
            result = self.config.on_result(error, files)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self.logger.exception("Result callback failed for %s", self.root)
