"""Poll directory trees for new or modified files."""

from .config import PollerSettings, WatchConfig, WatchSettings
from .errors import (
    ConfigurationError,
    InitializationError,
    OperationalError,
    OperationalIOError,
    PathNotFoundError,
    SimplePollError,
    SortError,
)
from .registry import WatchRegistry
from .scanner import Scanner
from .sorter import default_sort, sort_files
from .store import DEFAULT_STORE, ModTimeStore
from .watch import PollResult, ResultQueue, Watch, WatchState

__all__ = [
    "DEFAULT_STORE",
    "ConfigurationError",
    "InitializationError",
    "ModTimeStore",
    "OperationalError",
    "OperationalIOError",
    "PathNotFoundError",
    "PollResult",
    "PollerSettings",
    "ResultQueue",
    "Scanner",
    "SimplePollError",
    "SortError",
    "Watch",
    "WatchConfig",
    "WatchRegistry",
    "WatchSettings",
    "WatchState",
    "default_sort",
    "sort_files",
]
