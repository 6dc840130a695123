"""Error types raised and delivered by directory watches."""

from __future__ import annotations


class SimplePollError(Exception):
    """Base class for all simplepoll errors."""


class ConfigurationError(SimplePollError, ValueError):
    """A watch or settings object is missing a required value."""


class InitializationError(SimplePollError):
    """The startup seeding scan of a watch failed.

    Raised out of ``Watch.initialize`` and never delivered to the result
    callback, since the watch never reached a usable state.
    """


class OperationalError(SimplePollError):
    """A single poll cycle failed. The watch keeps polling afterwards."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class PathNotFoundError(OperationalError):
    """A listed or stat'ed path does not exist. Never delivered to callbacks."""


class OperationalIOError(OperationalError):
    """Any listing or stat failure other than a missing path."""


class SortError(OperationalError):
    """A sort routine raised or returned something other than a permutation."""


def wrap_os_error(error: OSError, path: str) -> OperationalError:
    """Map an ``OSError`` onto the operational error taxonomy.

    Only ``FileNotFoundError`` becomes ``PathNotFoundError``; permission
    problems and everything else are reported as ``OperationalIOError``.
    """
    message = f"{error.strerror or error}: {path}"
    if isinstance(error, FileNotFoundError):
        return PathNotFoundError(message, path)
    return OperationalIOError(message, path)
