"""Configuration for directory watches and the polling daemon."""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

ResultCallback = Callable[[Exception | None, list[str]], Awaitable[None] | None]
SortFn = Callable[[list[str]], Awaitable[list[str]] | list[str]]

DEFAULT_PERIOD = 1.0
DEFAULT_MAX_CONCURRENCY = 10

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML/env style boolean.

    Args:
        value: Raw value (bool, int, str or None).
        default: Value returned for None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


@dataclass(frozen=True)
class WatchConfig:
    """Immutable configuration of a single directory watch."""

    root_path: str | Path
    on_result: ResultCallback
    extension: str | None = None
    period: float = DEFAULT_PERIOD
    sort: bool = False
    sort_fn: SortFn | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        if not self.root_path:
            raise ConfigurationError("Invalid watch configuration: root_path is required")
        if self.on_result is None:
            raise ConfigurationError("Invalid watch configuration: on_result is required")
        if self.period <= 0:
            raise ConfigurationError(f"Invalid watch configuration: period must be positive, got {self.period}")
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"Invalid watch configuration: max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        # An empty suffix would match everything; treat it as "no filter".
        if self.extension == "":
            object.__setattr__(self, "extension", None)

    @property
    def root(self) -> str:
        """Absolute form of ``root_path``, used as the prefix of every reported path."""
        return os.path.abspath(os.path.expanduser(os.fspath(self.root_path)))


@dataclass
class WatchSettings:
    """One ``watches:`` entry of the daemon configuration file."""

    path: Path
    extension: str | None = None
    period: float = DEFAULT_PERIOD
    sort: bool = False

    def to_watch_config(
        self,
        on_result: ResultCallback,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> WatchConfig:
        """Build the runtime config for this entry.

        Args:
            on_result: Callback receiving ``(error, files)``.
            max_concurrency: Bound on concurrent stat calls.

        Returns:
            Watch configuration.

        """
        return WatchConfig(
            root_path=self.path,
            on_result=on_result,
            extension=self.extension,
            period=self.period,
            sort=self.sort,
            max_concurrency=max_concurrency,
        )


@dataclass
class PollerSettings:
    """Configuration for the polling daemon."""

    # Directories to poll
    watches: list[WatchSettings] = field(default_factory=list)

    # Upper bound on in-flight stat calls per poll cycle
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    # Logging
    log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/state/simplepoll/simplepoll.log"
    )
    log_level: str = "INFO"

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/simplepoll/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> PollerSettings:
        """Load settings from a YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded settings, or defaults if the file does not exist.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> PollerSettings:
        """Create settings from a dictionary."""
        settings = cls()

        if "watches" in data:
            settings.watches = [cls._watch_from_dict(entry) for entry in data["watches"] or []]

        if "max_concurrency" in data:
            settings.max_concurrency = int(data["max_concurrency"])
            if settings.max_concurrency < 1:
                raise ConfigurationError("max_concurrency must be at least 1")

        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "file" in logging_cfg:
                settings.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                settings.log_level = str(logging_cfg["level"]).upper()

        return settings

    @staticmethod
    def _watch_from_dict(entry: dict[str, Any]) -> WatchSettings:
        """Parse a single ``watches:`` entry."""
        if not isinstance(entry, dict) or not entry.get("path"):
            raise ConfigurationError(f"Watch entry requires a path: {entry!r}")

        period = float(entry.get("period", DEFAULT_PERIOD))
        if period <= 0:
            raise ConfigurationError(f"period must be positive: {entry!r}")

        return WatchSettings(
            path=Path(os.path.expanduser(entry["path"])),
            extension=entry.get("extension") or None,
            period=period,
            sort=parse_bool(entry.get("sort"), False),
        )

    def save(self, config_path: Path | None = None) -> None:
        """Save settings to a YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "watches": [
                {
                    "path": str(w.path),
                    "extension": w.extension,
                    "period": w.period,
                    "sort": w.sort,
                }
                for w in self.watches
            ],
            "max_concurrency": self.max_concurrency,
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
