"""Main entry point for the simplepoll daemon."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import PollerSettings
from .daemon import PollDaemon


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="simplepoll",
        description="Poll directory trees for new or modified files",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command (default)
    run_parser = subparsers.add_parser("run", help="Run the daemon")
    run_parser.add_argument(
        "--once",
        action="store_true",
        help="Scan configured directories once and exit",
    )

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="List matching files in a directory")
    scan_parser.add_argument(
        "--dir",
        "-d",
        type=Path,
        required=True,
        help="Directory to scan",
    )
    scan_parser.add_argument(
        "--ext",
        "-e",
        default=None,
        help="Only list files ending with this suffix",
    )
    scan_parser.add_argument(
        "--sort",
        action="store_true",
        help="Sort paths lexicographically",
    )

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser.parse_args(argv)


def cmd_scan(settings: PollerSettings, args: argparse.Namespace) -> int:
    """Execute scan command.

    Args:
        settings: Daemon settings.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    from .errors import OperationalError
    from .scanner import Scanner
    from .sorter import sort_files
    from .store import ModTimeStore

    console = Console()
    scanner = Scanner(ModTimeStore(), settings.max_concurrency)
    root = str(args.dir.expanduser().absolute())

    async def scan() -> list[str]:
        files = await scanner.scan(root, args.ext)
        return await sort_files(files, args.sort)

    try:
        files = asyncio.run(scan())
    except OperationalError as e:
        console.print(f"[red]Scan failed: {e}[/red]")
        return 1

    if not files:
        console.print("[green]No matching files found[/green]")
        return 0

    table = Table(title=f"Found {len(files)} files")
    table.add_column("File", style="cyan")
    table.add_column("Location", style="dim")

    for path in files:
        table.add_row(Path(path).name, str(Path(path).parent))

    console.print(table)
    return 0


def cmd_config(settings: PollerSettings, args: argparse.Namespace) -> int:
    """Execute config command.

    Args:
        settings: Daemon settings.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    console = Console()

    if args.init:
        config_path = args.config or PollerSettings.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        settings.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row(
            "Watches",
            "\n".join(
                f"{w.path} ({w.extension or 'all files'}, every {w.period}s{', sorted' if w.sort else ''})"
                for w in settings.watches
            ),
        )
        table.add_row("Max concurrency", str(settings.max_concurrency))
        table.add_row("Log file", str(settings.log_file))
        table.add_row("Log level", settings.log_level)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def cmd_run(settings: PollerSettings, args: argparse.Namespace) -> int:
    """Execute run command.

    Args:
        settings: Daemon settings.
        args: Parsed arguments.

    Returns:
        Exit code.

    """
    daemon = PollDaemon(settings)

    if getattr(args, "once", False):
        found = asyncio.run(daemon.run_once())
        for root, files in found.items():
            print(f"{root}: {len(files)} files")
            for path in files:
                print(f"  {path}")
        return 0

    asyncio.run(daemon.run_daemon())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    settings = PollerSettings.load(args.config)

    # Default to run command
    command = args.command or "run"

    if command == "scan":
        return cmd_scan(settings, args)
    elif command == "config":
        return cmd_config(settings, args)
    elif command == "run":
        return cmd_run(settings, args)
    else:
        print(f"Unknown command: {command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
