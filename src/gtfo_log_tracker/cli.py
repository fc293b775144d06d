"""
Command line entry point for the GTFO log tracker.

Usage:
    gtfo-log-tracker --data-path "<GTFO user data folder>" [--playfab] [--once]

Prints how many story logs have been read, then follows the game's session
logs and prints every newly read log and selected expedition until
interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import platform
import sys
from collections.abc import Callable
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from .base import TrackerError
from .config import TrackerConfig, default_log_file
from .models import LevelSelected, LogRead
from .reconcile import get_logs
from .watcher import GameLogWatcher, WatchState

logger = logging.getLogger("gtfo_log_tracker")


def _package_version() -> str:
    try:
        return version("gtfo-log-tracker")
    except PackageNotFoundError:
        return "0.0.0"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="gtfo-log-tracker",
        description="Track which GTFO story logs you have read.",
    )
    parser.add_argument(
        "--data-path",
        type=Path,
        help="GTFO user data folder holding the session logs (auto-detected by default)",
    )
    parser.add_argument(
        "--playfab",
        action="store_true",
        default=None,
        help="Read progress from PlayFab first, falling back to local logs",
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        help="Full story log catalog JSON file (the bundled one is only a sample)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print the current progress and exit without watching",
    )
    parser.add_argument("--log-file", type=Path, help="Diagnostic log file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug output on the terminal"
    )
    return parser.parse_args(argv)


def setup_logging(log_file: Path, level: str, verbose: bool = False) -> None:
    """Log to the terminal and to ``log_file``."""
    file_level = logging.getLevelName(level.upper())
    if not isinstance(file_level, int):
        file_level = logging.DEBUG

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handlers: list[logging.Handler] = [console]

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    except OSError as e:
        print(f"Couldn't create log file '{log_file}': {e}", file=sys.stderr)
    else:
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers)
    # Transport internals are noise next to the tracker's own diagnostics
    for name in ("httpcore", "watchdog"):
        logging.getLogger(name).setLevel(logging.WARNING)


async def track(
    config: TrackerConfig,
    *,
    once: bool = False,
    out: Callable[[str], None] = print,
) -> int:
    """
    Reconcile the initial progress, then follow live events.

    Returns:
        Process exit status.

    Raises:
        TrackerError: If initialisation fails.
    """
    log_dir = config.resolve_data_path()
    catalog, read_ids = await get_logs(config.model_copy(update={"data_path": log_dir}))

    total = len(catalog)
    out(f"Read logs: {len(read_ids & catalog.ids())} / {total}")
    if once:
        return 0

    watcher = GameLogWatcher(log_dir, catalog, known_ids=read_ids)
    async for event in watcher.events():
        if isinstance(event, LogRead):
            read_ids.add(event.id)
            out(f"Log read: {event.id} ({len(read_ids & catalog.ids())} / {total})")
        elif isinstance(event, LevelSelected):
            out(f"Level selected: {event.code}")

    return 1 if watcher.state is WatchState.FAILED else 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = TrackerConfig.from_env()
    except TrackerError as e:
        print(e, file=sys.stderr)
        return 1

    overrides: dict[str, object] = {}
    if args.data_path is not None:
        overrides["data_path"] = args.data_path
    if args.playfab:
        overrides["use_playfab"] = True
    if args.catalog is not None:
        overrides["catalog_path"] = args.catalog
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    config = config.model_copy(update=overrides)

    setup_logging(config.log_file or default_log_file(), config.log_level, args.verbose)
    logger.info("GTFO Log Tracker - v%s", _package_version())
    logger.debug("Args: %s | OS: %s", " ".join(sys.argv), platform.system())
    logger.debug("%r", config)

    try:
        return asyncio.run(track(config, once=args.once))
    except TrackerError as e:
        logger.error("Error: %s", e)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
