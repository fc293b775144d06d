"""
Session log discovery for the GTFO user data folder.

The game writes one text log per play session, named with the session's
start time::

    GTFO.2023.12.22.00.25.30_NoName_CLIENT.txt
    GTFO.2023.12.22.00.25.30_NoName_MASTER.txt
    GTFO.2023.12.22.00.25.30_NICKNAME_NETSTATUS.txt

Older installs (and the Linux player) may only have ``Player.log``.

Design Decisions:
    - The newest session log wins; its contents include the game's own
      summary of everything read so far.
    - Files with impossible timestamps are skipped, never fatal.
    - ``Player.log`` is only used when no session log exists.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from .base import LogSourceError

logger = logging.getLogger(__name__)

# Whole file name of a session log; group 1 is the dotted timestamp
SESSION_LOG_PATTERN = re.compile(r"GTFO\.(\d{4}(?:\.\d{2}){5})_.*\.txt")

# Looser check used by the live watcher: prefix + full timestamp anywhere
LIVE_LOG_PATTERN = re.compile(r"GTFO\.\d{4}(?:\.\d{2}){5}_")

FALLBACK_LOG_NAME = "Player.log"


class SessionLogCandidate(NamedTuple):
    path: Path
    timestamp: datetime


def parse_file_name(path: Path) -> datetime | None:
    """
    Parse the session start time embedded in a session log's file name.

    Args:
        path: Path (or bare file name) of a candidate log file.

    Returns:
        The timestamp, or None if the name does not match or encodes an
        impossible date/time.

    Example:
        >>> parse_file_name(Path("GTFO.2023.12.22.00.25.30_NoName_CLIENT.txt"))
        datetime.datetime(2023, 12, 22, 0, 25, 30)
    """
    match = SESSION_LOG_PATTERN.fullmatch(Path(path).name)
    if not match:
        return None

    year, month, day, hour, minute, second = (int(p) for p in match.group(1).split("."))
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def is_session_log(file_name: str) -> bool:
    """Whether the live watcher should scan ``file_name`` for new reads."""
    return LIVE_LOG_PATTERN.search(file_name) is not None


def find_candidates(log_dir: Path) -> list[SessionLogCandidate]:
    """List the session logs in ``log_dir`` that carry a valid timestamp.

    Raises:
        LogSourceError: If the directory cannot be listed.
    """
    try:
        entries = list(log_dir.iterdir())
    except OSError as e:
        raise LogSourceError(f"Couldn't read directory '{log_dir}': {e}") from None

    candidates = []
    for entry in entries:
        timestamp = parse_file_name(entry)
        if timestamp is not None:
            candidates.append(SessionLogCandidate(entry, timestamp))
    return candidates


def select_log_file(log_dir: Path) -> Path:
    """
    Pick the log file holding the player's most recent progress.

    The session log with the latest embedded timestamp is chosen. When two
    files share a timestamp the first one listed wins. Without any session
    log, ``Player.log`` in the same directory is used if present.

    Args:
        log_dir: GTFO user data directory.

    Returns:
        Path to the selected log file.

    Raises:
        LogSourceError: If the directory is unreadable or holds no log source.
    """
    log_dir = Path(log_dir)
    candidates = find_candidates(log_dir)

    if candidates:
        newest = max(candidates, key=lambda c: c.timestamp)
        logger.debug(
            "Selected %s out of %d session logs", newest.path.name, len(candidates)
        )
        return newest.path

    player_log = log_dir / FALLBACK_LOG_NAME
    if player_log.exists():
        logger.debug("No session logs found, using %s", player_log)
        return player_log

    raise LogSourceError(
        f"Couldn't find any CLIENT/MASTER.txt files or {FALLBACK_LOG_NAME} in '{log_dir}'"
    )
