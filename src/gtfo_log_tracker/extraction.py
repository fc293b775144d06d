"""
Pattern rules that recover story log reads from session log text.

Session logs are free-form diagnostic output. Three rules are applied line
by line, top to bottom:

1. Historical summary - the game periodically writes everything read so
   far::

       Logs Read: 2 / 50 | IDs: [10, 20]

2. Incremental read - a log terminal file name such as ``DEC-8B9-LSI``
   appears when the player opens it. The name is resolved through the
   catalog.

3. Level change (live watching only)::

       ... SelectActiveExpedition ... Local_32,1,0

The rules are compiled once into an ``ExtractionRules`` instance that is
shared by the reconciliation and the live watcher.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .catalog import Catalog, resolve_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionRules:
    """Compiled pattern rules for session log lines.

    Attributes:
        previously_read: Historical summary line; group 1 is the id list.
        ingame_read: In-game display name of a story log.
        level_change: Expedition selection; group 1 is the encoded level.
    """

    previously_read: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"Logs Read: \d+ / \d+ \| IDs: \[([^\]]*)\]\s*$")
    )
    ingame_read: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"([A-Z0-9]{3,4}-[A-Z0-9]{3,6}(?:-[A-Z0-9]{3})?)")
    )
    level_change: re.Pattern[str] = field(
        default_factory=lambda: re.compile(r"SelectActiveExpedition.*(Local_\d+,\d,\d)")
    )

    def summary_ids(self, line: str) -> list[int]:
        """Ids listed in a historical summary line (empty if not one)."""
        match = self.previously_read.search(line)
        if not match:
            return []
        return parse_id_list(match.group(1))

    def read_name(self, line: str) -> str | None:
        """The first story log display name in ``line``, if any."""
        match = self.ingame_read.search(line)
        return match.group(1) if match else None

    def level_token(self, line: str) -> str | None:
        """The encoded expedition of a level selection line, if any."""
        match = self.level_change.search(line)
        return match.group(1) if match else None


DEFAULT_RULES = ExtractionRules()


def parse_id_list(text: str) -> list[int]:
    """
    Parse comma separated ids, dropping anything that is not an unsigned int.

    Example:
        >>> parse_id_list("10, abc, 20")
        [10, 20]
    """
    ids = []
    for token in text.split(","):
        token = token.strip()
        if token.isascii() and token.isdigit():
            ids.append(int(token))
    return ids


def parse_read_ids(
    lines: Iterable[str],
    catalog: Catalog,
    rules: ExtractionRules = DEFAULT_RULES,
) -> list[int]:
    """
    Collect every read log id found in a session log.

    Applies the historical summary and the incremental read rules to each
    line in order. Duplicates are kept; callers fold the result into a set.

    Args:
        lines: Log lines, in file order.
        catalog: Catalog used to resolve in-game display names.
        rules: Compiled pattern rules.

    Returns:
        List of read ids in discovery order.
    """
    read_ids: list[int] = []

    for line in lines:
        read_ids.extend(rules.summary_ids(line))

        name = rules.read_name(line)
        if name is not None:
            log_id = catalog.resolve_id(name)
            if log_id is not None:
                read_ids.append(log_id)

    return read_ids


def latest_data(
    lines: Iterable[str],
    catalog: Catalog,
    rules: ExtractionRules = DEFAULT_RULES,
) -> tuple[int | None, str | None]:
    """Return the last resolved read id and the last selected level in ``lines``."""
    latest_id: int | None = None
    latest_level: str | None = None

    for line in lines:
        name = rules.read_name(line)
        if name is not None:
            log_id = catalog.resolve_id(name)
            if log_id is not None:
                latest_id = log_id

        token = rules.level_token(line)
        if token is not None:
            level = resolve_level(token)
            if level is not None:
                latest_level = level

    return latest_id, latest_level


def read_lines(path: Path) -> list[str]:
    """Read a log file as text lines, replacing undecodable bytes.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with Path(path).open("r", encoding="utf-8", errors="replace") as f:
        return f.read().splitlines()
