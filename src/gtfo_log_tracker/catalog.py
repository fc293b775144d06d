"""
Story log catalog and identifier resolution.

The catalog is a fixed table of every story log in the game, loaded once at
startup from the JSON dataset bundled with the package (or a replacement
file given in configuration). It is never modified after loading.

Two lookups are provided:

- ``resolve_id`` maps an in-game display name (e.g. ``"ANL-SYS-S6L"``)
  to the numeric log id.
- ``resolve_level`` maps the game's encoded expedition token
  (e.g. ``"Local_32,1,0"``) to a readable level code (``"R1A1"``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from importlib import resources
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .base import CatalogError
from .models import StoryLog

logger = logging.getLogger(__name__)

# Expedition area code -> rundown number
RUNDOWN_BY_AREA: dict[str, int] = {
    "Local_32": 1,
    "Local_33": 2,
    "Local_34": 3,
    "Local_37": 4,
    "Local_38": 5,
    "Local_41": 6,
    "Local_31": 7,
    "Local_35": 8,
}

TIER_BY_DIGIT: dict[str, str] = {
    "1": "A",
    "2": "B",
    "3": "C",
    "4": "D",
    "5": "E",
}

_STORY_LOGS = TypeAdapter(list[StoryLog])


class Catalog(Sequence[StoryLog]):
    """Immutable, ordered collection of story logs.

    Iteration order is the order of the source dataset, which makes
    ``resolve_id`` deterministic when a display name appears more than once.
    """

    def __init__(self, logs: Sequence[StoryLog]) -> None:
        self._logs: tuple[StoryLog, ...] = tuple(logs)

    def __getitem__(self, index):  # type: ignore[override]
        return self._logs[index]

    def __len__(self) -> int:
        return len(self._logs)

    def __iter__(self) -> Iterator[StoryLog]:
        return iter(self._logs)

    def __repr__(self) -> str:
        return f"Catalog({len(self._logs)} logs)"

    def resolve_id(self, display_name: str) -> int | None:
        """Return the id of the first log shown in game as ``display_name``."""
        for log in self._logs:
            if log.has_name(display_name):
                return log.id
        return None

    def ids(self) -> set[int]:
        return {log.id for log in self._logs}


def resolve_level(token: str) -> str | None:
    """
    Convert an expedition token into a level code.

    Args:
        token: ``"<AreaCode>,<TierDigit>,<ExpeditionDigit>"`` as written by
            the game, e.g. ``"Local_32,1,0"``.

    Returns:
        The level code (``"R1A1"``), or None when any part is unrecognised.

    Example:
        >>> resolve_level("Local_34,3,1")
        'R3C2'
    """
    parts = token.split(",")
    if len(parts) != 3:
        return None

    area, tier_digit, expedition = parts
    rundown = RUNDOWN_BY_AREA.get(area)
    tier = TIER_BY_DIGIT.get(tier_digit)
    if rundown is None or tier is None or not (expedition.isascii() and expedition.isdigit()):
        return None

    return f"R{rundown}{tier}{int(expedition) + 1}"


def parse_catalog(text: str | bytes) -> Catalog:
    """Validate a JSON array of story logs.

    Raises:
        CatalogError: If the JSON is malformed or entries are invalid.
    """
    try:
        logs = _STORY_LOGS.validate_json(text)
    except ValidationError as e:
        raise CatalogError(f"Invalid story log catalog: {e}") from None
    return Catalog(logs)


def load_catalog(path: Path | None = None) -> Catalog:
    """
    Load the story log catalog.

    The bundled ``data/logs.json`` is only a sample of the game's story
    logs, so totals computed from it are not the real game total. Pass a
    full catalog for real tracking; a warning is logged when the sample
    is used.

    Args:
        path: Optional JSON file replacing the bundled sample.

    Returns:
        The loaded Catalog.

    Raises:
        CatalogError: If the file cannot be read or does not validate.
    """
    try:
        if path is None:
            text = resources.files("gtfo_log_tracker").joinpath("data/logs.json").read_bytes()
            source = "bundled catalog"
        else:
            text = Path(path).read_bytes()
            source = str(path)
    except OSError as e:
        raise CatalogError(f"Failed to read story log catalog: {e}") from None

    catalog = parse_catalog(text)
    logger.info("Total logs: %d (%s)", len(catalog), source)
    if path is None:
        logger.warning(
            "Using the bundled sample catalog (%d logs), not the full game list. "
            "Pass --catalog or set GTFO_CATALOG_PATH for real totals.",
            len(catalog),
        )
    return catalog

