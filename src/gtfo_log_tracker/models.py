"""Data models for story logs and live game events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """A place in an expedition where a story log can be found."""

    model_config = ConfigDict(frozen=True)

    rundown: int = Field(ge=0, le=255, description="Rundown number (1-8)")
    level: str = Field(description="Expedition code within the rundown (e.g. 'A1')")
    zones: tuple[int, ...] = Field(default=(), description="Zone numbers holding the log")
    name: str = Field(description="In-game display name of the log terminal file")


class StoryLog(BaseModel):
    """A catalog entry: one story log and every location it appears in."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, le=0xFFFFFFFF, description="Numeric log id used by the game")
    locations: tuple[Location, ...] = Field(default=())

    def has_name(self, name: str) -> bool:
        """Whether any location of this log is displayed as ``name``."""
        return any(loc.name == name for loc in self.locations)


# ---------------------------------------------------------------------------
# Live events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LogRead:
    """The player opened a story log in game."""

    id: int


@dataclass(frozen=True)
class LevelSelected:
    """The player selected an expedition, e.g. ``"R1A1"``."""

    code: str


GameEvent = Union[LogRead, LevelSelected]
