"""
GTFO Log Tracker - reconstructs which story logs a player has read from
PlayFab user data and the game's session logs, and follows new reads live.
"""

from .base import (
    CatalogError,
    ConfigurationError,
    LogSourceError,
    RemoteFetchError,
    TrackerError,
)
from .catalog import Catalog, load_catalog, resolve_level
from .config import TrackerConfig
from .extraction import DEFAULT_RULES, ExtractionRules
from .logfiles import select_log_file
from .models import GameEvent, LevelSelected, Location, LogRead, StoryLog
from .reconcile import ReconciliationSource, build_initial_state, get_logs
from .watcher import GameLogWatcher, WatchState

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("gtfo-log-tracker")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable

__all__ = [
    "Catalog",
    "CatalogError",
    "ConfigurationError",
    "DEFAULT_RULES",
    "ExtractionRules",
    "GameEvent",
    "GameLogWatcher",
    "LevelSelected",
    "Location",
    "LogRead",
    "LogSourceError",
    "ReconciliationSource",
    "RemoteFetchError",
    "StoryLog",
    "TrackerConfig",
    "TrackerError",
    "WatchState",
    "build_initial_state",
    "get_logs",
    "load_catalog",
    "resolve_level",
    "select_log_file",
]
