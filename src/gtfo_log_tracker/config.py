"""
Tracker configuration.

Settings come from environment variables, optionally loaded from a ``.env``
file, and can be overridden by command line options:

    GTFO_DATA_PATH        GTFO user data folder (auto-detected if unset)
    GTFO_USE_PLAYFAB      read progress from PlayFab first (1/true/yes/on)
    GTFO_STEAM_TICKET     hex Steam auth session ticket for PlayFab login
    GTFO_CATALOG_PATH     story log catalog replacing the bundled one
    GTFO_REMOTE_TIMEOUT   seconds per PlayFab round trip
    GTFO_REMOTE_RETRIES   extra attempts per PlayFab round trip
    GTFO_LOG_FILE         diagnostic log file
    GTFO_LOG_LEVEL        diagnostic log level
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .base import ConfigurationError
from .steam import find_proton_app_data_path

logger = logging.getLogger(__name__)

GTFO_APP_DATA_SUBDIR = Path("LocalLow") / "10 Chambers Collective" / "GTFO"

TRUTHY = {"1", "true", "yes", "on"}


class TrackerConfig(BaseModel):
    """Runtime options for the log tracker."""

    data_path: Path | None = Field(default=None, description="GTFO user data folder")
    use_playfab: bool = Field(default=False, description="Try PlayFab before local logs")
    steam_ticket: str | None = Field(
        default=None, repr=False, description="Hex Steam auth session ticket"
    )
    catalog_path: Path | None = Field(default=None, description="Replacement story log catalog")
    remote_timeout: float = Field(default=10.0, gt=0, description="Seconds per PlayFab round trip")
    remote_retries: int = Field(default=2, ge=0, description="Extra attempts per round trip")
    log_file: Path | None = Field(default=None, description="Diagnostic log file")
    log_level: str = Field(default="DEBUG", description="Diagnostic log level")

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> TrackerConfig:
        """
        Build a configuration from the environment.

        Args:
            env_file: Explicit ``.env`` file; by default one is searched for
                from the working directory upwards.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
        if not dotenv_path or not load_dotenv(dotenv_path):
            logger.debug("No .env file loaded, using process environment only")

        values: dict[str, object] = {}
        for field_name, var in (
            ("data_path", "GTFO_DATA_PATH"),
            ("steam_ticket", "GTFO_STEAM_TICKET"),
            ("catalog_path", "GTFO_CATALOG_PATH"),
            ("remote_timeout", "GTFO_REMOTE_TIMEOUT"),
            ("remote_retries", "GTFO_REMOTE_RETRIES"),
            ("log_file", "GTFO_LOG_FILE"),
            ("log_level", "GTFO_LOG_LEVEL"),
        ):
            value = os.getenv(var)
            if value:
                values[field_name] = value

        playfab = os.getenv("GTFO_USE_PLAYFAB")
        if playfab is not None:
            values["use_playfab"] = playfab.strip().lower() in TRUTHY

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from None

    def resolve_data_path(self) -> Path:
        """The configured data path, or the auto-detected one.

        Raises:
            ConfigurationError: If no data path is configured or found.
        """
        if self.data_path is not None:
            return self.data_path
        return find_user_data_path()


def find_user_data_path() -> Path:
    """
    Locate the GTFO user data folder holding the session logs.

    Windows uses ``%USERPROFILE%\\AppData\\LocalLow``; on Linux the game runs
    under Proton, so the folder lives inside the Steam compatibility prefix.

    Raises:
        ConfigurationError: If the folder cannot be found.
    """
    app_data: Path | None
    if sys.platform == "win32":
        profile = os.environ.get("USERPROFILE")
        app_data = Path(profile) / "AppData" if profile else None
    else:
        app_data = find_proton_app_data_path()

    if app_data is not None:
        path = app_data / GTFO_APP_DATA_SUBDIR
        if path.is_dir():
            logger.debug("Using GTFO user data path %s", path)
            return path

    raise ConfigurationError(
        "Couldn't get GTFO user data path. Pass --data-path or set GTFO_DATA_PATH."
    )


def default_log_file() -> Path:
    """Diagnostic log location: the platform state/local data directory."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        base = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base) / "gtfo-log-tracker" / "log.txt"
