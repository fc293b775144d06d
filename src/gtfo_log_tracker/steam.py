"""
Steam integration: authentication tickets and library discovery.

Steam session tickets come from the Steamworks SDK, which is not available
to Python directly. The tracker therefore depends only on the SDK's
contract, expressed as ``AuthTicketProvider``: acquire an opaque ticket,
and cancel it once it is no longer needed.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .base import RemoteFetchError

logger = logging.getLogger(__name__)

GTFO_APP_ID = 493520

# Relative to $HOME
STEAM_LIBRARY_DIRS = (".steam/steam/steamapps/", ".local/share/Steam/steamapps/")


@dataclass(frozen=True)
class AuthTicket:
    """An acquired Steam authentication session ticket."""

    handle: int
    data: bytes


class AuthTicketProvider(Protocol):
    """Source of Steam authentication session tickets."""

    def acquire(self) -> AuthTicket:
        """Return a new ticket. May raise ``RemoteFetchError``."""
        ...

    def cancel(self, ticket: AuthTicket) -> None:
        """Release a ticket returned by ``acquire``."""
        ...


class StaticTicketProvider:
    """Hands out a pre-issued ticket supplied as a hex string.

    Used when the ticket is obtained outside the tracker, for example by a
    launcher script with access to the Steamworks SDK.
    """

    def __init__(self, ticket_hex: str | None) -> None:
        self._ticket_hex = ticket_hex
        self._next_handle = 1
        self.cancelled: list[int] = []

    def acquire(self) -> AuthTicket:
        if not self._ticket_hex:
            raise RemoteFetchError("Failed to init Steam - no auth session ticket configured")
        try:
            data = bytes.fromhex(self._ticket_hex.strip())
        except ValueError:
            raise RemoteFetchError("Failed to init Steam - auth session ticket is not valid hex") from None

        ticket = AuthTicket(handle=self._next_handle, data=data)
        self._next_handle += 1
        return ticket

    def cancel(self, ticket: AuthTicket) -> None:
        self.cancelled.append(ticket.handle)


def parse_library_path(app_id: int, lines: Iterable[str]) -> Path | None:
    """
    Find the Steam library folder that has ``app_id`` installed.

    ``libraryfolders.vdf`` lists each library's ``"path"`` followed by the
    ids of the apps installed in it; the owning library is the last path
    seen before the app id.

    Args:
        app_id: Steam app id to look for.
        lines: Lines of ``libraryfolders.vdf``.

    Returns:
        The library root, or None if the app is not listed.
    """
    app_key = f'"{app_id}"'
    last_seen_path: Path | None = None

    for line in lines:
        trimmed = line.strip()
        if trimmed.startswith('"path"'):
            parts = trimmed.split('"')
            # '"path"\t\t"/a/path"' -> ['', 'path', '\t\t', '/a/path', '']
            if len(parts) >= 4:
                last_seen_path = Path(parts[3])
        elif trimmed.startswith(app_key):
            return last_seen_path

    return None


def find_proton_app_data_path(home: Path | None = None) -> Path | None:
    """Locate GTFO's ``AppData`` folder inside its Proton prefix."""
    if home is None:
        env_home = os.environ.get("HOME")
        if not env_home:
            return None
        home = Path(env_home)

    for library_dir in STEAM_LIBRARY_DIRS:
        vdf = home / library_dir / "libraryfolders.vdf"
        try:
            with vdf.open("r", encoding="utf-8", errors="replace") as f:
                library = parse_library_path(GTFO_APP_ID, f.read().splitlines())
        except OSError:
            continue

        if library is not None:
            logger.debug("Found GTFO in Steam library %s", library)
            return (
                library
                / "steamapps/compatdata"
                / str(GTFO_APP_ID)
                / "pfx/drive_c/users/steamuser/AppData"
            )

    return None
