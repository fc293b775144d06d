"""
Initial read-state reconciliation.

Builds the set of story logs the player has already read, once, before the
live watcher starts. Two sources are available:

- REMOTE: PlayFab user data (authoritative, but needs Steam and network).
- LOCAL: the newest session log in the GTFO user data folder.

The source is chosen once per run. A remote failure is never fatal: it is
logged and the local source is used instead. Only a failure of the local
source stops initialisation.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from .base import LogSourceError, RemoteFetchError
from .catalog import Catalog, load_catalog
from .config import TrackerConfig
from .extraction import DEFAULT_RULES, ExtractionRules, parse_read_ids, read_lines
from .logfiles import select_log_file
from .playfab import DEFAULT_RETRIES, DEFAULT_TIMEOUT, fetch_read_ids
from .steam import AuthTicketProvider, StaticTicketProvider

logger = logging.getLogger(__name__)


class ReconciliationSource(str, Enum):
    """Where the initial read-id set comes from."""

    REMOTE = "remote"
    LOCAL = "local"


def read_ids_from_log_dir(
    log_dir: Path,
    catalog: Catalog,
    rules: ExtractionRules = DEFAULT_RULES,
) -> set[int]:
    """
    Reconstruct read ids from the newest local session log.

    Args:
        log_dir: GTFO user data directory.
        catalog: Catalog used to resolve in-game display names.
        rules: Compiled pattern rules.

    Returns:
        Set of read log ids.

    Raises:
        LogSourceError: If no log file can be selected or opened.
    """
    logger.debug("Getting log ids from local user data folder")
    log_path = select_log_file(log_dir)

    try:
        lines = read_lines(log_path)
    except OSError as e:
        raise LogSourceError(f"Couldn't open file '{log_path}': {e}") from None

    read_ids = set(parse_read_ids(lines, catalog, rules))
    logger.info("%d Read logs: %s", len(read_ids), sorted(read_ids))
    return read_ids


async def build_initial_state(
    log_dir: Path,
    catalog: Catalog,
    use_remote: bool,
    *,
    ticket_provider: AuthTicketProvider | None = None,
    rules: ExtractionRules = DEFAULT_RULES,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
) -> set[int]:
    """
    Compute the read-id set the tracker starts from.

    Args:
        log_dir: GTFO user data directory (local source and fallback).
        catalog: Catalog used to resolve in-game display names.
        use_remote: Try PlayFab first.
        ticket_provider: Steam ticket source for the remote fetch.
        rules: Compiled pattern rules for the local source.
        timeout: Seconds allowed for each PlayFab round trip.
        retries: Extra attempts per PlayFab round trip.

    Returns:
        Set of read log ids.

    Raises:
        LogSourceError: If the local source is needed and fails.
    """
    source = ReconciliationSource.REMOTE if use_remote else ReconciliationSource.LOCAL

    if source is ReconciliationSource.REMOTE:
        logger.debug("Getting log ids from PlayFab")
        provider = ticket_provider if ticket_provider is not None else StaticTicketProvider(None)
        try:
            return await fetch_read_ids(provider, timeout=timeout, retries=retries)
        except RemoteFetchError as e:
            logger.warning(
                "Unable to read log data from PlayFab: %s. Falling back to parsing log files.", e
            )

    return read_ids_from_log_dir(log_dir, catalog, rules)


async def get_logs(
    config: TrackerConfig,
    *,
    ticket_provider: AuthTicketProvider | None = None,
) -> tuple[Catalog, set[int]]:
    """
    Load the catalog and the initial read-id set described by ``config``.

    Raises:
        ConfigurationError: If no GTFO data path can be determined.
        CatalogError: If the catalog cannot be loaded.
        LogSourceError: If the local source is needed and fails.
    """
    catalog = load_catalog(config.catalog_path)
    log_dir = config.resolve_data_path()

    if ticket_provider is None:
        ticket_provider = StaticTicketProvider(config.steam_ticket)

    read_ids = await build_initial_state(
        log_dir,
        catalog,
        config.use_playfab,
        ticket_provider=ticket_provider,
        timeout=config.remote_timeout,
        retries=config.remote_retries,
    )
    return catalog, read_ids
