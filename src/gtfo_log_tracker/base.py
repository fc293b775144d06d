"""
Exceptions shared across the log tracker.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error raised by the log tracker."""


class ConfigurationError(TrackerError):
    """Raised when the tracker cannot be configured (e.g. no GTFO data path)."""


class CatalogError(TrackerError):
    """Raised when the story log catalog cannot be loaded or validated."""


class LogSourceError(TrackerError):
    """Raised when no usable local log source can be found or opened.

    This is the only fatal error during initial reconciliation: the local
    log directory is the last fallback.
    """


class RemoteFetchError(TrackerError):
    """Raised when read logs cannot be fetched from PlayFab.

    Always recoverable: callers fall back to parsing local log files.
    """
