"""Exception types raised by the monitoring pipeline."""

from __future__ import annotations

from typing import Optional


class WatcherError(Exception):
    """Base class for fatal run errors."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error
        self.summary = None


class FetchError(WatcherError):
    """The portal could not be fetched or its response was not understood."""


class StoreError(WatcherError):
    """The history file could not be read, parsed, or written."""


class DispatchError(WatcherError):
    """The notification could not be delivered."""
