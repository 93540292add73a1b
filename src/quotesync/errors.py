"""
Error taxonomy for quotesync.

Every failure the sync core can surface derives from QuoteSyncError
so callers at the edge (CLI, listeners) can catch one base class.
"""

from __future__ import annotations

from typing import Any, Optional


class QuoteSyncError(Exception):
    """Base class for every quotesync failure."""


class RemoteUnavailable(QuoteSyncError):
    """Raised when the remote source cannot be reached or answers non-2xx.

    Attributes:
        status_code: HTTP status when the server did answer, else None.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedRemoteRecord(QuoteSyncError):
    """Raised for a single remote item that lacks the required fields."""

    def __init__(self, message: str, item: Any = None):
        super().__init__(message)
        self.item = item


class MalformedImport(QuoteSyncError):
    """Raised when bulk import data is not a list of well-formed quotes.

    Attributes:
        index: Position of the first offending item, or None when the
            payload itself is not a list.
    """

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class PersistenceError(QuoteSyncError):
    """Raised when writing to durable storage fails.

    The in-memory collection has already been mutated when this is
    raised. ``report`` carries the bulk report of the mutation, if any.
    """

    def __init__(self, message: str, report: Any = None):
        super().__init__(message)
        self.report = report


class NoBackupAvailable(QuoteSyncError):
    """Raised when undo is requested before any sync pass has run."""


class ReentrantSyncRejected(QuoteSyncError):
    """Signals that a sync pass is already in progress."""
