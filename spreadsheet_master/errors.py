"""Exception hierarchy shared by every spreadsheet-master module."""
from __future__ import annotations

__all__ = [
    "AuthenticationError",
    "BackupError",
    "CollectionNotFoundError",
    "MergeError",
    "RemoteServiceError",
    "SchemaError",
    "SpreadsheetMasterError",
    "WorksheetNotFoundError",
]


class SpreadsheetMasterError(RuntimeError):
    """Base error raised by spreadsheet-master."""


class AuthenticationError(SpreadsheetMasterError):
    """Raised when the signing key cannot be loaded or the token exchange fails."""


class MergeError(SpreadsheetMasterError):
    """Raised when two worksheets cannot be merged."""


class BackupError(SpreadsheetMasterError):
    """Raised when a backup left stale keys in the duplicated index."""


class SchemaError(SpreadsheetMasterError):
    """Raised when a row is accessed through a column missing from its header."""


class RemoteServiceError(SpreadsheetMasterError):
    """Raised when the Google API returns an error response."""


class WorksheetNotFoundError(RemoteServiceError):
    """Raised when a spreadsheet has no worksheet with the requested title."""


class CollectionNotFoundError(RemoteServiceError):
    """Raised when a collection URL does not resolve to a Drive folder."""
