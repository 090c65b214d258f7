"""Merge and back up Google spreadsheets tracked by index worksheets."""

from spreadsheet_master.client import Client
from spreadsheet_master.errors import (
    AuthenticationError,
    BackupError,
    CollectionNotFoundError,
    MergeError,
    RemoteServiceError,
    SchemaError,
    SpreadsheetMasterError,
    WorksheetNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "BackupError",
    "Client",
    "CollectionNotFoundError",
    "MergeError",
    "RemoteServiceError",
    "SchemaError",
    "SpreadsheetMasterError",
    "WorksheetNotFoundError",
    "__version__",
]
