"""Index worksheet helpers.

An index worksheet maps a logical sheet name to the key of the spreadsheet
holding it, one ``sheetname``/``key`` pair per row.
"""
from __future__ import annotations

import logging
from typing import Dict, List

from spreadsheet_master.settings import INDEX_WS_TITLE_DEFAULT

logger = logging.getLogger(__name__)

SHEETNAME_COLUMN = "sheetname"
KEY_COLUMN = "key"


class IndexRow:
    """Read ``sheetname`` and read/write ``key`` on an index worksheet row."""

    __slots__ = ("row",)

    def __init__(self, row) -> None:
        self.row = row

    def __repr__(self) -> str:
        return f"IndexRow(sheetname={self.sheetname!r}, key={self.key!r})"

    @property
    def sheetname(self) -> str:
        return str(self.row.get(SHEETNAME_COLUMN))

    @property
    def key(self) -> str:
        return str(self.row.get(KEY_COLUMN))

    @key.setter
    def key(self, value: str) -> None:
        self.row.set(KEY_COLUMN, value)


def index_worksheet(session, spreadsheet_key: str, title: str = INDEX_WS_TITLE_DEFAULT):
    return session.spreadsheet_by_key(spreadsheet_key).worksheet_by_title(title)


def index_rows(worksheet) -> List[IndexRow]:
    return [IndexRow(row) for row in worksheet.populated_rows()]


def referenced_keys(worksheet) -> List[str]:
    """Return the distinct non-blank keys of ``worksheet`` in first-seen order."""

    keys: Dict[str, None] = {}
    for row in index_rows(worksheet):
        key = row.key
        if not key.strip():
            logger.warning("index row %r has no key", row.sheetname)
            continue
        keys.setdefault(key, None)
    return list(keys)


def first_by_sheetname(rows: List[IndexRow]) -> Dict[str, IndexRow]:
    """Map each sheet name to the first row carrying it."""

    mapping: Dict[str, IndexRow] = {}
    for row in rows:
        mapping.setdefault(row.sheetname, row)
    return mapping


__all__ = [
    "IndexRow",
    "KEY_COLUMN",
    "SHEETNAME_COLUMN",
    "first_by_sheetname",
    "index_rows",
    "index_worksheet",
    "referenced_keys",
]
