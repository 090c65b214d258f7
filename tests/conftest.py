from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spreadsheet_master.errors import RemoteServiceError, WorksheetNotFoundError
from spreadsheet_master.sheets_client import Row


class FakeWorksheet:
    """In-memory worksheet honouring the remote worksheet contract."""

    def __init__(self, spreadsheet: "FakeSpreadsheet", title: str, header: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.spreadsheet = spreadsheet
        self.title = title
        self._header = list(header)
        self._rows: List[Row] = [
            Row(self._header, row, row_number=number) for number, row in enumerate(rows, start=2)
        ]
        self.save_count = 0

    @property
    def header(self) -> List[str]:
        return list(self._header)

    def populated_rows(self) -> List[Row]:
        return [row for row in self._rows if row.is_populated()]

    def append_row(self) -> Row:
        row = Row(self._header, row_number=len(self._rows) + 2)
        self._rows.append(row)
        return row

    def save(self) -> None:
        self.save_count += 1
        for row in self._rows:
            row.dirty = False

    def replace_row(self, position: int, row: Row) -> None:
        self._rows[position] = row

    def records(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self.populated_rows()]

    def raw_rows(self) -> List[List[Any]]:
        return [row.values() for row in self._rows]


class FakeSpreadsheet:
    def __init__(self, session: "FakeSession", key: str, title: str) -> None:
        self.session = session
        self.key = key
        self.title = title
        self.worksheets: Dict[str, FakeWorksheet] = {}

    def add_worksheet(self, title: str, header: Sequence[str], rows: Sequence[Sequence[Any]] = ()) -> FakeWorksheet:
        worksheet = FakeWorksheet(self, title, header, rows)
        self.worksheets[title] = worksheet
        return worksheet

    def worksheet_by_title(self, title: str) -> FakeWorksheet:
        try:
            return self.worksheets[title]
        except KeyError:
            raise WorksheetNotFoundError(f"{self.key} has no worksheet {title}") from None

    def duplicate(self, new_title: Optional[str] = None) -> "FakeSpreadsheet":
        return self.session.copy_spreadsheet(self, new_title if new_title is not None else self.title)


class FakeCollection:
    def __init__(self, collection_id: str, title: str) -> None:
        self.id = collection_id
        self.title = title
        self.members: List[str] = []
        self.subcollections: List["FakeCollection"] = []
        self.deleted = False

    def create_subcollection(self, name: str) -> "FakeCollection":
        child = FakeCollection(f"{self.id}/{name}-{len(self.subcollections) + 1}", name)
        self.subcollections.append(child)
        return child

    def add(self, spreadsheet) -> None:
        self.members.append(spreadsheet.key)

    def remove(self, spreadsheet) -> None:
        self.members.remove(spreadsheet.key)

    def delete(self) -> None:
        self.deleted = True


class FakeSession:
    """In-memory stand-in for :class:`spreadsheet_master.sheets_client.Session`."""

    def __init__(self) -> None:
        self.spreadsheets: Dict[str, FakeSpreadsheet] = {}
        self.collections: Dict[str, FakeCollection] = {}
        self.copies: List[Tuple[str, str]] = []
        self.copy_hooks: List[Callable[[FakeSpreadsheet, FakeSpreadsheet], None]] = []

    def add_spreadsheet(
        self,
        key: str,
        title: str,
        worksheets: Optional[Dict[str, Tuple[Sequence[str], Sequence[Sequence[Any]]]]] = None,
    ) -> FakeSpreadsheet:
        spreadsheet = FakeSpreadsheet(self, key, title)
        for ws_title, (header, rows) in (worksheets or {}).items():
            spreadsheet.add_worksheet(ws_title, header, rows)
        self.spreadsheets[key] = spreadsheet
        return spreadsheet

    def add_collection(self, url: str, title: str = "root") -> FakeCollection:
        collection = FakeCollection(url, title)
        self.collections[url] = collection
        return collection

    def spreadsheet_by_key(self, key: str) -> FakeSpreadsheet:
        try:
            return self.spreadsheets[key]
        except KeyError:
            raise RemoteServiceError(f"no spreadsheet {key}") from None

    def collection_by_url(self, url: str) -> FakeCollection:
        try:
            return self.collections[url]
        except KeyError:
            raise RemoteServiceError(f"no collection {url}") from None

    def copy_spreadsheet(self, original: FakeSpreadsheet, title: str) -> FakeSpreadsheet:
        key = f"{original.key}-copy{len(self.copies) + 1}"
        copy = FakeSpreadsheet(self, key, title)
        for ws_title, worksheet in original.worksheets.items():
            copy.add_worksheet(ws_title, worksheet.header, worksheet.raw_rows())
        self.spreadsheets[key] = copy
        self.copies.append((original.key, key))
        for hook in self.copy_hooks:
            hook(original, copy)
        return copy


class FakeProvider:
    def __init__(self, session) -> None:
        self._session = session
        self.session_calls = 0

    def session(self):
        self.session_calls += 1
        return self._session

    def access_token(self) -> str:
        return "fake-token"


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def fake_provider(fake_session: FakeSession) -> FakeProvider:
    return FakeProvider(fake_session)
