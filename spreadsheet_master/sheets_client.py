"""Google Sheets adapters: session, spreadsheets, worksheets and rows.

This module is the only place that talks to the Sheets v4 API. It exposes a
small object model that the merge and backup engines rely on without needing
to know about A1 ranges or ``googleapiclient`` request objects:

* :class:`Session` resolves spreadsheets by key and collections by URL.
* :class:`Spreadsheet` lists worksheets and duplicates itself through Drive.
* :class:`Worksheet` loads its header and rows once, hands out
  :class:`Row` objects that are edited in place, and writes every pending
  change back in :meth:`Worksheet.save`.

Every ``HttpError`` is re-raised as :class:`RemoteServiceError`.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, MutableSequence, Optional, Sequence

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import set_user_agent

from spreadsheet_master import drive_api
from spreadsheet_master.errors import RemoteServiceError, SchemaError, WorksheetNotFoundError
from spreadsheet_master.settings import APPLICATION_NAME

logger = logging.getLogger(__name__)

# Cells are read as their underlying values and written back verbatim, so
# text such as "00123" or "=x" is never re-parsed by the sheet.
VALUE_RENDER_OPTION = "UNFORMATTED_VALUE"
VALUE_INPUT_OPTION = "RAW"

_RANGE_START_ROW = re.compile(r"![A-Z]+(\d+)")


def _execute(request) -> Any:
    try:
        return request.execute()
    except HttpError as exc:
        raise RemoteServiceError(str(exc)) from exc


def _normalise_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").replace("'", "''")
    return f"'{safe}'"


def _column_letter(index: int) -> str:
    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def a1_row_range(title: str, row_index: int, *, columns: int) -> str:
    """Return an A1 range covering ``row_index`` for ``title``."""

    if row_index < 1:
        raise ValueError("Row index must be >= 1")
    last_column = _column_letter(max(1, columns))
    return f"{_normalise_title(title)}!A{row_index}:{last_column}{row_index}"


def _start_row(updated_range: str) -> Optional[int]:
    match = _RANGE_START_ROW.search(updated_range or "")
    return int(match.group(1)) if match else None


def _trim_header(cells: Sequence[Any]) -> List[str]:
    header = [str(cell) for cell in cells]
    while header and not header[-1].strip():
        header.pop()
    return header


class Row:
    """A worksheet row addressed by column name.

    The accessible columns are exactly the worksheet header. Unknown columns
    raise :class:`SchemaError`.
    """

    def __init__(
        self,
        header: Sequence[str],
        values: Sequence[Any] = (),
        *,
        row_number: Optional[int] = None,
    ) -> None:
        self._header = tuple(header)
        self._positions: Dict[str, int] = {}
        for position, column in enumerate(self._header):
            self._positions.setdefault(column, position)
        cells = list(values)[: len(self._header)]
        cells.extend([""] * (len(self._header) - len(cells)))
        self._values = cells
        self.row_number = row_number
        self.dirty = False

    def __repr__(self) -> str:
        return f"Row(row_number={self.row_number!r}, values={self.to_dict()!r})"

    @property
    def header(self) -> Sequence[str]:
        return self._header

    def _position(self, column: str) -> int:
        try:
            return self._positions[column]
        except KeyError:
            raise SchemaError(
                f"Unknown column {column!r}; header is {list(self._header)!r}"
            ) from None

    def get(self, column: str) -> Any:
        return self._values[self._position(column)]

    def set(self, column: str, value: Any) -> None:
        position = self._position(column)
        if value is None:
            value = ""
        if self._values[position] != value:
            self._values[position] = value
            self.dirty = True

    def values(self) -> List[Any]:
        return list(self._values)

    def to_dict(self) -> Dict[str, Any]:
        return {column: self._values[position] for column, position in self._positions.items()}

    def is_populated(self) -> bool:
        return any(value not in (None, "") for value in self._values)


class Worksheet:
    """One tab of a spreadsheet, loaded eagerly and written back on ``save``."""

    def __init__(self, spreadsheet: "Spreadsheet", title: str, values: Sequence[Sequence[Any]]) -> None:
        self.spreadsheet = spreadsheet
        self.title = title
        self._header = _trim_header(values[0]) if values else []
        self._rows: List[Row] = [
            Row(self._header, raw, row_number=number)
            for number, raw in enumerate(values[1:], start=2)
        ]
        self._pending: List[Row] = []

    def __repr__(self) -> str:
        return f"Worksheet(title={self.title!r}, spreadsheet={self.spreadsheet.key!r})"

    @property
    def header(self) -> List[str]:
        return list(self._header)

    def populated_rows(self) -> List[Row]:
        """Return the data rows holding at least one non-empty value."""

        return [row for row in self._rows + self._pending if row.is_populated()]

    def append_row(self) -> Row:
        """Return a new blank row written after the existing data on ``save``."""

        row = Row(self._header)
        self._pending.append(row)
        return row

    def _service(self):
        return self.spreadsheet.session.sheets

    def save(self) -> None:
        """Flush modified rows and appended rows to the sheet."""

        columns = len(self._header)
        changed = [row for row in self._rows if row.dirty]
        appended = [row for row in self._pending if row.is_populated()]
        if not columns or not (changed or appended):
            self._pending = []
            return

        spreadsheet_id = self.spreadsheet.key
        if changed:
            data = [
                {
                    "range": a1_row_range(self.title, row.row_number, columns=columns),
                    "values": [row.values()],
                    "majorDimension": "ROWS",
                }
                for row in changed
            ]
            _execute(
                self._service()
                .spreadsheets()
                .values()
                .batchUpdate(
                    spreadsheetId=spreadsheet_id,
                    body={"valueInputOption": VALUE_INPUT_OPTION, "data": data},
                )
            )

        if appended:
            response = _execute(
                self._service()
                .spreadsheets()
                .values()
                .append(
                    spreadsheetId=spreadsheet_id,
                    range=a1_row_range(self.title, 1, columns=columns),
                    valueInputOption=VALUE_INPUT_OPTION,
                    insertDataOption="INSERT_ROWS",
                    body={"values": [row.values() for row in appended], "majorDimension": "ROWS"},
                )
            )
            updates = response.get("updates", {}) if isinstance(response, Mapping) else {}
            first = _start_row(str(updates.get("updatedRange", "")))
            if first is None:
                first = len(self._rows) + 2
            for offset, row in enumerate(appended):
                row.row_number = first + offset
            self._rows.extend(appended)

        for row in changed + appended:
            row.dirty = False
        self._pending = []
        logger.debug(
            "Saved worksheet %s of %s: %d updated, %d appended",
            self.title,
            spreadsheet_id,
            len(changed),
            len(appended),
        )


class Spreadsheet:
    """A spreadsheet resolved by key through a :class:`Session`."""

    def __init__(self, session: "Session", key: str, *, title: Optional[str] = None) -> None:
        self.session = session
        self.key = key
        self._title = title
        self._worksheet_titles: Optional[List[str]] = None

    def __repr__(self) -> str:
        return f"Spreadsheet(key={self.key!r})"

    def _load_metadata(self) -> None:
        metadata = _execute(
            self.session.sheets.spreadsheets().get(
                spreadsheetId=self.key,
                includeGridData=False,
                fields="spreadsheetId,properties.title,sheets.properties.title",
            )
        )
        self._title = metadata.get("properties", {}).get("title", "")
        self._worksheet_titles = [
            sheet.get("properties", {}).get("title", "") for sheet in metadata.get("sheets", [])
        ]

    @property
    def title(self) -> str:
        if self._title is None:
            self._load_metadata()
        return self._title or ""

    def worksheet_titles(self) -> List[str]:
        if self._worksheet_titles is None:
            self._load_metadata()
        return list(self._worksheet_titles or [])

    def worksheet_by_title(self, title: str) -> Worksheet:
        if title not in self.worksheet_titles():
            raise WorksheetNotFoundError(f"Spreadsheet {self.key!r} has no worksheet {title!r}")
        response = _execute(
            self.session.sheets.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.key,
                range=_normalise_title(title),
                majorDimension="ROWS",
                valueRenderOption=VALUE_RENDER_OPTION,
            )
        )
        values = response.get("values", []) if isinstance(response, Mapping) else []
        return Worksheet(self, title, values)

    def worksheets(self) -> List[Worksheet]:
        return [self.worksheet_by_title(title) for title in self.worksheet_titles()]

    def duplicate(self, new_title: Optional[str] = None) -> "Spreadsheet":
        """Copy the spreadsheet through Drive and return the copy."""

        name = new_title if new_title is not None else self.title
        copied = drive_api.copy_file(self.session.drive, self.key, name)
        logger.debug("Duplicated spreadsheet %s as %s", self.key, copied["id"])
        return Spreadsheet(self.session, copied["id"], title=copied.get("name", name))


class Session:
    """Authenticated handle holding the Sheets and Drive services.

    The handle stays usable only as long as the credentials it was built
    with; see :func:`login_with_credentials`.
    """

    def __init__(self, sheets_service, drive_service) -> None:
        self.sheets = sheets_service
        self.drive = drive_service

    def spreadsheet_by_key(self, key: str) -> Spreadsheet:
        return Spreadsheet(self, key)

    def collection_by_url(self, url: str) -> drive_api.Collection:
        return drive_api.collection_by_url(self.drive, url)


def _authorized_http(credentials) -> AuthorizedHttp:
    http = AuthorizedHttp(credentials, http=httplib2.Http())
    return set_user_agent(http, APPLICATION_NAME)


def login_with_credentials(access_token: str, *, credentials=None) -> Session:
    """Build a :class:`Session` from an OAuth2 ``access_token``.

    A bare token cannot be refreshed, so such a session fails with HTTP 401
    once the token expires (about an hour). Pass refreshable ``credentials``
    (for example service account credentials) to have the transport renew the
    token on demand; ``access_token`` is then only used as the initial token.
    """

    if credentials is None:
        credentials = Credentials(token=access_token)
    sheets = build("sheets", "v4", http=_authorized_http(credentials), cache_discovery=False)
    drive = build("drive", "v3", http=_authorized_http(credentials), cache_discovery=False)
    return Session(sheets, drive)


__all__ = [
    "Row",
    "Session",
    "Spreadsheet",
    "VALUE_INPUT_OPTION",
    "VALUE_RENDER_OPTION",
    "Worksheet",
    "a1_row_range",
    "login_with_credentials",
]
