"""Row merging between header-compatible worksheets."""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from spreadsheet_master import index
from spreadsheet_master.errors import MergeError

logger = logging.getLogger(__name__)


class HeaderedSheet(Protocol):
    title: str

    @property
    def header(self) -> Sequence[str]: ...

    def populated_rows(self) -> Sequence[Any]: ...


def same_header(base_ws: HeaderedSheet, target_ws: HeaderedSheet) -> bool:
    """Return ``True`` when both headers hold the same names in the same order."""

    return list(base_ws.header) == list(target_ws.header)


def _check_header(base_ws: HeaderedSheet, target_ws: HeaderedSheet, log: logging.Logger) -> bool:
    if not same_header(base_ws, target_ws):
        log.warning("can not merge worksheet: %s", target_ws.title)
        return False
    return True


def can_merge(
    base_ws: HeaderedSheet,
    target_ss,
    ws_title: str,
    *,
    log: Optional[logging.Logger] = None,
) -> bool:
    target_ws = target_ss.worksheet_by_title(ws_title)
    return _check_header(base_ws, target_ws, log or logger)


def merge(base_ss, diff_ss, ws_title: str, *, log: Optional[logging.Logger] = None) -> int:
    """Append every populated row of ``diff_ss`` to ``base_ss`` on ``ws_title``.

    Values are copied column by column in the diff header order and the base
    worksheet is saved once. Returns the number of appended rows.
    """

    log = log or logger
    base_ws = base_ss.worksheet_by_title(ws_title)
    diff_ws = diff_ss.worksheet_by_title(ws_title)
    if not _check_header(base_ws, diff_ws, log):
        log.warning("can not merge spreadsheet: %s", diff_ss.title)
        raise MergeError(
            f"Worksheet {ws_title!r} of {diff_ss.key!r} does not share the header of {base_ss.key!r}"
        )

    diff_rows = diff_ws.populated_rows()
    columns = diff_ws.header
    for diff_row in diff_rows:
        row = base_ws.append_row()
        for column in columns:
            row.set(column, diff_row.get(column))

    base_ws.save()
    log.info("Merged %d rows from %s into %s on %s", len(diff_rows), diff_ss.key, base_ss.key, ws_title)
    return len(diff_rows)


def plan_index_merge(base_index_ws, diff_index_ws) -> List[Tuple[str, str, str]]:
    """Return ``(base_key, diff_key, sheetname)`` for each diff index row.

    Raises :class:`MergeError` when a diff sheet name has no base index row.
    """

    base_by_name = index.first_by_sheetname(index.index_rows(base_index_ws))
    plan: List[Tuple[str, str, str]] = []
    for diff_row in index.index_rows(diff_index_ws):
        base_row = base_by_name.get(diff_row.sheetname)
        if base_row is None:
            raise MergeError(f"Base index has no row for sheetname {diff_row.sheetname!r}")
        plan.append((base_row.key, diff_row.key, diff_row.sheetname))
    return plan


def merge_by_index(
    session,
    base_index_ws,
    diff_index_ws,
    *,
    log: Optional[logging.Logger] = None,
) -> int:
    """Merge every spreadsheet listed in ``diff_index_ws`` into its base counterpart.

    Every sheet name is resolved before the first merge, so a missing mapping
    leaves all base spreadsheets untouched.
    """

    log = log or logger
    try:
        plan = plan_index_merge(base_index_ws, diff_index_ws)
    except MergeError as exc:
        log.warning("can not merge index: %s", exc)
        raise

    total = 0
    for base_key, diff_key, ws_title in plan:
        total += merge(
            session.spreadsheet_by_key(base_key),
            session.spreadsheet_by_key(diff_key),
            ws_title,
            log=log,
        )
    return total


__all__ = [
    "HeaderedSheet",
    "can_merge",
    "merge",
    "merge_by_index",
    "plan_index_merge",
    "same_header",
]
