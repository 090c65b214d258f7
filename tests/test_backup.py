from __future__ import annotations

import logging
from typing import Any

import pytest

from spreadsheet_master.backup import backup
from spreadsheet_master.errors import BackupError
from spreadsheet_master.sheets_client import Row

INDEX_HEADER = ["sheetname", "key"]
COLLECTION_URL = "https://drive.google.com/drive/folders/root-folder"


class _FrozenKeyRow(Row):
    """Row whose ``key`` column ignores writes, simulating a missed rewrite."""

    def set(self, column: str, value: Any) -> None:
        if column == "key":
            return
        super().set(column, value)


def _tracked(fake_session) -> None:
    fake_session.add_collection(COLLECTION_URL)
    fake_session.add_spreadsheet(
        "index",
        "Tracked index",
        {"table_map": (INDEX_HEADER, [["sales", "s1"], ["stock", "s2"], ["returns", "s1"]])},
    )
    fake_session.add_spreadsheet("s1", "Sales", {"sales": (["item"], [["tea"]])})
    fake_session.add_spreadsheet("s2", "Stock", {"stock": (["item"], [["cake"]])})


def test_backup_duplicates_each_referenced_spreadsheet_once(fake_session) -> None:
    _tracked(fake_session)

    backup_key = backup(fake_session, "index", COLLECTION_URL)

    duplicated = [original for original, _copy in fake_session.copies]
    assert duplicated == ["index", "s1", "s2"]
    assert backup_key == "index-copy1"

    backup_ws = fake_session.spreadsheet_by_key(backup_key).worksheet_by_title("table_map")
    keys = [row["key"] for row in backup_ws.records()]
    assert keys == ["s1-copy2", "s2-copy3", "s1-copy2"]
    assert not {"s1", "s2"} & set(keys)
    assert backup_ws.save_count == 1


def test_backup_fills_new_collection_and_keeps_titles(fake_session) -> None:
    _tracked(fake_session)

    backup(fake_session, "index", COLLECTION_URL, "nightly")

    root = fake_session.collection_by_url(COLLECTION_URL)
    assert [child.title for child in root.subcollections] == ["nightly"]
    backup_collection = root.subcollections[0]
    assert backup_collection.members == ["index-copy1", "s1-copy2", "s2-copy3"]
    assert backup_collection.deleted is False
    assert fake_session.spreadsheet_by_key("s1-copy2").title == "Sales"
    assert fake_session.spreadsheet_by_key("index-copy1").title == "Tracked index"


def test_backup_leaves_original_index_untouched(fake_session) -> None:
    _tracked(fake_session)

    backup(fake_session, "index", COLLECTION_URL)

    original_ws = fake_session.spreadsheet_by_key("index").worksheet_by_title("table_map")
    assert [row["key"] for row in original_ws.records()] == ["s1", "s2", "s1"]
    assert original_ws.save_count == 0


def test_backup_rolls_back_when_rewrite_misses_a_row(fake_session, caplog) -> None:
    _tracked(fake_session)

    def freeze_second_index_row(original, copy) -> None:
        if original.key != "index":
            return
        worksheet = copy.worksheet_by_title("table_map")
        stale = worksheet.populated_rows()[1]
        worksheet.replace_row(1, _FrozenKeyRow(stale.header, stale.values(), row_number=stale.row_number))

    fake_session.copy_hooks.append(freeze_second_index_row)

    with caplog.at_level(logging.WARNING, logger="spreadsheet_master.backup"):
        with pytest.raises(BackupError, match="s2"):
            backup(fake_session, "index", COLLECTION_URL)

    assert "fail in duplication" in caplog.text
    backup_collection = fake_session.collection_by_url(COLLECTION_URL).subcollections[0]
    assert backup_collection.deleted is True
    assert fake_session.spreadsheet_by_key("index-copy1").worksheet_by_title("table_map").save_count == 0

    original_ws = fake_session.spreadsheet_by_key("index").worksheet_by_title("table_map")
    assert [row["key"] for row in original_ws.records()] == ["s1", "s2", "s1"]
    assert fake_session.spreadsheet_by_key("s2").worksheet_by_title("stock").records() == [{"item": "cake"}]


def test_backup_skips_index_rows_without_key(fake_session) -> None:
    fake_session.add_collection(COLLECTION_URL)
    fake_session.add_spreadsheet(
        "index",
        "Tracked index",
        {"table_map": (INDEX_HEADER, [["sales", "s1"], ["draft", ""]])},
    )
    fake_session.add_spreadsheet("s1", "Sales")

    backup_key = backup(fake_session, "index", COLLECTION_URL)

    backup_ws = fake_session.spreadsheet_by_key(backup_key).worksheet_by_title("table_map")
    assert backup_ws.records() == [
        {"sheetname": "sales", "key": "s1-copy2"},
        {"sheetname": "draft", "key": ""},
    ]


def test_backup_uses_configured_index_title(fake_session) -> None:
    fake_session.add_collection(COLLECTION_URL)
    fake_session.add_spreadsheet("index", "Index", {"map": (INDEX_HEADER, [["sales", "s1"]])})
    fake_session.add_spreadsheet("s1", "Sales")

    backup_key = backup(fake_session, "index", COLLECTION_URL, index_ws_title="map")

    backup_ws = fake_session.spreadsheet_by_key(backup_key).worksheet_by_title("map")
    assert backup_ws.records() == [{"sheetname": "sales", "key": "s1-copy2"}]
