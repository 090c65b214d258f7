"""Backup of an index spreadsheet and every spreadsheet it references."""
from __future__ import annotations

import logging
from typing import Optional

from spreadsheet_master import index
from spreadsheet_master.errors import BackupError
from spreadsheet_master.settings import BACKUP_COLLECTION_NAME_DEFAULT, INDEX_WS_TITLE_DEFAULT

logger = logging.getLogger(__name__)


def backup(
    session,
    index_ss_key: str,
    base_collection_url: str,
    backup_collection_name: str = BACKUP_COLLECTION_NAME_DEFAULT,
    *,
    index_ws_title: str = INDEX_WS_TITLE_DEFAULT,
    log: Optional[logging.Logger] = None,
) -> str:
    """Duplicate an index and its spreadsheets into a new backup collection.

    The duplicated index is rewritten to reference the duplicates. When a
    rewritten index still references an original key the backup collection is
    deleted and :class:`BackupError` is raised. Returns the key of the
    duplicated index spreadsheet.
    """

    log = log or logger
    base_collection = session.collection_by_url(base_collection_url)
    backup_collection = base_collection.create_subcollection(backup_collection_name)

    index_ss = session.spreadsheet_by_key(index_ss_key)
    index_ws = index_ss.worksheet_by_title(index_ws_title)

    backup_index_ss = index_ss.duplicate(index_ss.title)
    backup_index_ws = backup_index_ss.worksheet_by_title(index_ws_title)
    backup_collection.add(backup_index_ss)

    ss_keys = index.referenced_keys(index_ws)
    backup_rows = index.index_rows(backup_index_ws)
    for ss_key in ss_keys:
        ss = session.spreadsheet_by_key(ss_key)
        backup_ss = ss.duplicate(ss.title)
        for row in backup_rows:
            if row.key == ss_key:
                row.key = backup_ss.key
        backup_collection.add(backup_ss)
        log.debug("Backed up %s as %s", ss_key, backup_ss.key)

    remaining = set(index.referenced_keys(backup_index_ws))
    stale = [ss_key for ss_key in ss_keys if ss_key in remaining]
    if stale:
        backup_collection.delete()
        log.warning("fail in duplication")
        raise BackupError(f"Backup index still references {', '.join(stale)}")

    backup_index_ws.save()
    log.info("Backed up index %s as %s with %d spreadsheets", index_ss_key, backup_index_ss.key, len(ss_keys))
    return backup_index_ss.key


__all__ = ["backup"]
