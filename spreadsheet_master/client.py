"""Entry points composing authentication, merge and backup."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from spreadsheet_master import backup as backup_engine
from spreadsheet_master import index
from spreadsheet_master import merge as merge_engine
from spreadsheet_master.auth import SessionProvider
from spreadsheet_master.logging_config import configure_logging, get_logger
from spreadsheet_master.settings import (
    BACKUP_COLLECTION_NAME_DEFAULT,
    DEFAULT_PEM_PATH,
    INDEX_WS_TITLE_DEFAULT,
    MasterSettings,
    passphrase_from_env,
)
from spreadsheet_master.sheets_client import Session, Worksheet


class Client:
    """Merge and back up spreadsheets tracked by index worksheets.

    ``passphrase`` decrypts the PEM key; when omitted it is read from the
    ``SPREADSHEET_MASTER_PEM_PASSPHRASE`` environment variable, and an
    unencrypted key is expected when that is unset too.
    """

    def __init__(
        self,
        issuer: str,
        pem_path: Union[str, Path] = DEFAULT_PEM_PATH,
        passphrase: Optional[str] = None,
        *,
        index_ws_title: str = INDEX_WS_TITLE_DEFAULT,
        backup_collection_name: str = BACKUP_COLLECTION_NAME_DEFAULT,
        logger: Optional[logging.Logger] = None,
        provider: Optional[SessionProvider] = None,
    ) -> None:
        if provider is None:
            if passphrase is None:
                passphrase = passphrase_from_env()
            provider = SessionProvider(issuer, pem_path, passphrase)
        self.provider = provider
        self.index_ws_title = index_ws_title
        self.backup_collection_name = backup_collection_name
        self.logger = logger or get_logger()

    @classmethod
    def from_settings(cls, settings: MasterSettings, **kwargs) -> "Client":
        """Build a client from stored settings and apply their log level."""

        configure_logging(settings.log_level)
        kwargs.setdefault("index_ws_title", settings.index_ws_title)
        kwargs.setdefault("backup_collection_name", settings.backup_collection_name)
        return cls(settings.issuer, settings.pem_path, settings.passphrase(), **kwargs)

    @classmethod
    def from_service_account_file(cls, path: Union[str, Path], **kwargs) -> "Client":
        provider = SessionProvider.from_service_account_file(path)
        return cls(provider.issuer, provider=provider, **kwargs)

    def access_token(self) -> str:
        return self.provider.access_token()

    def session(self) -> Session:
        return self.provider.session()

    def index_worksheet(self, index_ss_key: str) -> Worksheet:
        return index.index_worksheet(self.session(), index_ss_key, self.index_ws_title)

    def merge(self, base_ss_key: str, diff_ss_key: str, ws_title: str) -> int:
        session = self.session()
        base_ss = session.spreadsheet_by_key(base_ss_key)
        diff_ss = session.spreadsheet_by_key(diff_ss_key)
        return merge_engine.merge(base_ss, diff_ss, ws_title, log=self.logger)

    def merge_by_index_ws(self, base_index_ws, diff_index_ws) -> int:
        return merge_engine.merge_by_index(self.session(), base_index_ws, diff_index_ws, log=self.logger)

    def merge_by_index_ss_key(self, base_index_ss_key: str, diff_index_ss_key: str) -> int:
        base_index_ws = self.index_worksheet(base_index_ss_key)
        diff_index_ws = self.index_worksheet(diff_index_ss_key)
        return self.merge_by_index_ws(base_index_ws, diff_index_ws)

    def backup(
        self,
        index_ss_key: str,
        base_collection_url: str,
        backup_collection_name: Optional[str] = None,
    ) -> str:
        return backup_engine.backup(
            self.session(),
            index_ss_key,
            base_collection_url,
            backup_collection_name or self.backup_collection_name,
            index_ws_title=self.index_ws_title,
            log=self.logger,
        )

    def dry_merge_by_index_ss_key(
        self,
        base_index_ss_key: str,
        diff_index_ss_key: str,
        base_collection_url: str,
        backup_collection_name: Optional[str] = None,
    ) -> str:
        """Back up the base index, merge the diff into the backup and return its key."""

        backup_index_ss_key = self.backup(base_index_ss_key, base_collection_url, backup_collection_name)
        backup_index_ws = self.index_worksheet(backup_index_ss_key)
        diff_index_ws = self.index_worksheet(diff_index_ss_key)
        self.merge_by_index_ws(backup_index_ws, diff_index_ws)
        return backup_index_ss_key


__all__ = ["Client"]
