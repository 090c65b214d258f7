"""Configuration helpers for spreadsheet-master."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


APPLICATION_NAME = "master"
TOKEN_CREDENTIAL_URI = "https://accounts.google.com/o/oauth2/token"
AUDIENCE = "https://accounts.google.com/o/oauth2/token"
SCOPE: Tuple[str, ...] = (
    "https://www.googleapis.com/auth/drive",
    "https://spreadsheets.google.com/feeds",
    "https://docs.google.com/feeds",
)
INDEX_WS_TITLE_DEFAULT = "table_map"
BACKUP_COLLECTION_NAME_DEFAULT = "backup"

PASSPHRASE_ENV_VAR = "SPREADSHEET_MASTER_PEM_PASSPHRASE"
DEFAULT_PEM_PATH = os.getenv("SPREADSHEET_MASTER_PEM_PATH", "client.pem")
DEFAULT_ISSUER = os.getenv("SPREADSHEET_MASTER_ISSUER", "")
DEFAULT_SETTINGS_PATH = os.getenv(
    "SPREADSHEET_MASTER_SETTINGS_PATH",
    os.path.join(os.path.expanduser("~"), ".spreadsheet_master", "settings.json"),
)
DEFAULT_LOG_LEVEL = "INFO"


def passphrase_from_env() -> Optional[str]:
    """Return the PEM passphrase from the environment, ``None`` when unset."""

    value = os.environ.get(PASSPHRASE_ENV_VAR)
    if value is None or value == "":
        return None
    return value


@dataclass
class MasterSettings:
    issuer: str = DEFAULT_ISSUER
    pem_path: str = DEFAULT_PEM_PATH
    index_ws_title: str = INDEX_WS_TITLE_DEFAULT
    backup_collection_name: str = BACKUP_COLLECTION_NAME_DEFAULT
    log_level: str = DEFAULT_LOG_LEVEL

    def passphrase(self) -> Optional[str]:
        # The passphrase is never written to the settings file.
        return passphrase_from_env()

    def to_json(self) -> Dict[str, object]:
        return {
            "issuer": self.issuer,
            "pem_path": self.pem_path,
            "index_ws_title": self.index_ws_title,
            "backup_collection_name": self.backup_collection_name,
            "log_level": self.log_level,
        }


def _default_payload() -> Dict[str, object]:
    return MasterSettings().to_json()


def _ensure_settings(path: str) -> Dict[str, object]:
    defaults = _default_payload()
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(defaults, handle, indent=2)
        logger.debug("Wrote default settings to %s", path)
        return defaults

    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    merged: Dict[str, object] = dict(defaults)
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed settings file %s", path)
        return merged
    for key, value in data.items():
        if key not in defaults:
            continue
        if isinstance(value, str) and value.strip():
            merged[key] = value.strip()
    return merged


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> MasterSettings:
    data = _ensure_settings(path)
    return MasterSettings(
        issuer=str(data["issuer"]),
        pem_path=str(data["pem_path"]),
        index_ws_title=str(data["index_ws_title"]),
        backup_collection_name=str(data["backup_collection_name"]),
        log_level=str(data["log_level"]).upper(),
    )


def save_settings(settings: MasterSettings, path: str = DEFAULT_SETTINGS_PATH) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(settings.to_json(), handle, indent=2)


__all__ = [
    "APPLICATION_NAME",
    "AUDIENCE",
    "BACKUP_COLLECTION_NAME_DEFAULT",
    "DEFAULT_PEM_PATH",
    "DEFAULT_SETTINGS_PATH",
    "INDEX_WS_TITLE_DEFAULT",
    "MasterSettings",
    "PASSPHRASE_ENV_VAR",
    "SCOPE",
    "TOKEN_CREDENTIAL_URI",
    "load_settings",
    "passphrase_from_env",
    "save_settings",
]
