"""Google Drive API helpers: collections (folders) and file duplication."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Sequence

from googleapiclient.errors import HttpError

from spreadsheet_master.errors import CollectionNotFoundError, RemoteServiceError

logger = logging.getLogger(__name__)


FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

_FOLDER_ID_PATTERNS: Sequence[re.Pattern] = (
    re.compile(r"/folders/([A-Za-z0-9_-]+)"),
    re.compile(r"folder(?:%3A|:)([A-Za-z0-9_-]+)"),
    re.compile(r"[?&]id=([A-Za-z0-9_-]+)"),
)
_BARE_ID = re.compile(r"[A-Za-z0-9_-]+")


def _execute(request) -> Any:
    try:
        return request.execute()
    except HttpError as exc:
        raise RemoteServiceError(str(exc)) from exc


def folder_id_from_url(url: str) -> str:
    """Return the Drive folder id referenced by ``url``.

    Accepts ``/drive/folders/<id>`` links, ``?id=<id>`` links, legacy
    ``folder:<id>`` feed URLs and bare folder ids.
    """

    text = (url or "").strip()
    if not text:
        raise CollectionNotFoundError("Collection URL must not be empty.")
    for pattern in _FOLDER_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    if _BARE_ID.fullmatch(text):
        return text
    raise CollectionNotFoundError(f"Cannot find a folder id in {url!r}")


def copy_file(service, file_id: str, name: str) -> Dict[str, Any]:
    """Copy ``file_id`` under a new ``name`` and return the new file's metadata."""

    return _execute(
        service.files().copy(
            fileId=file_id,
            body={"name": name},
            fields="id, name",
            supportsAllDrives=True,
        )
    )


class Collection:
    """A Drive folder holding spreadsheets."""

    def __init__(self, service, folder_id: str, *, title: Optional[str] = None) -> None:
        self._service = service
        self.id = folder_id
        self.title = title

    def __repr__(self) -> str:
        return f"Collection(id={self.id!r}, title={self.title!r})"

    def create_subcollection(self, name: str) -> "Collection":
        """Create a new folder named ``name`` inside this one."""

        metadata = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [self.id],
        }
        created = _execute(
            self._service.files().create(body=metadata, fields="id, name", supportsAllDrives=True)
        )
        logger.debug("Created collection %s (%s) in %s", name, created["id"], self.id)
        return Collection(self._service, created["id"], title=created.get("name", name))

    def subcollection_by_title(self, name: str) -> Optional["Collection"]:
        """Return the first folder named ``name`` inside this one, if any."""

        escaped_name = name.replace("\\", "\\\\").replace("'", "\\'")
        query = " and ".join(
            [
                f"mimeType = '{FOLDER_MIME_TYPE}'",
                "trashed = false",
                f"name = '{escaped_name}'",
                f"'{self.id}' in parents",
            ]
        )
        response = _execute(
            self._service.files().list(
                q=query,
                spaces="drive",
                fields="files(id, name)",
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            )
        )
        files = response.get("files", [])
        if not files:
            return None
        return Collection(self._service, files[0]["id"], title=files[0].get("name", name))

    def add(self, spreadsheet) -> None:
        """Move ``spreadsheet`` into this folder.

        Drive items have a single parent, so the previous parents are removed.
        """

        current = _execute(
            self._service.files().get(fileId=spreadsheet.key, fields="parents", supportsAllDrives=True)
        )
        previous = [parent for parent in current.get("parents", []) if parent != self.id]
        options: Dict[str, Any] = {"addParents": self.id}
        if previous:
            options["removeParents"] = ",".join(previous)
        _execute(
            self._service.files().update(
                fileId=spreadsheet.key,
                fields="id, parents",
                supportsAllDrives=True,
                **options,
            )
        )

    def remove(self, spreadsheet) -> None:
        _execute(
            self._service.files().update(
                fileId=spreadsheet.key,
                removeParents=self.id,
                fields="id, parents",
                supportsAllDrives=True,
            )
        )

    def delete(self) -> None:
        """Delete the folder together with the files it owns."""

        _execute(self._service.files().delete(fileId=self.id, supportsAllDrives=True))
        logger.debug("Deleted collection %s", self.id)


def collection_by_url(service, url: str) -> Collection:
    folder_id = folder_id_from_url(url)
    metadata = _execute(
        service.files().get(fileId=folder_id, fields="id, name, mimeType", supportsAllDrives=True)
    )
    if metadata.get("mimeType") != FOLDER_MIME_TYPE:
        raise CollectionNotFoundError(f"{url!r} does not refer to a folder")
    return Collection(service, metadata["id"], title=metadata.get("name"))


__all__ = [
    "Collection",
    "FOLDER_MIME_TYPE",
    "collection_by_url",
    "copy_file",
    "folder_id_from_url",
]
