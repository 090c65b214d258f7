"""Helpers for loading and validating service account signing keys."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from spreadsheet_master.errors import SpreadsheetMasterError

__all__ = [
    "CredentialsFileInvalidError",
    "REQUIRED_FIELDS",
    "load_service_account_data",
    "load_signing_key",
]


class CredentialsFileInvalidError(SpreadsheetMasterError):
    """Raised when a key file is missing, unreadable or lacks required data."""


REQUIRED_FIELDS: Iterable[str] = (
    "type",
    "private_key",
    "client_email",
)


def _normalise_private_key(key: str) -> str:
    key = key.replace("\r\n", "\n").replace("\r", "\n")
    key = key.replace("\\n", "\n")
    if not key.endswith("\n"):
        key += "\n"
    return key


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Unable to read key file {path}: {exc}") from exc


def _load_json(path: Path) -> Mapping[str, object]:
    raw = _read_bytes(path).decode("utf-8-sig", errors="replace")
    payload_text = raw.strip()
    if not payload_text:
        raise CredentialsFileInvalidError("Service account JSON is empty.")

    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"JSON parse error: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CredentialsFileInvalidError("Service account JSON must be an object.")
    return payload


def _validate_payload(payload: Mapping[str, object]) -> Dict[str, object]:
    data: Dict[str, object] = dict(payload)
    missing: list[str] = []

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            missing.append(field)

    if data.get("type") != "service_account":
        missing.append("type")

    if missing:
        ordered = ", ".join(sorted(dict.fromkeys(missing)))
        raise CredentialsFileInvalidError(f"JSON missing fields: {ordered}")

    data["private_key"] = _normalise_private_key(str(data["private_key"]))
    return data


def load_service_account_data(path: Union[str, Path]) -> Dict[str, object]:
    """Return validated service account data read from a JSON key file."""

    return _validate_payload(_load_json(Path(path)))


def _decode_private_key(data: bytes, passphrase: Optional[str]) -> rsa.RSAPrivateKey:
    password = passphrase.encode("utf-8") if passphrase is not None else None
    try:
        key = serialization.load_pem_private_key(data, password=password)
    except TypeError as exc:
        # Raised for an encrypted key without a passphrase and the reverse.
        raise CredentialsFileInvalidError(f"Passphrase mismatch for private key: {exc}") from exc
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise CredentialsFileInvalidError(f"Unable to decode private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CredentialsFileInvalidError("Service account keys must be RSA keys.")
    return key


def load_signing_key(
    source: Union[str, Path, bytes],
    passphrase: Optional[str] = None,
) -> bytes:
    """Return an unencrypted PKCS#8 PEM for the RSA key in ``source``.

    ``source`` is either a path to a PEM file or the PEM data itself. An
    encrypted key is decrypted with ``passphrase``; ``None`` expects an
    unencrypted key.
    """

    data = source if isinstance(source, bytes) else _read_bytes(Path(source))
    key = _decode_private_key(data, passphrase)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
