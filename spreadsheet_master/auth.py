"""Service account authentication and the cached remote session."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from google.auth import crypt
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from spreadsheet_master.errors import AuthenticationError
from spreadsheet_master.google_credentials import (
    CredentialsFileInvalidError,
    load_service_account_data,
    load_signing_key,
)
from spreadsheet_master.settings import AUDIENCE, DEFAULT_PEM_PATH, SCOPE, TOKEN_CREDENTIAL_URI
from spreadsheet_master.sheets_client import Session, login_with_credentials

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], Session]


class SessionProvider:
    """Exchange signed service account assertions for a cached :class:`Session`.

    The signing key is read on first use. ``session()`` authenticates once and
    returns the same handle afterwards; ``access_token()`` refreshes the token
    only when it is missing or expired. Unless a ``session_factory`` is given,
    the session is built on the refreshable service account credentials, so
    the cached handle outlives the first token.
    """

    def __init__(
        self,
        issuer: str,
        pem_path: Union[str, Path] = DEFAULT_PEM_PATH,
        passphrase: Optional[str] = None,
        *,
        signing_key: Optional[bytes] = None,
        credentials=None,
        session_factory: Optional[SessionFactory] = None,
        request_factory: Callable[[], Request] = Request,
    ) -> None:
        self.issuer = issuer
        self.pem_path = Path(pem_path)
        self._passphrase = passphrase
        self._signing_key = signing_key
        self._credentials = credentials
        self._session: Optional[Session] = None
        self._session_factory = session_factory
        self._request_factory = request_factory
        self._lock = threading.Lock()

    @classmethod
    def from_service_account_file(cls, path: Union[str, Path], **kwargs) -> "SessionProvider":
        """Build a provider from a Google service account JSON key file."""

        try:
            data = load_service_account_data(path)
        except CredentialsFileInvalidError as exc:
            raise AuthenticationError(str(exc)) from exc
        return cls(
            str(data["client_email"]),
            signing_key=str(data["private_key"]).encode("utf-8"),
            **kwargs,
        )

    def _build_credentials(self) -> service_account.Credentials:
        if not (self.issuer or "").strip():
            raise AuthenticationError("A service account issuer must be configured.")
        source = self._signing_key if self._signing_key is not None else self.pem_path
        try:
            pem = load_signing_key(source, self._passphrase)
        except CredentialsFileInvalidError as exc:
            raise AuthenticationError(str(exc)) from exc

        signer = crypt.RSASigner.from_string(pem)
        return service_account.Credentials(
            signer,
            self.issuer,
            TOKEN_CREDENTIAL_URI,
            scopes=list(SCOPE),
            additional_claims={"aud": AUDIENCE},
        )

    def credentials(self):
        if self._credentials is None:
            self._credentials = self._build_credentials()
        return self._credentials

    def fetch_access_token(self) -> str:
        """Perform the token exchange unconditionally and return the new token."""

        credentials = self.credentials()
        try:
            credentials.refresh(self._request_factory())
        except auth_exceptions.GoogleAuthError as exc:
            raise AuthenticationError(f"Token exchange failed for {self.issuer}: {exc}") from exc
        logger.debug("Fetched access token for %s", self.issuer)
        return credentials.token

    def access_token(self) -> str:
        credentials = self.credentials()
        if not credentials.valid:
            return self.fetch_access_token()
        return credentials.token

    def _login(self, access_token: str) -> Session:
        return login_with_credentials(access_token, credentials=self.credentials())

    def session(self) -> Session:
        with self._lock:
            if self._session is None:
                factory = self._session_factory or self._login
                self._session = factory(self.access_token())
                logger.info("Opened session for %s", self.issuer)
        return self._session


__all__ = ["SessionFactory", "SessionProvider"]
