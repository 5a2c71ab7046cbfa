"""Service-account credentials for the artifact store.

Exchanges a Google service-account key for a short-lived OAuth2 bearer
token. Tokens are never persisted; a fresh one is derived for every
download.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from nebula_updater.constants import CLOUD_PLATFORM_SCOPE
from nebula_updater.errors import FetchError
from nebula_updater.logging import get_logger

log = get_logger("nebula_updater.artifacts.auth")


class TokenProvider(Protocol):
    """Anything that can produce a bearer token for the artifact store."""

    async def get_token(self) -> str: ...


class ServiceAccountTokenProvider:
    """Derives bearer tokens from a service-account JSON key file."""

    def __init__(self, key_path: Path | str | None, *, scopes: list[str] | None = None) -> None:
        """Initialize the provider.

        Args:
            key_path: Path of the service-account JSON key. ``None`` is
                accepted so the updater can still check for updates; every
                download then fails with a ``FetchError``.
            scopes: OAuth2 scopes to request. Defaults to cloud-platform.
        """
        self._key_path = Path(key_path) if key_path else None
        self._scopes = scopes or [CLOUD_PLATFORM_SCOPE]

    @property
    def key_path(self) -> Path | None:
        return self._key_path

    async def get_token(self) -> str:
        """Exchange the key for a bearer token.

        Raises:
            FetchError: If no key is configured, the key cannot be read, or
                the exchange fails.
        """
        if self._key_path is None:
            raise FetchError("no service account key configured")
        return await asyncio.to_thread(self._exchange, self._key_path)

    def _exchange(self, key_path: Path) -> str:
        try:
            creds = service_account.Credentials.from_service_account_file(
                str(key_path), scopes=self._scopes
            )
        except (OSError, ValueError) as exc:
            raise FetchError(
                f"failed to load service account credentials from {key_path}: {exc}"
            ) from exc

        try:
            creds.refresh(google.auth.transport.requests.Request())
        except GoogleAuthError as exc:
            raise FetchError(f"failed to retrieve token: {exc}") from exc

        token = creds.token
        if not token:
            raise FetchError("token exchange returned no access token")
        log.debug("artifact_token_issued", scopes=self._scopes)
        return str(token)
