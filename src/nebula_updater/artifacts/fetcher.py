"""Authenticated artifact download from Artifact Registry.

Downloads stream into ``<name>.part`` next to the destination and are only
renamed into place once the whole body has been written, so a failed or
cancelled download never leaves a truncated file under the final name.
"""

from __future__ import annotations

from email.message import Message
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from nebula_updater.errors import FetchError
from nebula_updater.logging import get_logger

if TYPE_CHECKING:
    import structlog

    from nebula_updater.artifacts.auth import TokenProvider
    from nebula_updater.config import Settings


def build_artifact_url(settings: Settings, version: str) -> str:
    """Build the Artifact Registry download URL for *version* of the product."""
    base = settings.artifact_base_url.rstrip("/")
    return (
        f"{base}/files/{settings.artifact_package}:{version}:{settings.product_id}"
        ":download?alt=media"
    )


def filename_from_disposition(value: str | None) -> str | None:
    """Extract a safe filename from a ``Content-Disposition`` header.

    Only the final path component is kept. Returns None when the header is
    missing, malformed, or names nothing usable.
    """
    if not value:
        return None
    msg = Message()
    msg["content-disposition"] = value
    try:
        name = msg.get_filename()
    except (ValueError, LookupError):
        return None
    if not name:
        return None
    name = Path(name.replace("\\", "/")).name
    if name in ("", ".", ".."):
        return None
    return name


class ArtifactFetcher:
    """Downloads versioned artifacts with a bearer token."""

    def __init__(
        self,
        settings: Settings,
        token_provider: TokenProvider,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._download_dir = settings.download_dir
        self._default_name = settings.default_artifact_name
        self._chunk_size = settings.download_chunk_size
        self._timeout = settings.http_timeout_seconds
        self._tokens = token_provider
        self._transport = transport
        self._log = log or get_logger("nebula_updater.artifacts.fetcher")

    async def fetch(self, url: str) -> Path:
        """Download *url* into the download directory.

        Returns:
            Path of the saved artifact.

        Raises:
            FetchError: On credential failure, transport failure, any status
                other than 200, or a disk error.
        """
        token = await self._tokens.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        self._log.info("artifact_download_started", url=url)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                async with client.stream("GET", url, headers=headers) as resp:
                    if resp.status_code != 200:
                        raise FetchError(
                            f"failed to download artifact, status code: {resp.status_code}",
                            status_code=resp.status_code,
                        )
                    name = (
                        filename_from_disposition(resp.headers.get("content-disposition"))
                        or self._default_name
                    )
                    dest = self._download_dir / name
                    written = await self._stream_to_file(resp, dest)
        except httpx.HTTPError as exc:
            raise FetchError(f"failed to execute request: {exc}") from exc

        self._log.info("artifact_saved", path=str(dest), bytes=written)
        return dest

    async def _stream_to_file(self, resp: httpx.Response, dest: Path) -> int:
        part = dest.with_name(dest.name + ".part")
        written = 0
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(part, "wb") as out:
                async for chunk in resp.aiter_bytes(self._chunk_size):
                    out.write(chunk)
                    written += len(chunk)
            part.replace(dest)
        except OSError as exc:
            part.unlink(missing_ok=True)
            raise FetchError(f"failed to write {dest}: {exc}") from exc
        except BaseException:
            part.unlink(missing_ok=True)
            raise
        return written
