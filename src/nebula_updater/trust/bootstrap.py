"""Trust-on-first-use bootstrap of the TUF root.

The first run downloads ``1.root.json`` from the metadata repository and
stores it as the local trust anchor. Later runs find the anchor on disk and
make no network call; root rotation is handled by the TUF client itself.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from nebula_updater.constants import INITIAL_ROOT_FILENAME, ROOT_FILENAME
from nebula_updater.errors import BootstrapError
from nebula_updater.logging import get_logger
from nebula_updater.utils import write_atomic

if TYPE_CHECKING:
    import structlog

    from nebula_updater.config import Settings


class TrustBootstrapper:
    """Establishes the local trust anchor exactly once per trust directory."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._metadata_url = settings.metadata_url.rstrip("/")
        self._timeout = settings.http_timeout_seconds
        self._transport = transport
        self._log = log or get_logger("nebula_updater.trust.bootstrap")

    @property
    def root_url(self) -> str:
        return f"{self._metadata_url}/{INITIAL_ROOT_FILENAME}"

    async def ensure_trust_anchor(self, trust_dir: Path) -> Path:
        """Make sure ``root.json`` exists in *trust_dir*.

        Returns:
            Path of the trust anchor.

        Raises:
            BootstrapError: If the directory cannot be created, the initial
                root cannot be downloaded, or it cannot be written.
        """
        root_path = trust_dir / ROOT_FILENAME
        if root_path.exists():
            return root_path

        try:
            trust_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BootstrapError(f"cannot create trust directory {trust_dir}: {exc}") from exc

        data = await self._download_initial_root()

        try:
            write_atomic(root_path, data)
        except OSError as exc:
            raise BootstrapError(f"failed to write {root_path}: {exc}") from exc

        self._log.info(
            "trust_anchor_bootstrapped",
            path=str(root_path),
            url=self.root_url,
            bytes=len(data),
        )
        return root_path

    async def _download_initial_root(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(self.root_url)
        except httpx.RequestError as exc:
            raise BootstrapError(f"failed to download {self.root_url}: {exc}") from exc

        if resp.status_code != 200:
            raise BootstrapError(
                f"failed to download {self.root_url}: status code {resp.status_code}"
            )
        if not resp.content:
            raise BootstrapError(f"empty root metadata from {self.root_url}")
        return resp.content
