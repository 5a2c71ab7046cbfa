"""Verified manifest resolution through the TUF client.

All signature, rollback, freeze and expiration checks on repository metadata
happen inside ``tuf.ngclient``; this module only drives it: refresh the
top-level roles, look up the manifest target, reuse the local copy when it
still matches the signed target description, and download otherwise.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tuf.ngclient import Updater, UpdaterConfig

from nebula_updater.constants import DOWNLOAD_DIRNAME, ROOT_FILENAME
from nebula_updater.errors import ResolveError, UpdateError
from nebula_updater.logging import get_logger
from nebula_updater.utils import write_atomic

if TYPE_CHECKING:
    import structlog

    from nebula_updater.config import Settings

UpdaterFactory = Callable[[Path], Any]


@dataclass(frozen=True)
class ResolvedManifest:
    """Manifest bytes plus whether they came from the local cache."""

    content: bytes
    cache_hit: bool
    path: Path


class ManifestResolver:
    """Resolves the manifest target against trusted TUF metadata."""

    def __init__(
        self,
        settings: Settings,
        *,
        updater_factory: UpdaterFactory | None = None,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._metadata_url = settings.metadata_url
        self._targets_url = settings.targets_url
        self._index_filename = settings.index_filename
        self._updater_factory = updater_factory or self._build_updater
        self._log = log or get_logger("nebula_updater.trust.resolver")

    def _build_updater(self, trust_dir: Path) -> Updater:
        return Updater(
            metadata_dir=str(trust_dir),
            metadata_base_url=self._metadata_url,
            target_dir=str(trust_dir / DOWNLOAD_DIRNAME),
            target_base_url=self._targets_url,
            config=UpdaterConfig(prefix_targets_with_hash=True),
        )

    async def resolve(self, trust_dir: Path) -> ResolvedManifest:
        """Return the verified manifest for *trust_dir*.

        Raises:
            ResolveError: On network failures, metadata verification
                failures, or a repository that does not list the manifest.
        """
        resolved = await asyncio.to_thread(self._resolve_sync, trust_dir)
        if resolved.cache_hit:
            self._log.info("manifest_cache_hit", target=self._index_filename)
        else:
            self._log.info(
                "manifest_downloaded",
                target=self._index_filename,
                bytes=len(resolved.content),
            )
        return resolved

    def _resolve_sync(self, trust_dir: Path) -> ResolvedManifest:
        if not (trust_dir / ROOT_FILENAME).exists():
            raise ResolveError(f"no trust anchor in {trust_dir}")

        index_path = trust_dir / self._index_filename
        try:
            (trust_dir / DOWNLOAD_DIRNAME).mkdir(parents=True, exist_ok=True)

            updater = self._updater_factory(trust_dir)
            updater.refresh()

            info = updater.get_targetinfo(self._index_filename)
            if info is None:
                raise ResolveError(f"target {self._index_filename!r} not found in repository")

            cached = updater.find_cached_target(info, str(index_path))
            if cached:
                return ResolvedManifest(
                    content=Path(cached).read_bytes(),
                    cache_hit=True,
                    path=Path(cached),
                )

            downloaded = updater.download_target(info)
            content = Path(downloaded).read_bytes()
            write_atomic(index_path, content)
            return ResolvedManifest(content=content, cache_hit=False, path=index_path)

        except UpdateError:
            raise
        except Exception as exc:
            raise ResolveError(
                f"failed to resolve {self._index_filename!r}: {type(exc).__name__}: {exc}"
            ) from exc
