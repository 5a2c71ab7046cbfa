"""Update manager: one check-consent-fetch-verify cycle.

Each cycle:
1. ensure the trust anchor exists
2. resolve the verified manifest (cache hit means nothing changed)
3. parse it and look up the product
4. compare the manifest version with the running version
5. if newer: ask for consent, download, re-verify the digest
6. report how long the running version stays valid

Any stage failure ends the cycle with a ``failed`` result tagged with its
``ErrorKind``; the scheduler simply tries again on the next tick.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TextIO

from nebula_updater.artifacts.fetcher import build_artifact_url
from nebula_updater.artifacts.integrity import verify_file
from nebula_updater.errors import ErrorKind, ParseError, UpdateError
from nebula_updater.expiry import ExpiryReport, report_expiry
from nebula_updater.logging import get_logger
from nebula_updater.manifest import IndexEntry, ManifestIndex
from nebula_updater.updater.scheduler import SystemClock
from nebula_updater.versioning import VersionOrder, compare_versions, parse_version

if TYPE_CHECKING:
    import structlog

    from nebula_updater.artifacts.fetcher import ArtifactFetcher
    from nebula_updater.config import Settings
    from nebula_updater.trust.bootstrap import TrustBootstrapper
    from nebula_updater.trust.resolver import ManifestResolver
    from nebula_updater.updater.consent import ConsentSource
    from nebula_updater.updater.scheduler import Clock

CONSENT_PROMPT = "Do you want to download the new version?"


class UpdateStatus(Enum):
    """Outcome of one update cycle."""

    UP_TO_DATE = "up_to_date"
    ADOPTED = "adopted"
    NO_UPDATE = "no_update"
    DECLINED = "declined"
    SUCCESS = "success"
    VERIFY_FAILED = "verify_failed"
    FAILED = "failed"


@dataclass
class UpdateResult:
    """Result of one update cycle."""

    status: UpdateStatus
    current_version: str | None
    target_version: str | None = None
    cache_hit: bool | None = None
    artifact_path: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    expiry: ExpiryReport | None = None
    steps_completed: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "current_version": self.current_version,
            "target_version": self.target_version,
            "cache_hit": self.cache_hit,
            "artifact_path": self.artifact_path,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "expiry": self.expiry.to_dict() if self.expiry else None,
            "steps_completed": self.steps_completed,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }


class UpdateManager:
    """Runs update cycles and holds the running version between them."""

    def __init__(
        self,
        settings: Settings,
        *,
        bootstrapper: TrustBootstrapper,
        resolver: ManifestResolver,
        fetcher: ArtifactFetcher,
        consent: ConsentSource,
        clock: Clock | None = None,
        output: TextIO | None = None,
        log: structlog.stdlib.BoundLogger | None = None,
        running_version: str | None = None,
    ) -> None:
        self._settings = settings
        self._bootstrapper = bootstrapper
        self._resolver = resolver
        self._fetcher = fetcher
        self._consent = consent
        self._clock = clock or SystemClock()
        self._output = output or sys.stdout
        self._log = log or get_logger("nebula_updater.updater.manager")
        self._running_version = running_version
        self._update_pending = False

    @property
    def current_version(self) -> str | None:
        return self._running_version

    @property
    def update_pending(self) -> bool:
        """True while a newer manifest version is known but not installed."""
        return self._update_pending

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> UpdateResult:
        """Run one full check and, if warranted, one update."""
        result = UpdateResult(
            status=UpdateStatus.FAILED,
            current_version=self._running_version,
            started_at=self._clock.now().isoformat(),
        )
        try:
            await self._run_stages(result)
        except UpdateError as exc:
            result.status = UpdateStatus.FAILED
            result.error = exc.message
            result.error_kind = exc.kind
            self._log.warning(
                "updater_cycle_failed",
                kind=exc.kind.value,
                error=exc.message,
                steps=result.steps_completed,
            )
            self._say(f"Update check failed ({exc.kind.value}): {exc.message}")

        result.expiry = self._report_expiry()
        result.completed_at = self._clock.now().isoformat()
        return result

    async def _run_stages(self, result: UpdateResult) -> None:
        settings = self._settings
        trust_dir = settings.trust_dir

        try:
            settings.download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._log.error("updater_setup_failed", path=str(settings.download_dir), error=str(exc))

        await self._bootstrapper.ensure_trust_anchor(trust_dir)
        result.steps_completed.append("trust_anchor")

        resolved = await self._resolver.resolve(trust_dir)
        result.cache_hit = resolved.cache_hit
        result.steps_completed.append("resolve_manifest")

        if (
            resolved.cache_hit
            and self._running_version is not None
            and not self._update_pending
        ):
            result.status = UpdateStatus.UP_TO_DATE
            result.target_version = self._running_version
            self._say("The local index file is the most updated one")
            return

        entry = self._lookup_product(resolved.content)
        result.target_version = entry.version
        result.steps_completed.append("parse_manifest")

        if self._running_version is None:
            await self._adopt(entry, result)
            return

        order = compare_versions(self._running_version, entry.version, settings.version_layout)
        result.steps_completed.append("compare_versions")
        if order is not VersionOrder.NEWER:
            result.status = UpdateStatus.NO_UPDATE
            self._update_pending = False
            self._log.debug(
                "updater_up_to_date",
                current=self._running_version,
                latest=entry.version,
                order=order.value,
            )
            self._say("There is no new product")
            return

        self._update_pending = True
        self._log.info("updater_new_version_found", current=self._running_version, new=entry.version)
        self._say(f"There is a new product of {settings.product_id}")

        if not await self._consent.confirm(CONSENT_PROMPT):
            result.status = UpdateStatus.DECLINED
            self._log.info("updater_consent_declined", version=entry.version)
            self._say("Remember that you have an update pending.")
            return
        result.steps_completed.append("consent")

        if await self._fetch_and_verify(entry, result):
            previous = self._running_version
            self._running_version = entry.version
            result.status = UpdateStatus.SUCCESS
            self._update_pending = False
            self._log.info("updater_success", previous=previous, version=entry.version)
        else:
            result.status = UpdateStatus.VERIFY_FAILED
            # Not offered again until the manifest changes
            self._update_pending = False

    async def _adopt(self, entry: IndexEntry, result: UpdateResult) -> None:
        """First successful resolution: the manifest version becomes current."""
        self._running_version = entry.version
        result.current_version = entry.version
        result.status = UpdateStatus.ADOPTED
        self._log.info("updater_running_version_set", version=entry.version)

        if self._settings.fetch_on_startup:
            if not await self._fetch_and_verify(entry, result):
                result.status = UpdateStatus.VERIFY_FAILED

        self._say(f"The current {self._settings.product_id} version is: {entry.version}")

    async def _fetch_and_verify(self, entry: IndexEntry, result: UpdateResult) -> bool:
        url = build_artifact_url(self._settings, entry.version)
        self._say(f"Downloading binary from: {url}")

        path = await self._fetcher.fetch(url)
        result.artifact_path = str(path)
        result.steps_completed.append("fetch_artifact")
        self._say(f"Saving file as: {path}")

        verified = verify_file(
            path,
            entry.sha256,
            expected_length=entry.length or None,
            chunk_size=self._settings.download_chunk_size,
            log=self._log,
        )
        if not verified:
            result.error = f"digest of {path} does not match the manifest"
            result.error_kind = ErrorKind.VERIFY
            self._say("There has been an error while downloading the file. The hashes do not match")
            return False

        result.steps_completed.append("verify_artifact")
        self._say("Binary downloaded successfully!")
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lookup_product(self, content: bytes) -> IndexEntry:
        index = ManifestIndex.parse(content)
        entry = index.lookup(self._settings.product_id)
        if entry.is_empty:
            raise ParseError(f"manifest has no version for {self._settings.product_id!r}")
        try:
            parse_version(entry.version, self._settings.version_layout)
        except ParseError as exc:
            raise ParseError(f"manifest version: {exc.message}") from exc
        return entry

    def _report_expiry(self) -> ExpiryReport | None:
        if self._running_version is None:
            return None
        try:
            report = report_expiry(
                self._running_version,
                self._settings.version_layout,
                now=self._clock.now(),
                validity_years=self._settings.validity_years,
            )
        except ParseError as exc:
            self._log.warning("updater_expiry_unavailable", error=exc.message)
            return None

        if report.expired:
            self._log.warning("updater_version_expired", version=report.version)
        self._say(report.describe())
        return report

    def _say(self, line: str) -> None:
        self._output.write(f"{line}\n")
        self._output.flush()
