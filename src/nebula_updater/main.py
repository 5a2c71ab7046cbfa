"""Main entry point for the nebula updater."""

from __future__ import annotations

import asyncio
import signal
import sys

from pydantic import ValidationError

from nebula_updater import __version__
from nebula_updater.artifacts.auth import ServiceAccountTokenProvider
from nebula_updater.artifacts.fetcher import ArtifactFetcher
from nebula_updater.config import Settings, get_settings
from nebula_updater.logging import get_logger, setup_logging
from nebula_updater.trust.bootstrap import TrustBootstrapper
from nebula_updater.trust.resolver import ManifestResolver
from nebula_updater.updater.consent import ConsentSource, ConsoleConsent, StaticConsent
from nebula_updater.updater.manager import UpdateManager
from nebula_updater.updater.scheduler import PollingScheduler, SystemClock
from nebula_updater.utils import timed_operation


def build_manager(settings: Settings) -> UpdateManager:
    """Wire the pipeline components from *settings*."""
    consent: ConsentSource = StaticConsent(True) if settings.auto_approve else ConsoleConsent()
    return UpdateManager(
        settings,
        bootstrapper=TrustBootstrapper(settings),
        resolver=ManifestResolver(settings),
        fetcher=ArtifactFetcher(
            settings,
            ServiceAccountTokenProvider(
                settings.service_account_key_path, scopes=[settings.artifact_scope]
            ),
        ),
        consent=consent,
        clock=SystemClock(),
    )


async def run(settings: Settings) -> int:
    """Run the polling loop until a shutdown signal arrives."""
    log = get_logger("nebula_updater.main")
    log.info(
        "starting_nebula_updater",
        version=__version__,
        environment=settings.environment,
        product=settings.product_id,
        metadata_url=settings.metadata_url,
        interval_seconds=settings.poll_interval_seconds,
    )
    if settings.service_account_key_path is None:
        log.warning("service_account_key_missing")

    manager = build_manager(settings)

    async def tick() -> None:
        async with timed_operation("update_cycle", log=log):
            result = await manager.run_cycle()
        log.debug("update_cycle_result", **result.to_dict())

    scheduler = PollingScheduler(
        tick,
        settings.poll_interval_seconds,
        clock=SystemClock(),
        max_cycles=settings.max_cycles,
    )

    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            pass

    try:
        await scheduler.run()
    except Exception:
        log.exception("nebula_updater_crashed")
        return 1
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        log.info("nebula_updater_stopped", cycles=scheduler.cycles)
    return 0


def main() -> None:
    """Start the updater and exit with its status code."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings)
    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
