"""Polling update pipeline.

Checks the TUF-verified manifest on a fixed interval, asks the operator
before downloading a newer artifact, and re-verifies the download against
the manifest digest.
"""

from nebula_updater.updater.consent import ConsentSource, ConsoleConsent, StaticConsent
from nebula_updater.updater.manager import UpdateManager, UpdateResult, UpdateStatus
from nebula_updater.updater.scheduler import Clock, PollingScheduler, SystemClock

__all__ = [
    "Clock",
    "ConsentSource",
    "ConsoleConsent",
    "PollingScheduler",
    "StaticConsent",
    "SystemClock",
    "UpdateManager",
    "UpdateResult",
    "UpdateStatus",
]
