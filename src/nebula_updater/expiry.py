"""Validity window reporting for timestamp versions.

A version expires a fixed number of calendar years after its release
timestamp. The remaining time is reported signed: once the expiration
instant has passed, ``remaining`` is negative and ``expired`` is set. The
years/days/hours/minutes/seconds breakdown always describes the magnitude.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from nebula_updater.constants import VALIDITY_YEARS, VERSION_LAYOUT
from nebula_updater.versioning import parse_version

_DAYS_PER_YEAR = 365


@dataclass(frozen=True)
class ExpiryReport:
    """Remaining validity of one version."""

    version: str
    expires_at: datetime
    remaining: timedelta
    years: int
    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def expired(self) -> bool:
        return self.remaining < timedelta(0)

    def describe(self) -> str:
        span = (
            f"{self.years} years, {self.days} days, {self.hours} hours, "
            f"{self.minutes} minutes, and {self.seconds} seconds"
        )
        if self.expired:
            return f"The current version expired {span} ago"
        return f"The current version will expire in {span}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "expires_at": self.expires_at.isoformat(),
            "remaining_seconds": int(self.remaining.total_seconds()),
            "expired": self.expired,
            "years": self.years,
            "days": self.days,
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
        }


def add_years(moment: datetime, years: int) -> datetime:
    """Add calendar years; Feb 29 rolls forward to Mar 1 in non-leap years."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, month=3, day=1)


def report_expiry(
    version: str,
    layout: str = VERSION_LAYOUT,
    now: datetime | None = None,
    validity_years: int = VALIDITY_YEARS,
) -> ExpiryReport:
    """Compute how long *version* remains valid relative to *now*.

    Version timestamps carry no zone and are read as UTC; a naive *now* is
    read the same way.

    Raises:
        ParseError: If *version* does not match *layout*.
    """
    released_at = parse_version(version, layout).replace(tzinfo=UTC)
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    expires_at = add_years(released_at, validity_years)
    remaining = expires_at - now

    total = int(abs(remaining).total_seconds())
    total_minutes, seconds = divmod(total, 60)
    total_hours, minutes = divmod(total_minutes, 60)
    total_days, hours = divmod(total_hours, 24)
    years, days = divmod(total_days, _DAYS_PER_YEAR)

    return ExpiryReport(
        version=version,
        expires_at=expires_at,
        remaining=remaining,
        years=years,
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )
