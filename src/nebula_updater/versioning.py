"""Timestamp version comparison.

Versions are release timestamps rendered with a single fixed layout
(``2024.01.01-00.00.00`` by default), so ordering versions is ordering
instants at one-second granularity.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from nebula_updater.constants import VERSION_LAYOUT
from nebula_updater.errors import ParseError


class VersionOrder(Enum):
    """Where a candidate version sits relative to the current one."""

    NEWER = "newer"
    SAME = "same"
    OLDER = "older"


def parse_version(value: str, layout: str = VERSION_LAYOUT) -> datetime:
    """Parse a version string into a naive datetime.

    Raises:
        ParseError: If *value* is empty or does not match *layout*.
    """
    if not value:
        raise ParseError("version string is empty")
    try:
        return datetime.strptime(value.strip(), layout)
    except ValueError as exc:
        raise ParseError(f"version {value!r} does not match layout {layout!r}") from exc


def compare_versions(current: str, candidate: str, layout: str = VERSION_LAYOUT) -> VersionOrder:
    """Return whether *candidate* is newer than, the same as, or older than *current*.

    Raises:
        ParseError: If either version cannot be parsed; the message names the
            operand that failed.
    """
    try:
        current_at = parse_version(current, layout)
    except ParseError as exc:
        raise ParseError(f"current version: {exc.message}") from exc
    try:
        candidate_at = parse_version(candidate, layout)
    except ParseError as exc:
        raise ParseError(f"manifest version: {exc.message}") from exc

    if candidate_at > current_at:
        return VersionOrder.NEWER
    if candidate_at < current_at:
        return VersionOrder.OLDER
    return VersionOrder.SAME

