"""Integrity verification of downloaded artifacts."""

from __future__ import annotations

import hashlib
import hmac
from pathlib import Path
from typing import TYPE_CHECKING

from nebula_updater.constants import DOWNLOAD_CHUNK_SIZE
from nebula_updater.errors import VerifyError
from nebula_updater.logging import get_logger

if TYPE_CHECKING:
    import structlog

_log = get_logger("nebula_updater.artifacts.integrity")


def compute_sha256(path: Path | str, chunk_size: int = DOWNLOAD_CHUNK_SIZE) -> str:
    """Return the lowercase hex SHA-256 of the file at *path*.

    The file is read in *chunk_size* blocks, never loaded whole.

    Raises:
        VerifyError: If the file cannot be read.
    """
    hasher = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            for block in iter(lambda: fh.read(chunk_size), b""):
                hasher.update(block)
    except OSError as exc:
        raise VerifyError(f"failed to read {path}: {exc}") from exc
    return hasher.hexdigest()


def verify_file(
    path: Path | str,
    declared_digest: str,
    *,
    expected_length: int | None = None,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    log: structlog.stdlib.BoundLogger | None = None,
) -> bool:
    """Check a file against the digest declared in the manifest.

    Returns True only when the computed digest equals *declared_digest*
    (case-insensitive) and, if *expected_length* is positive, the size
    matches too. Read failures and mismatches both return False but are
    logged under different events.
    """
    log = log or _log
    declared = declared_digest.strip().lower()
    if not declared:
        log.warning("integrity_no_declared_digest", path=str(path))
        return False

    try:
        actual = compute_sha256(path, chunk_size)
        size = Path(path).stat().st_size
    except (VerifyError, OSError) as exc:
        log.error("integrity_read_failed", path=str(path), error=str(exc))
        return False

    if expected_length and size != expected_length:
        log.warning(
            "integrity_length_mismatch",
            path=str(path),
            expected=expected_length,
            actual=size,
        )
        return False

    try:
        matched = hmac.compare_digest(actual, declared)
    except (TypeError, ValueError) as exc:
        log.warning("integrity_bad_declared_digest", path=str(path), error=str(exc))
        return False
    if not matched:
        log.warning("integrity_mismatch", path=str(path), expected=declared, actual=actual)
        return False

    log.info("integrity_verified", path=str(path), sha256=actual)
    return True
