"""Authenticated artifact download and integrity verification."""

from nebula_updater.artifacts.auth import ServiceAccountTokenProvider, TokenProvider
from nebula_updater.artifacts.fetcher import ArtifactFetcher, build_artifact_url
from nebula_updater.artifacts.integrity import compute_sha256, verify_file

__all__ = [
    "ArtifactFetcher",
    "ServiceAccountTokenProvider",
    "TokenProvider",
    "build_artifact_url",
    "compute_sha256",
    "verify_file",
]
